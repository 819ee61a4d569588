"""
Account Key Management

One 256-bit symmetric key per account, generated once at registration.
The key is stored hex-encoded on the user row and handed to the client so it
can encrypt item content locally. There is no rotation and no recovery path.
"""

import logging
import secrets
from typing import Union

from app.exceptions import IntegrityError

logger = logging.getLogger(__name__)

KEY_SIZE = 32  # bytes (AES-256)


def generate_key() -> str:
    """Generate a new account key as 64 hex characters"""
    return secrets.token_hex(KEY_SIZE)


def key_bytes(key: Union[str, bytes]) -> bytes:
    """
    Normalize an account key to its raw 32 bytes.

    Accepts the hex form stored on the user record or raw bytes.

    Raises:
        ValueError: If the key is not a 32-byte key in either form
    """
    if isinstance(key, str):
        try:
            raw = bytes.fromhex(key)
        except ValueError:
            raise ValueError("Account key must be hex encoded")
    elif isinstance(key, (bytes, bytearray)):
        raw = bytes(key)
    else:
        raise ValueError(f"Unsupported key type: {type(key).__name__}")

    if len(raw) != KEY_SIZE:
        raise ValueError(f"Account key must be {KEY_SIZE} bytes, got {len(raw)}")
    return raw


def get_key_for_user(user) -> bytes:
    """
    Return the raw account key of an authenticated user.

    Args:
        user: User model instance

    Returns:
        32-byte key

    Raises:
        IntegrityError: If the account record has no usable key
    """
    stored = getattr(user, "encryption_key", None)
    if not stored:
        logger.error(f"Account {user.id} has no encryption key")
        raise IntegrityError(f"Account {user.id} has no encryption key")

    try:
        return key_bytes(stored)
    except ValueError:
        logger.error(f"Account {user.id} has a malformed encryption key")
        raise IntegrityError(f"Account {user.id} has a malformed encryption key")
