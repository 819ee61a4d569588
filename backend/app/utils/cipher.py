"""
Content Cipher
AES-256-GCM encryption of item content, files and backup bundles

Layout of every ciphertext:
    [nonce 16B][GCM tag 16B][ciphertext]

Text helpers wrap that layout in base64 so it can be stored in a TEXT column
or a JSON document. The nonce is random per call; nothing but the key is
needed to decrypt.

Security Note:
    Never log plaintext, ciphertext or keys.
"""

import base64
import binascii
import hashlib
import hmac
import os
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from app.exceptions import DecryptionError
from app.utils.keys import key_bytes

NONCE_SIZE = 16
TAG_SIZE = 16
HEADER_SIZE = NONCE_SIZE + TAG_SIZE

KeyLike = Union[str, bytes]


def _aesgcm(key: KeyLike) -> AESGCM:
    # ValueError on a malformed key
    return AESGCM(key_bytes(key))


def encrypt_bytes(data: bytes, key: KeyLike) -> bytes:
    """
    Encrypt raw bytes, returning nonce || tag || ciphertext.

    Raises:
        ValueError: The key is not 32 bytes (raw or hex)
    """
    nonce = os.urandom(NONCE_SIZE)
    sealed = _aesgcm(key).encrypt(nonce, data, None)
    # AESGCM appends the tag; move it in front of the body
    body, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return nonce + tag + body


def decrypt_bytes(blob: bytes, key: KeyLike) -> bytes:
    """
    Decrypt bytes produced by encrypt_bytes.

    Raises:
        DecryptionError: Wrong or malformed key, truncated input or failed authentication
    """
    try:
        cipher = _aesgcm(key)
    except ValueError as e:
        raise DecryptionError(f"Invalid encryption key: {e}")

    if len(blob) < HEADER_SIZE:
        raise DecryptionError("Ciphertext is truncated")

    nonce = blob[:NONCE_SIZE]
    tag = blob[NONCE_SIZE:HEADER_SIZE]
    body = blob[HEADER_SIZE:]

    try:
        return cipher.decrypt(nonce, body + tag, None)
    except InvalidTag:
        raise DecryptionError()


def encrypt(plaintext: str, key: KeyLike) -> str:
    """Encrypt a UTF-8 string, returning base64 text"""
    blob = encrypt_bytes(plaintext.encode("utf-8"), key)
    return base64.b64encode(blob).decode("ascii")


def decrypt(ciphertext: str, key: KeyLike) -> str:
    """
    Decrypt base64 text produced by encrypt.

    Raises:
        DecryptionError: Bad base64, wrong key, tampering, or non-UTF-8 plaintext
    """
    try:
        blob = base64.b64decode(ciphertext, validate=True)
    except (binascii.Error, ValueError):
        raise DecryptionError("Ciphertext is not valid base64")

    data = decrypt_bytes(blob, key)
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        raise DecryptionError("Decrypted content is not valid UTF-8")


def content_fingerprint(plaintext: str, key: KeyLike) -> str:
    """
    Keyed fingerprint of a plaintext (HMAC-SHA256, hex).

    Equal plaintexts under the same key give equal fingerprints even though
    their ciphertexts differ, which lets the version store skip no-op updates.

    Item plaintext never reaches the server, so no route calls this. Clients
    compute the same HMAC with their copy of the account key and send it as
    content_fingerprint; this function is the reference for that computation.
    """
    return hmac.new(key_bytes(key), plaintext.encode("utf-8"), hashlib.sha256).hexdigest()
