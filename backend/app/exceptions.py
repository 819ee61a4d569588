"""
Domain Exceptions
Error kinds raised by the encryption, versioning and backup layers

The routers never format these; handlers in app.main map them to responses.
"""


class VaultError(Exception):
    """Base class for vault domain errors"""


class DecryptionError(VaultError):
    """Ciphertext could not be authenticated: wrong key, truncated, or tampered"""

    def __init__(self, message: str = "Decryption failed - invalid key or corrupted data"):
        super().__init__(message)


class MalformedBackupError(VaultError):
    """Backup decrypted (or failed to parse) but does not have the expected shape"""

    def __init__(self, message: str = "Invalid backup structure"):
        super().__init__(message)


class IntegrityError(VaultError):
    """
    Fatal invariant violation.

    Raised when an authenticated account has no usable key, or when a version
    is appended to an item that does not exist. Not related to
    sqlalchemy.exc.IntegrityError.
    """
