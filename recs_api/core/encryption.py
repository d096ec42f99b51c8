"""Encryption helpers for storing Ecwid OAuth tokens at rest."""

import base64
import hashlib
import logging
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from recs_api.core.config import settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _get_fernet() -> Fernet:
    """Get Fernet instance from the encryption key setting.

    Derives a valid 32-byte Fernet key from the config encryption_key
    using SHA-256, then base64-encodes it.

    Note: Changing encryption_key will make previously stored store tokens
    undecryptable, and those stores will have to re-run OAuth.
    """
    key_bytes = hashlib.sha256(settings.encryption_key.encode()).digest()
    return Fernet(base64.urlsafe_b64encode(key_bytes))


def encrypt_token(token: str) -> str:
    """Encrypt a token string."""
    return _get_fernet().encrypt(token.encode()).decode()


def decrypt_token(encrypted: str) -> str:
    """Decrypt an encrypted token string.

    Raises:
        InvalidToken: If the ciphertext was tampered with or the key changed.
    """
    return _get_fernet().decrypt(encrypted.encode()).decode()


def decrypt_stored_token(encrypted: str | None) -> str | None:
    """Decrypt a token column value, returning None when absent or unreadable."""
    if not encrypted:
        return None
    try:
        return decrypt_token(encrypted)
    except InvalidToken:
        logger.warning("Stored token could not be decrypted; treating store as unauthenticated")
        return None
