"""Decryption of the payload Ecwid passes to apps opened in the admin iframe.

Ecwid encrypts the payload with AES-128-CBC. The key is the first 16
bytes of the UTF-8 encoded client secret; the URL-safe base64 blob carries the
16-byte IV followed by the ciphertext.
"""

import base64
import binascii
import json
from typing import Any

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from recs_api.core.config import settings

IV_LENGTH = 16


class PayloadError(ValueError):
    """The payload could not be decoded or decrypted."""


def _b64decode_urlsafe(payload: str) -> bytes:
    padded = payload + "=" * (-len(payload) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as exc:
        raise PayloadError("Payload is not valid base64") from exc


def decode_payload(payload: str, client_secret: str | None = None) -> dict[str, Any]:
    """Decrypt and parse an Ecwid admin payload.

    Args:
        payload: URL-safe base64 string from the ``payload`` query parameter.
        client_secret: Overrides the configured Ecwid client secret.

    Returns:
        The decoded JSON object (``store_id``, ``access_token``, ``lang``...).

    Raises:
        PayloadError: If the secret is missing or the payload is malformed.
    """
    secret = client_secret if client_secret is not None else settings.ecwid_client_secret
    key = secret.encode("utf-8")[:16]
    if len(key) < 16:
        raise PayloadError("Ecwid client secret is not configured")

    raw = _b64decode_urlsafe(payload)
    if len(raw) <= IV_LENGTH or (len(raw) - IV_LENGTH) % 16:
        raise PayloadError("Payload has an invalid length")

    iv, ciphertext = raw[:IV_LENGTH], raw[IV_LENGTH:]

    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()

    unpadder = padding.PKCS7(128).unpadder()
    try:
        plaintext = unpadder.update(padded) + unpadder.finalize()
        data = json.loads(plaintext.decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as exc:
        raise PayloadError("Payload could not be decrypted") from exc

    if not isinstance(data, dict):
        raise PayloadError("Payload is not a JSON object")
    return data


def encode_payload(data: dict[str, Any], iv: bytes, client_secret: str | None = None) -> str:
    """Encrypt ``data`` the way Ecwid does. Used to build test fixtures."""
    secret = client_secret if client_secret is not None else settings.ecwid_client_secret
    key = secret.encode("utf-8")[:16]

    padder = padding.PKCS7(128).padder()
    padded = padder.update(json.dumps(data).encode("utf-8")) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return base64.urlsafe_b64encode(iv + ciphertext).decode("ascii").rstrip("=")
