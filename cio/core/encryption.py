"""
Symmetric encryption for third-party credentials stored in the database.

OAuth access/refresh tokens and API keys are reversible secrets: the sync jobs
need the plaintext to call the provider, so they are encrypted with Fernet
(AES-128-CBC + HMAC-SHA256) rather than hashed.

The Fernet key is derived from SECRET_KEY with HKDF-SHA256, so the same
SECRET_KEY always yields the same key. Rotating SECRET_KEY makes every stored
token undecryptable; the affected products have to be re-authorized through
the OAuth consent flow.

Usage:
    from cio.core.encryption import encrypt_token, decrypt_token

    stored = encrypt_token(access_token)
    access_token = decrypt_token(stored)
"""
import base64
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from cio.core.config import settings
from cio.core.logging_config import log_error

_fernet_key_cache: Optional[bytes] = None


def _get_fernet_key() -> bytes:
    """Derive (once) the Fernet key from SECRET_KEY."""
    global _fernet_key_cache

    if _fernet_key_cache is not None:
        return _fernet_key_cache

    if not settings.secret_key:
        raise ValueError(
            "SECRET_KEY must be set for encryption. "
            "Set it in your .env file or environment variables."
        )

    kdf = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=None,
        info=b'cio-api-token-encryption'
    )
    derived_key = kdf.derive(settings.secret_key.encode('utf-8'))

    _fernet_key_cache = base64.urlsafe_b64encode(derived_key)
    return _fernet_key_cache


def _get_fernet() -> Fernet:
    return Fernet(_get_fernet_key())


def encrypt_token(token: str) -> str:
    """Encrypt a credential for storage."""
    if not token or not token.strip():
        raise ValueError("Cannot encrypt empty token")

    try:
        return _get_fernet().encrypt(token.encode('utf-8')).decode('utf-8')
    except Exception as e:
        log_error(e, action="token_encryption")
        raise


def decrypt_token(encrypted_token: str) -> str:
    """Decrypt a credential produced by encrypt_token."""
    if not encrypted_token or not encrypted_token.strip():
        raise ValueError("Cannot decrypt empty token")

    try:
        return _get_fernet().decrypt(encrypted_token.encode('utf-8')).decode('utf-8')
    except InvalidToken as e:
        log_error(e, action="token_decryption")
        raise ValueError(
            "Failed to decrypt token. The stored value is corrupted or SECRET_KEY "
            "has changed; re-authorize the product."
        )
    except Exception as e:
        log_error(e, action="token_decryption")
        raise


def encrypt_optional(token: Optional[str]) -> str:
    """Encrypt a credential that may be missing; empty values stay empty."""
    if not token:
        return ""
    return encrypt_token(token)


def decrypt_optional(encrypted_token: Optional[str]) -> str:
    """Decrypt a credential that may be missing; empty values stay empty."""
    if not encrypted_token:
        return ""
    return decrypt_token(encrypted_token)


def is_encrypted(value: str) -> bool:
    """Heuristic: Fernet tokens always start with the version byte, "gAAAAA" in base64."""
    if not value:
        return False
    return value.startswith("gAAAAA")


def reset_key_cache():
    """Reset the cached Fernet key (tests, or SECRET_KEY changed at runtime)."""
    global _fernet_key_cache
    _fernet_key_cache = None
