"""
Store Credentials

Platform secrets are stored encrypted with Fernet. The Fernet key is derived from
``credentials_secret_key`` in the settings, so rotating that setting makes every
stored secret unreadable until it is re-entered.
"""
import base64
import logging
from functools import lru_cache
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from multistore.config import get_settings
from multistore.exceptions import MissingCredentialsError
from multistore.models import Store

logger = logging.getLogger(__name__)

KDF_SALT = b"multistore-store-credentials"
KDF_ITERATIONS = 100_000


@lru_cache()
def _fernet(secret_key: str) -> Fernet:
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=KDF_SALT, iterations=KDF_ITERATIONS)
    return Fernet(base64.urlsafe_b64encode(kdf.derive(secret_key.encode("utf-8"))))


def get_fernet() -> Fernet:
    return _fernet(get_settings().credentials_secret_key)


def encrypt_secret(value: Optional[str]) -> Optional[str]:
    """Encrypt a platform secret for storage. Empty values are stored as-is."""
    if not value:
        return value
    return get_fernet().encrypt(value.encode("utf-8")).decode("ascii")


def decrypt_secret(token: str) -> str:
    """Decrypt a stored secret. Raises InvalidToken if it was not encrypted with the current key."""
    return get_fernet().decrypt(token.encode("ascii")).decode("utf-8")


def get_store_credentials(store: Store) -> tuple[str, str]:
    """
    Consumer key and decrypted consumer secret of a store.

    Raises MissingCredentialsError when either is absent or the secret cannot be
    decrypted.
    """
    if not store.has_credentials:
        raise MissingCredentialsError(store.name)

    try:
        secret = decrypt_secret(store.consumer_secret)
    except (InvalidToken, UnicodeError) as e:
        logger.error(f"Failed to decrypt credentials for store {store.name}: {e!r}")
        raise MissingCredentialsError(store.name) from e

    return store.consumer_key, secret
