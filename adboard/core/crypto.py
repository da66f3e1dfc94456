# adboard/core/crypto.py
"""
Encryption of OAuth tokens at rest.

Access and refresh tokens are stored as Fernet ciphertext. ENCRYPTION_KEY is
either a Fernet key used as-is or a passphrase stretched with PBKDF2-SHA256.
Without it a throwaway key is generated and stored tokens become unreadable
after a restart (development only).

Usage:
    from adboard.core.crypto import encrypt_token, decrypt_token

    ciphertext = encrypt_token("ya29.a0Af...")
    assert decrypt_token(ciphertext) == "ya29.a0Af..."
"""

import base64
import logging
import os
from typing import Any, Dict, Optional, Tuple

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

KDF_SALT = b'adboard_token_store_v2'
KDF_ITERATIONS = 100000

KEY_SOURCE_DIRECT = 'environment_direct'
KEY_SOURCE_DERIVED = 'environment_derived'
KEY_SOURCE_TEMPORARY = 'temporary'


def _as_fernet_key(secret: str) -> Optional[Fernet]:
    try:
        return Fernet(secret.encode())
    except ValueError:
        return None


def _stretch_passphrase(passphrase: str) -> Fernet:
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=KDF_SALT, iterations=KDF_ITERATIONS)
    return Fernet(base64.urlsafe_b64encode(kdf.derive(passphrase.encode())))


def build_cipher(secret: Optional[str]) -> Tuple[Fernet, str]:
    """Cipher for ENCRYPTION_KEY plus where its key came from"""
    if not secret:
        logger.warning("⚠️ ENCRYPTION_KEY not set - using a temporary key, tokens won't survive a restart")
        return Fernet(Fernet.generate_key()), KEY_SOURCE_TEMPORARY

    direct = _as_fernet_key(secret)
    if direct is not None:
        logger.info("🔐 Token encryption using Fernet key from ENCRYPTION_KEY")
        return direct, KEY_SOURCE_DIRECT

    logger.info("🔐 Token encryption using key derived from ENCRYPTION_KEY passphrase")
    return _stretch_passphrase(secret), KEY_SOURCE_DERIVED


class CryptoManager:
    """Encrypts and decrypts tokens with one process-wide key"""

    def __init__(self, key: Optional[str] = None):
        secret = key if key is not None else os.getenv('ENCRYPTION_KEY')
        self._cipher, self._key_source = build_cipher(secret)

    def encrypt_token(self, token: str) -> str:
        if not token:
            raise ValueError("Refusing to encrypt an empty token")
        return self._cipher.encrypt(token.encode()).decode()

    def decrypt_token(self, ciphertext: str) -> str:
        """
        Raises:
            RuntimeError: the ciphertext was written under a different key
        """
        if not ciphertext:
            raise ValueError("Nothing to decrypt")
        try:
            return self._cipher.decrypt(ciphertext.encode()).decode()
        except InvalidToken as e:
            logger.error("❌ Stored token could not be decrypted - was ENCRYPTION_KEY rotated?")
            raise RuntimeError("Token decryption failed") from e

    def get_encryption_info(self) -> Dict[str, Any]:
        return {
            'initialized': self._cipher is not None,
            'key_source': self._key_source,
            'secure_setup': self._key_source != KEY_SOURCE_TEMPORARY,
            'algorithm': 'Fernet (AES-128-CBC + HMAC-SHA256)',
        }


# Global instance
crypto_manager = CryptoManager()


def encrypt_token(token: str) -> str:
    return crypto_manager.encrypt_token(token)


def decrypt_token(ciphertext: str) -> str:
    return crypto_manager.decrypt_token(ciphertext)


def get_encryption_info() -> Dict[str, Any]:
    return crypto_manager.get_encryption_info()


if __name__ == "__main__":
    # Print a fresh value for ENCRYPTION_KEY
    print(f"ENCRYPTION_KEY={Fernet.generate_key().decode()}")
