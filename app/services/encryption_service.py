"""
Service for encrypting and decrypting stored Telegram session strings.
"""

import base64
import logging
from typing import Optional

from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from app.core.config import settings
from app.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

KDF_SALT = b"tg_keyword_alerts_session_salt"
KDF_ITERATIONS = 100000


class EncryptionService:
    """Service for encrypting/decrypting sensitive data"""

    def __init__(self, secret_key: Optional[str] = None):
        self._secret_key = secret_key
        self._fernet: Optional[Fernet] = None

    def _get_fernet(self) -> Fernet:
        """Create Fernet cipher from SECRET_KEY on first use"""
        if self._fernet is None:
            secret_key = self._secret_key or settings.SECRET_KEY
            if not secret_key:
                raise ConfigurationError("SECRET_KEY is required to store Telegram sessions", missing=["SECRET_KEY"])

            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA256(),
                length=32,
                salt=KDF_SALT,
                iterations=KDF_ITERATIONS,
            )
            key = base64.urlsafe_b64encode(kdf.derive(secret_key.encode()))
            self._fernet = Fernet(key)
        return self._fernet

    def encrypt(self, plaintext: str) -> str:
        """Encrypt plaintext string"""
        if not plaintext:
            return ""
        try:
            return self._get_fernet().encrypt(plaintext.encode()).decode()
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error("Error encrypting data: %s", e)
            raise

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt ciphertext string"""
        if not ciphertext:
            return ""
        try:
            return self._get_fernet().decrypt(ciphertext.encode()).decode()
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error("Error decrypting data: %s", e)
            raise


# Singleton instance
encryption_service = EncryptionService()
