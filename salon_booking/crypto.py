"""Encryption of per-salon LINE channel credentials at rest."""
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from . import config
from .exceptions import DecryptionError

logger = logging.getLogger(__name__)


class CredentialVault:
    """Fernet wrapper; every encrypt call uses a fresh random IV."""

    def __init__(self, key: str):
        self._fernet = Fernet(key.encode() if isinstance(key, str) else key)

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        try:
            return self._fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken:
            # Key rotated or value tampered with; the owner has to re-enter it
            logger.error("❌ Failed to decrypt stored channel credential")
            raise DecryptionError()


_vault: Optional[CredentialVault] = None


def get_vault() -> CredentialVault:
    """Process-wide vault built from ENCRYPTION_KEY."""
    global _vault
    if _vault is None:
        if not config.ENCRYPTION_KEY:
            raise RuntimeError(
                "ENCRYPTION_KEY not configured. "
                'Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"'
            )
        _vault = CredentialVault(config.ENCRYPTION_KEY)
    return _vault
