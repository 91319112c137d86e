"""Keyed encryption of participant verification tokens."""

import base64
import hashlib
from functools import lru_cache
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from eventdesk.core.config import get_settings


class CredentialError(Exception):
    """Raised when a credential payload cannot be decrypted with our key."""


class CredentialCipher:
    """Encrypts verification tokens into opaque, QR-safe credential payloads."""

    def __init__(self, key: Optional[str] = None, secret: Optional[str] = None):
        if key:
            fernet_key = key.encode()
        elif secret:
            # Fernet wants 32 url-safe base64 bytes
            fernet_key = base64.urlsafe_b64encode(hashlib.sha256(secret.encode()).digest())
        else:
            raise ValueError("A credential key or secret is required")
        self.cipher = Fernet(fernet_key)

    def encrypt(self, token: str) -> str:
        return self.cipher.encrypt(token.encode()).decode()

    def decrypt(self, payload: str) -> str:
        try:
            return self.cipher.decrypt(payload.encode()).decode()
        except (InvalidToken, ValueError) as exc:
            raise CredentialError("Credential payload could not be decrypted") from exc


@lru_cache()
def get_cipher() -> CredentialCipher:
    settings = get_settings()
    return CredentialCipher(key=settings.CREDENTIAL_KEY, secret=settings.SECRET_KEY)
