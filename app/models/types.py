import base64
import hashlib
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy import LargeBinary
from sqlalchemy.types import TypeDecorator

from app.core.settings import settings


def field_key(secret: str, purpose: str = "pii") -> bytes:
    digest = hashlib.sha256(f"{purpose}:{secret}".encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


class EncryptedString(TypeDecorator):
    """String column stored as a Fernet token; used for decedent identifiers."""

    impl = LargeBinary
    cache_ok = True

    def __init__(self, *, purpose: str = "pii", secret: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._purpose = purpose
        self._secret = secret

    def _fernet(self) -> Fernet:
        return Fernet(field_key(self._secret or settings.secret_key, self._purpose))

    def process_bind_param(self, value, dialect):
        if value is None or value == "":
            return None
        return self._fernet().encrypt(str(value).encode("utf-8"))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        try:
            return self._fernet().decrypt(bytes(value)).decode("utf-8")
        except InvalidToken as exc:  # pragma: no cover - key rotation without re-encrypting
            raise ValueError("Unable to decrypt value") from exc


__all__ = ["EncryptedString", "field_key"]
