from __future__ import annotations
import hashlib
import hmac
import secrets
import string
from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError
from .config import settings

password_hash = PasswordHash.recommended()

SECRET_ALPHABET = string.ascii_letters + string.digits


def generate_secret(length: int | None = None) -> str:
    length = length or settings.SECRET_LENGTH
    return ''.join(secrets.choice(SECRET_ALPHABET) for _ in range(length))


class SecretGenerator:
    """One-time verification and reset codes."""

    def __init__(self, length: int | None = None):
        self.length = length or settings.SECRET_LENGTH

    def generate(self) -> str:
        return generate_secret(self.length)


class CredentialHasher:
    """Salted one-way hashing for passwords and one-time codes.

    ``verify`` never raises: a missing digest is checked against a throwaway
    digest so the caller pays the same cost, and a digest no configured hasher
    recognises simply fails.
    """

    def __init__(self, backend: PasswordHash = password_hash):
        self._backend = backend
        self._dummy_digest = None

    def hash(self, plaintext: str) -> str:
        return self._backend.hash(plaintext)

    def verify(self, plaintext: str, digest: str | None) -> bool:
        if not digest:
            self._backend.verify(plaintext, self._dummy())
            return False
        try:
            return self._backend.verify(plaintext, digest)
        except UnknownHashError:
            return False

    def _dummy(self) -> str:
        if self._dummy_digest is None:
            self._dummy_digest = self._backend.hash(secrets.token_urlsafe(16))
        return self._dummy_digest


def digest_token(plain: str, key: str | None = None) -> str:
    key = key or settings.SECRET_KEY
    return hmac.new(key.encode(), plain.encode(), hashlib.sha256).hexdigest()


def generate_token_secret() -> str:
    # 30 random bytes render as 40 url-safe characters
    return secrets.token_urlsafe(30)
