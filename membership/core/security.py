from __future__ import annotations

import secrets

from passlib.context import CryptContext

# New hashes use pbkdf2_sha256; bcrypt hashes from older rows still verify.
_pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")


# PUBLIC_INTERFACE
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a stored hash."""
    return _pwd_context.verify(plain_password, hashed_password)


# PUBLIC_INTERFACE
def get_password_hash(password: str) -> str:
    """Hash a password with the preferred scheme."""
    return _pwd_context.hash(password)


def is_password_hash(value: str) -> bool:
    """True when ``value`` is a hash produced by one of the configured schemes."""
    return _pwd_context.identify(value) is not None


# PUBLIC_INTERFACE
def generate_token(nbytes: int = 32) -> str:
    """Return a URL-safe random token used for password setup links."""
    return secrets.token_urlsafe(nbytes)
