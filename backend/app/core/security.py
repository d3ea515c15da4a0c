"""Bearer token helpers.

Access tokens are minted by the identity provider with the shared
``SECRET_KEY``; this service only verifies them. ``create_access_token``
exists for service-to-service calls and tests.
"""

from datetime import datetime, timedelta, timezone

from jose import jwt

from app.config import settings

ACCESS_TOKEN_TTL = timedelta(minutes=15)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a signed JWT access token carrying ``data`` as claims."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or ACCESS_TOKEN_TTL)
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT. Raises ``jose.JWTError`` when invalid or expired."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
