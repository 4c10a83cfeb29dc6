"""Password hashing and JWT access tokens.

Passwords are hashed with bcrypt through passlib; access tokens are signed
with PyJWT and carry the user id (``sub``), email and session id (``sid``).
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from passlib.context import CryptContext

from inkwell.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def generate_token(nbytes: int = 64) -> str:
    """Random hex token for refresh sessions and password resets."""
    return secrets.token_hex(nbytes)


def create_access_token(
    subject: str,
    email: str,
    session_id: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed access token bound to a session.

    Args:
        subject: User id
        email: User email
        session_id: Id of the refresh session the token belongs to
        expires_delta: Lifetime (default: settings.access_token_expires_minutes)

    Returns:
        Encoded JWT string
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expires_minutes))
    payload = {
        "sub": subject,
        "email": email,
        "sid": session_id,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify an access token.

    Raises:
        ValueError: If the token is expired or invalid
    """
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as e:
        raise ValueError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise ValueError(f"Invalid token: {e}") from e
