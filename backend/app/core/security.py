"""
Password hashing, session tokens and the bearer-token request guard.
"""

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from fastapi import Request
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.exceptions import AuthError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def _password_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def get_password_hash(password: str, rounds: Optional[int] = None) -> str:
    """One-way bcrypt hash; cost factor defaults to ``BCRYPT_ROUNDS``."""
    return _password_context(rounds or settings.BCRYPT_ROUNDS).hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return _password_context(settings.BCRYPT_ROUNDS).verify(plain_password, hashed_password)


def create_access_token(
    subject: str,
    expires_delta: Optional[timedelta] = None,
    secret: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """Sign a token asserting ``subject`` (the user id) until now + ``expires_delta``."""
    issued = now or datetime.now(timezone.utc)
    expire = issued + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": str(subject),
        "iat": int(issued.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(to_encode, secret or settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str, secret: Optional[str] = None) -> dict:
    """Verify the signature and return the claims. Expiry is checked by the caller."""
    return jwt.decode(
        token,
        secret or settings.SECRET_KEY,
        algorithms=[settings.ALGORITHM],
        options={"verify_exp": False},
    )


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the credential of an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]


def authenticate_header(
    authorization: Optional[str],
    secret: Optional[str] = None,
    now: Optional[datetime] = None,
) -> int:
    """
    Resolve an Authorization header to the authenticated user id.

    Args:
        authorization: Raw header value
        secret: Signing secret (defaults to SECRET_KEY)
        now: Clock used for the expiry check (defaults to current UTC time)

    Returns:
        The user id carried in the token's ``sub`` claim

    Raises:
        AuthError: Header absent, token unparsable, expired or missing its subject
    """
    token = extract_bearer_token(authorization)
    if not token:
        raise AuthError("No token provided")

    try:
        payload = decode_token(token, secret)
    except JWTError as e:
        logger.debug(f"Rejected token: {e}")
        raise AuthError("Invalid token")

    expires_at = payload.get("exp")
    current = now or datetime.now(timezone.utc)
    if not isinstance(expires_at, (int, float)) or current.timestamp() >= expires_at:
        raise AuthError("Token expired")

    subject = payload.get("sub")
    if subject is None:
        raise AuthError("Token missing subject")
    try:
        return int(subject)
    except (TypeError, ValueError):
        raise AuthError("Token missing subject")


async def get_current_user(request: Request) -> int:
    """FastAPI dependency: the id of the user the bearer token belongs to."""
    return authenticate_header(request.headers.get("Authorization"))
