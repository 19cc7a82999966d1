"""
Bearer token verification.

Tokens are issued by the auth collaborator and signed with the shared
JWT_SECRET. This service only needs to decode them; create_access_token is
kept for local tooling and the test-suite.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from dealmatch.core.config import settings

ALGORITHM = "HS256"
DEFAULT_ACCESS_TOKEN_SECONDS = 900  # 15 minutes


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(seconds=DEFAULT_ACCESS_TOKEN_SECONDS)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode JWT token and return payload if valid"""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError:
        return None


def verify_token(token: str, token_type: str = "access") -> Optional[str]:
    """Verify JWT token and return subject (user_id) if valid"""
    payload = decode_token(token)
    if payload is None:
        return None

    user_id = payload.get("sub")
    if user_id is None or payload.get("type") != token_type:
        return None
    return user_id
