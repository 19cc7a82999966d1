from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from dealmatch.core.database import get_db
from dealmatch.core.security import verify_token
from dealmatch.models.user import User
import uuid

security = HTTPBearer()


async def load_user_from_token(token: str, db: AsyncSession) -> User | None:
    """Resolve a bearer token to its User row, or None if invalid."""
    user_id = verify_token(token, "access")
    if user_id is None:
        return None
    try:
        user_uuid = uuid.UUID(user_id)
    except (ValueError, TypeError):
        return None
    return await db.get(User, user_uuid)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user"""
    user = await load_user_from_token(credentials.credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
