"""
Dependency Functions
FastAPI dependency injection functions for auth, database and account keys
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.database import get_db
from app.models import User
from app.utils.auth import decode_access_token
from app.utils.keys import get_key_for_user

# Security scheme for bearer token
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Dependency to get current authenticated user from JWT token

    Args:
        credentials: HTTP bearer credentials
        db: Database session

    Returns:
        Current authenticated user

    Raises:
        HTTPException: If token is invalid or user not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    user_id = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    try:
        user = db.get(User, int(user_id))
    except (TypeError, ValueError):
        raise credentials_exception

    if user is None:
        raise credentials_exception

    return user


async def get_account_key(current_user: User = Depends(get_current_user)) -> bytes:
    """
    Dependency returning the authenticated user's raw account key.

    A missing key is an IntegrityError (corrupt account), handled in app.main.
    """
    return get_key_for_user(current_user)
