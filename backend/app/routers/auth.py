"""
Authentication Routes
User registration, login and token verification

Account Key Flow:
  REGISTER:
    1. Client sends { email, password }
    2. Server hashes the password (bcrypt) and generates a random 256-bit
       account key, stored on the user row
    3. The user's Root folder is created in the same transaction
    4. Response carries the JWT and the hex account key for local caching

  LOGIN / VERIFY:
    Return the same key again so a fresh client can decrypt its items.
    The key is never derived from the password and cannot be recovered.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models import User, Folder, ROOT_FOLDER_NAME
from app.schemas import (
    UserCreate,
    UserLogin,
    UserResponse,
    AuthResponse,
    TokenVerify,
    TokenVerifyResponse,
)
from app.utils.auth import get_password_hash, verify_password, create_access_token, decode_access_token
from app.utils.keys import generate_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """
    Register a new user.

    Workflow:
    1. Validate email uniqueness
    2. Create user with bcrypt-hashed password and a fresh account key
    3. Create the user's Root folder
    4. Issue an access token

    All writes are atomic (rollback on failure).
    """
    existing_user = db.query(User).filter(User.email == user_data.email).first()
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already exists"
        )

    try:
        new_user = User(
            email=user_data.email,
            password_hash=get_password_hash(user_data.password),
            encryption_key=generate_key(),
        )
        db.add(new_user)
        db.flush()  # Get user ID without committing transaction

        db.add(Folder(name=ROOT_FOLDER_NAME, parent_id=None, user_id=new_user.id))

        db.commit()
        db.refresh(new_user)
    except Exception:
        db.rollback()
        logger.error("Registration failed", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user"
        )

    logger.info(f"Registered user {new_user.id}")

    return {
        "message": "User created successfully",
        "user": new_user,
        "token": create_access_token(data={"sub": str(new_user.id)}),
        "encryption_key": new_user.encryption_key,
    }


@router.post("/login", response_model=AuthResponse)
async def login(user_data: UserLogin, db: Session = Depends(get_db)):
    """Authenticate and return JWT + account key."""
    user = db.query(User).filter(User.email == user_data.email).first()

    if not user or not verify_password(user_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    return {
        "message": "Login successful",
        "user": user,
        "token": create_access_token(data={"sub": str(user.id)}),
        "encryption_key": user.encryption_key,
    }


@router.post("/verify", response_model=TokenVerifyResponse)
async def verify_token(token_data: TokenVerify, db: Session = Depends(get_db)):
    """Check a token and return the user it belongs to, with the account key."""
    payload = decode_access_token(token_data.token)
    user = None
    if payload is not None and payload.get("sub") is not None:
        try:
            user = db.get(User, int(payload["sub"]))
        except (TypeError, ValueError):
            user = None

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )

    return {
        "valid": True,
        "user": user,
        "encryption_key": user.encryption_key,
    }


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current authenticated user info."""
    return current_user
