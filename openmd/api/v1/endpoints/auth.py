from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from openmd.api.deps import get_hasher, get_session, get_session_store, require_user
from openmd.core.database import get_db
from openmd.core.security import (
    Argon2Hasher,
    create_access_token,
    create_refresh_token,
    verify_token,
)
from openmd.core.config import settings
from openmd.core.redis_client import get_redis
from openmd.core.sessions import SessionData, SessionStore
from openmd.repositories.users import UserRepository, UsernameTaken
from openmd.schemas.auth import Token
from openmd.schemas.user import UserCreate, UserResponse

router = APIRouter()


@router.post("/register", response_model=UserResponse)
async def register(
    user: UserCreate,
    db: AsyncSession = Depends(get_db),
    hasher: Argon2Hasher = Depends(get_hasher),
):
    """Register a new user"""
    users = UserRepository(db)

    # Check if user already exists
    if await users.get_by_login(user.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already registered"
        )

    # Anonymous agents often register without an email
    email = user.email or f"{user.username}@ai-agent.local"
    try:
        db_user = await users.create(
            username=user.username,
            email=email,
            hashed_password=hasher.hash(user.password),
        )
    except UsernameTaken:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username or email already registered"
        )

    return db_user


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
    hasher: Argon2Hasher = Depends(get_hasher),
    session: SessionData = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
):
    """Login by username or email, bind the user to the session and return JWT tokens"""
    users = UserRepository(db)
    user = await users.get_by_login(form_data.username)

    if not user or not hasher.verify(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )

    # Create tokens
    claims = {"sub": user.username, "uid": user.id}
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(data=claims, expires_delta=access_token_expires)
    refresh_token = create_refresh_token(data=claims)

    # Store tokens in Redis
    redis_client = await get_redis()
    await redis_client.setex(
        f"access_token:{user.id}",
        settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        access_token
    )
    await redis_client.setex(
        f"refresh_token:{user.id}",
        settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        refresh_token
    )

    await store.bind_user(session.session_id, user.id)
    await users.touch_last_login(user.id)

    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer"
    }


@router.post("/refresh", response_model=Token)
async def refresh_token(refresh_token: str, db: AsyncSession = Depends(get_db)):
    """Refresh access token using refresh token"""
    # Verify refresh token
    payload = verify_token(refresh_token, "refresh")

    user = None
    if payload.get("uid") is not None:
        user = await UserRepository(db).get_by_id(int(payload["uid"]))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    # Check if refresh token exists in Redis
    redis_client = await get_redis()
    stored_refresh_token = await redis_client.get(f"refresh_token:{user.id}")

    if not stored_refresh_token or stored_refresh_token != refresh_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token"
        )

    # Create new access token
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.username, "uid": user.id}, expires_delta=access_token_expires
    )

    # Update access token in Redis
    await redis_client.setex(
        f"access_token:{user.id}",
        settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        access_token
    )

    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer"
    }


@router.post("/logout")
async def logout(
    user_id: int = Depends(require_user),
    session: SessionData = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
):
    """Logout user by unbinding the session and removing tokens from Redis"""
    await store.clear_user(session.session_id)

    redis_client = await get_redis()
    await redis_client.delete(f"access_token:{user_id}")
    await redis_client.delete(f"refresh_token:{user_id}")

    return {"message": "Successfully logged out"}


@router.get("/me", response_model=UserResponse)
async def me(user_id: int = Depends(require_user), db: AsyncSession = Depends(get_db)):
    """Get current user information"""
    user = await UserRepository(db).get_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
