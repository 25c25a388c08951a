from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError
from fastapi import HTTPException, status
from jose import JWTError, jwt

from openmd.core.config import settings


class Argon2Hasher:
    """One-way password hashing for user accounts, notes and shares"""

    def __init__(self, time_cost: int = None, memory_cost: int = None, parallelism: int = None):
        self._hasher = PasswordHasher(
            time_cost=time_cost or settings.ARGON2_TIME_COST,
            memory_cost=memory_cost or settings.ARGON2_MEMORY_COST,
            parallelism=parallelism or settings.ARGON2_PARALLELISM,
            hash_len=32,
            salt_len=16,
        )

    def hash(self, plaintext: str) -> str:
        return self._hasher.hash(plaintext)

    def verify(self, plaintext: str, hashed: str) -> bool:
        try:
            return self._hasher.verify(hashed, plaintext)
        except (VerifyMismatchError, InvalidHashError):
            return False


password_hasher = Argon2Hasher()


def _encode(data: Dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({
        "exp": datetime.now(timezone.utc) + expires_delta,
        "type": token_type,
    })
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a short lived JWT access token"""
    return _encode(data, "access", expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(data: dict) -> str:
    """Create a long lived JWT refresh token"""
    return _encode(data, "refresh", timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def create_session_token(session_id: str) -> str:
    """Sign a session id for the session cookie"""
    return _encode({"sid": session_id}, "session", timedelta(days=settings.SESSION_EXPIRE_DAYS))


def decode_token(token: str, token_type: str) -> Optional[dict]:
    """Return the token payload, or None if it is invalid, expired or of another type"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != token_type:
        return None
    return payload


def verify_token(token: str, token_type: str) -> dict:
    """Decode a token or fail the request with 401"""
    payload = decode_token(token, token_type)
    if payload is None or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload
