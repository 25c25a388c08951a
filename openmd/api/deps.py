"""
API Dependencies Module

Request-scoped wiring between FastAPI and the access-control core: the
session cookie, the actor context built from it, and the policy objects.
Identity comes from two places, checked in this order:

1. A bearer access token issued by ``/auth/login`` and still present in Redis.
2. The user bound to the server-side session referenced by the session cookie.

Author tokens are read from the ``X-Author-Token`` header; endpoints that take
a JSON body may override it with the body's ``author_token`` field.
"""
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordBearer

from openmd.access import (
    ActorContext,
    Allow,
    Clock,
    Expired,
    Forbidden,
    NotFound,
    OwnershipResolver,
    SystemClock,
    VisibilityPolicy,
)
from openmd.core.config import settings
from openmd.core.redis_client import get_redis
from openmd.core.security import Argon2Hasher, create_session_token, decode_token, password_hasher
from openmd.core.sessions import RedisSessionStore, SessionData, SessionStore, new_session_id

logger = logging.getLogger(__name__)

reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login",
    auto_error=False,  # Anonymous actors are allowed on most routes
)


@lru_cache()
def _system_clock() -> SystemClock:
    return SystemClock()


def get_clock() -> Clock:
    return _system_clock()


def get_hasher() -> Argon2Hasher:
    return password_hasher


def get_visibility_policy(
    hasher: Argon2Hasher = Depends(get_hasher),
    clock: Clock = Depends(get_clock),
) -> VisibilityPolicy:
    return VisibilityPolicy(hasher, clock)


def get_ownership_resolver() -> OwnershipResolver:
    return OwnershipResolver(allow_ownerless=settings.ALLOW_OWNERLESS_MUTATION)


async def get_session_store() -> SessionStore:
    return RedisSessionStore(await get_redis())


async def get_session(
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_session_store),
) -> SessionData:
    """Load the caller's session, starting a new one if the cookie is missing or invalid"""
    cookie = request.cookies.get(settings.SESSION_COOKIE_NAME)
    payload = decode_token(cookie, "session") if cookie else None
    if payload and payload.get("sid"):
        return await store.load(payload["sid"])

    session_id = new_session_id()
    logger.debug("Starting session %s...", session_id[:8])
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        create_session_token(session_id),
        max_age=settings.SESSION_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=not settings.DEBUG and request.url.scheme == "https",
    )
    return SessionData(session_id=session_id)


async def _bearer_user_id(token: Optional[str]) -> Optional[int]:
    if not token:
        return None
    payload = decode_token(token, "access")
    if not payload or payload.get("uid") is None:
        return None

    # Tokens revoked by logout are no longer in Redis
    redis_client = await get_redis()
    stored = await redis_client.get(f"access_token:{payload['uid']}")
    if stored != token:
        return None
    return int(payload["uid"])


async def get_actor(
    session: SessionData = Depends(get_session),
    token: Optional[str] = Depends(reusable_oauth2),
    x_author_token: Optional[str] = Header(None, alias="X-Author-Token"),
) -> ActorContext:
    bearer_user_id = await _bearer_user_id(token)
    return ActorContext(
        session_user_id=bearer_user_id if bearer_user_id is not None else session.user_id,
        provided_author_token=x_author_token or None,
        ledger=session.ledger,
        session_id=session.session_id,
    )


def require_user(actor: ActorContext = Depends(get_actor)) -> int:
    """Dependency that requires a logged-in user and returns its id"""
    if actor.is_anonymous:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor.session_user_id


async def persist_unlocks(actor: ActorContext, store: SessionStore) -> None:
    """Flush ledger insertions made during this request to the session store"""
    pending = actor.ledger.drain_pending()
    if pending and actor.session_id:
        await store.record_unlocks(actor.session_id, pending)


def raise_for_verdict(verdict, resource: str = "Note") -> None:
    """Turn a denying verdict into the matching HTTP error.

    ``Allow`` and ``RequiresPassword`` are left to the caller, since both
    produce a 200 response with different bodies.
    """
    if isinstance(verdict, NotFound):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{resource} not found")
    if isinstance(verdict, Expired):
        raise HTTPException(status_code=status.HTTP_410_GONE, detail=f"{resource} has expired")
    if isinstance(verdict, Forbidden):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Not allowed to access this {resource.lower()}")


def ensure_authorized(result, resource: str = "Note") -> None:
    if not isinstance(result, Allow):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not allowed to modify this {resource.lower()}",
        )
