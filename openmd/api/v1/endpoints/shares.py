import logging
import secrets
from datetime import timedelta
from typing import Optional, Union
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from openmd.access import (
    ActorContext,
    Clock,
    Expired,
    Forbidden,
    NotFound,
    NoteRecord,
    Operation,
    OwnershipResolver,
    RequiresPassword,
    ShareRecord,
    VisibilityPolicy,
    WrongPassword,
)
from openmd.access.clock import is_expired
from openmd.access.visibility import note_payload
from openmd.api.deps import (
    ensure_authorized,
    get_actor,
    get_clock,
    get_hasher,
    get_ownership_resolver,
    get_session_store,
    get_visibility_policy,
    persist_unlocks,
    raise_for_verdict,
)
from openmd.core.config import settings
from openmd.core.database import get_db
from openmd.core.security import Argon2Hasher
from openmd.core.sessions import SessionStore
from openmd.repositories.notes import NoteRepository
from openmd.repositories.shares import ShareRepository
from openmd.schemas.note import NoteResponse, UnlockRequest
from openmd.schemas.share import LockedShareResponse, ShareCreate, ShareCreatedResponse, ShareResponse

logger = logging.getLogger(__name__)

router = APIRouter()

SHARE_CODE_ATTEMPTS = 5


async def generate_share_code(shares: ShareRepository) -> str:
    """Random url-safe code not yet used by another share"""
    for _ in range(SHARE_CODE_ATTEMPTS):
        code = secrets.token_urlsafe(settings.SHARE_CODE_BYTES)
        if not await shares.code_exists(code):
            return code
    raise RuntimeError("Could not generate a unique share code")


def share_url(request: Request, code: str) -> str:
    base = settings.PUBLIC_BASE_URL or str(request.base_url)
    return f"{base.rstrip('/')}{settings.API_V1_STR}/shares/{code}/content"


def authorize_through_note(
    share: ShareRecord,
    note: Optional[NoteRecord],
    actor: ActorContext,
    resolver: OwnershipResolver,
    operation: Operation,
) -> None:
    """Require the rights to mutate the shared note; a share without one is refused"""
    if note is None:
        logger.warning("Share %s has no parent note, refusing to %s it", share.id, operation.value)
        ensure_authorized(Forbidden(share.id), "Share")
    ensure_authorized(resolver.authorize(note, actor, operation), "Share")


@router.post("", response_model=ShareCreatedResponse)
async def create_share(
    share: ShareCreate,
    request: Request,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    hasher: Argon2Hasher = Depends(get_hasher),
    clock: Clock = Depends(get_clock),
    resolver: OwnershipResolver = Depends(get_ownership_resolver),
):
    """Create a share link for a note, optionally password protected and expiring"""
    note = await NoteRepository(db).get_by_id(share.note_id)
    if note is None:
        raise_for_verdict(NotFound())

    # Sharing exposes the note, so it takes the same rights as editing it
    if share.author_token:
        actor.provided_author_token = share.author_token
    ensure_authorized(resolver.authorize(note, actor, Operation.UPDATE))

    expires_at = None
    if share.expires_in:
        expires_at = clock.now() + timedelta(hours=share.expires_in)

    shares = ShareRepository(db)
    record = await shares.create(
        note_id=note.id,
        share_code=await generate_share_code(shares),
        password_hash=hasher.hash(share.password) if share.password else None,
        expires_at=expires_at,
    )
    logger.info("Share %s created for note %s", record.id, note.id)

    return ShareCreatedResponse(
        id=record.id,
        share_code=record.share_code,
        share_url=share_url(request, record.share_code),
        expires_at=record.expires_at,
    )


@router.get("/{code}", response_model=ShareResponse)
async def get_share(
    code: str,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Get share link information without revealing the note"""
    share = await ShareRepository(db).get_by_code(code)
    if share is None:
        raise_for_verdict(NotFound(), "Share")
    if is_expired(share.expires_at, clock.now()):
        raise_for_verdict(Expired(share.id), "Share")

    return ShareResponse(
        id=share.id,
        share_code=share.share_code,
        has_password=share.has_password,
        expires_at=share.expires_at,
        views=share.views,
        created_at=share.created_at,
    )


@router.post("/{code}/unlock")
async def unlock_share(
    code: str,
    body: UnlockRequest,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    policy: VisibilityPolicy = Depends(get_visibility_policy),
    store: SessionStore = Depends(get_session_store),
):
    """Check a share password and remember the unlock for this session"""
    share = await ShareRepository(db).get_by_code(code)
    result = policy.unlock(share, actor, body.password)

    if isinstance(result, NotFound):
        raise_for_verdict(result, "Share")
    if isinstance(result, WrongPassword):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Wrong password")

    await persist_unlocks(actor, store)
    return {"success": True}


@router.get("/{code}/content", response_model=Union[NoteResponse, LockedShareResponse])
async def view_share(
    code: str,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    policy: VisibilityPolicy = Depends(get_visibility_policy),
    clock: Clock = Depends(get_clock),
):
    """Show the shared note and count the view"""
    shares = ShareRepository(db)
    share = await shares.get_by_code(code)
    verdict = policy.evaluate_share(share, actor)

    if isinstance(verdict, RequiresPassword):
        return LockedShareResponse(share_code=code)
    raise_for_verdict(verdict, "Share")

    # The link bypasses the note's visibility mode but not its expiry
    note = await NoteRepository(db).get_by_id(share.note_id)
    if note is None:
        raise_for_verdict(NotFound())
    if is_expired(note.expires_at, clock.now()):
        raise_for_verdict(Expired(note.id))

    await shares.increment_views(share.id)
    return NoteResponse(**note_payload(note))


@router.delete("/{code}")
async def revoke_share(
    code: str,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    resolver: OwnershipResolver = Depends(get_ownership_resolver),
):
    """Delete a share link; requires the rights to modify the shared note"""
    shares = ShareRepository(db)
    share = await shares.get_by_code(code)
    if share is None:
        raise_for_verdict(NotFound(), "Share")

    note = await NoteRepository(db).get_by_id(share.note_id)
    authorize_through_note(share, note, actor, resolver, Operation.DELETE)

    await shares.delete(share.id)
    return {"success": True}
