from datetime import timedelta
from typing import List, Union
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from openmd.access import (
    ActorContext,
    Clock,
    NotFound,
    NoteRecord,
    Operation,
    OwnershipResolver,
    RequiresPassword,
    Visibility,
    VisibilityPolicy,
    WrongPassword,
    mask_token,
)
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
    require_user,
)
from openmd.core.database import get_db
from openmd.core.security import Argon2Hasher
from openmd.core.sessions import SessionStore
from openmd.repositories.notes import NoteRepository
from openmd.schemas.note import (
    LockedNoteResponse,
    NoteCreate,
    NoteCreatedResponse,
    NoteResponse,
    NoteUpdate,
    TokenComparison,
    TokenSide,
    UnlockRequest,
)

router = APIRouter()


def to_response(note: NoteRecord) -> NoteResponse:
    return NoteResponse(**note_payload(note))


@router.post("", response_model=NoteCreatedResponse)
async def create_note(
    note: NoteCreate,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    hasher: Argon2Hasher = Depends(get_hasher),
    clock: Clock = Depends(get_clock),
):
    """Create a note, anonymously or as the logged-in user"""
    if note.visibility == Visibility.PRIVATE and actor.is_anonymous:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Login required to create private notes"
        )

    password_hash = None
    if note.visibility == Visibility.PASSWORD:
        password_hash = hasher.hash(note.password)

    expires_at = None
    if note.expires_in:
        expires_at = clock.now() + timedelta(hours=note.expires_in)

    record = await NoteRepository(db).create(
        title=note.title or "Untitled",
        content=note.content,
        metadata=note.metadata,
        visibility=note.visibility,
        user_id=actor.session_user_id,
        password_hash=password_hash,
        expires_at=expires_at,
        author_token=note.author_token or None,
    )

    return NoteCreatedResponse(
        **note_payload(record),
        author_token=mask_token(record.author_token),
    )


@router.get("", response_model=List[NoteResponse])
async def list_notes(
    include_private: bool = Query(False, description="Also return the caller's own non-public notes"),
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """List public notes that have not expired, newest first"""
    notes = await NoteRepository(db).list_visible(
        user_id=actor.session_user_id,
        include_own=include_private,
        now=clock.now(),
    )
    return [to_response(note) for note in notes]


@router.get("/private", response_model=List[NoteResponse])
async def list_private_notes(
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """List the logged-in user's notes that have not expired.

    Password protected notes are listed in full: the owner is never asked
    for their own password.
    """
    notes = await NoteRepository(db).list_owned(user_id, now=clock.now())
    return [to_response(note) for note in notes]


@router.get("/{note_id}", response_model=Union[NoteResponse, LockedNoteResponse])
async def get_note(
    note_id: int,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    policy: VisibilityPolicy = Depends(get_visibility_policy),
):
    """Get a note, subject to expiry, visibility and password protection"""
    note = await NoteRepository(db).get_by_id(note_id)
    verdict = policy.evaluate_note(note, actor)

    if isinstance(verdict, RequiresPassword):
        return LockedNoteResponse(id=verdict.resource_id, title=verdict.title)
    raise_for_verdict(verdict)
    return NoteResponse(**verdict.payload)


@router.put("/{note_id}")
async def update_note(
    note_id: int,
    note_update: NoteUpdate,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    resolver: OwnershipResolver = Depends(get_ownership_resolver),
):
    """Update title, content or metadata of a note"""
    notes = NoteRepository(db)
    note = await notes.get_by_id(note_id)
    if note is None:
        raise_for_verdict(NotFound())

    if note_update.author_token:
        actor.provided_author_token = note_update.author_token
    ensure_authorized(resolver.authorize(note, actor, Operation.UPDATE))

    # Explicit nulls are ignored rather than clearing required columns
    fields = {
        name: value
        for name, value in note_update.model_dump(exclude_unset=True, exclude={"author_token"}).items()
        if value is not None
    }
    if not await notes.update(note_id, fields):
        raise_for_verdict(NotFound())

    return {"success": True}


@router.delete("/{note_id}")
async def delete_note(
    note_id: int,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    resolver: OwnershipResolver = Depends(get_ownership_resolver),
):
    """Delete a note and, through the foreign key, all of its shares"""
    notes = NoteRepository(db)
    note = await notes.get_by_id(note_id)
    if note is None:
        raise_for_verdict(NotFound())

    ensure_authorized(resolver.authorize(note, actor, Operation.DELETE))
    await notes.delete(note_id)

    return {"success": True}


@router.post("/{note_id}/unlock")
async def unlock_note(
    note_id: int,
    body: UnlockRequest,
    actor: ActorContext = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    policy: VisibilityPolicy = Depends(get_visibility_policy),
    store: SessionStore = Depends(get_session_store),
):
    """Check a note password and remember the unlock for this session"""
    note = await NoteRepository(db).get_by_id(note_id)
    result = policy.unlock(note, actor, body.password)

    if isinstance(result, NotFound):
        raise_for_verdict(result)
    if isinstance(result, WrongPassword):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Wrong password")

    await persist_unlocks(actor, store)
    return {"success": True}


@router.get("/{note_id}/same-token/{other_id}", response_model=TokenComparison)
async def compare_tokens(note_id: int, other_id: int, db: AsyncSession = Depends(get_db)):
    """Tell whether two notes were created with the same author token"""
    notes = await NoteRepository(db).get_many([note_id, other_id])
    if note_id not in notes or other_id not in notes:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="One or both notes do not exist"
        )

    first, second = notes[note_id], notes[other_id]
    return TokenComparison(
        note1=TokenSide(id=first.id, has_token=bool(first.author_token), token_prefix=mask_token(first.author_token)),
        note2=TokenSide(id=second.id, has_token=bool(second.author_token), token_prefix=mask_token(second.author_token)),
        same_token=first.author_token == second.author_token,
    )
