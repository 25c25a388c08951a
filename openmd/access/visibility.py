"""Read-path decisions for notes and shares.

``VisibilityPolicy`` is a pure function of a record snapshot, an actor
context and the clock. The only state it touches is the actor's unlock
ledger, and only from ``unlock``.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

from .clock import Clock, SystemClock, is_expired
from .ledger import ActorContext
from .records import NoteRecord, Resource, ShareRecord, Visibility
from .verdicts import (
    Allow,
    Expired,
    Forbidden,
    NotFound,
    RequiresPassword,
    UnlockResult,
    Unlocked,
    Verdict,
    WrongPassword,
)

logger = logging.getLogger(__name__)


class PasswordVerifier(Protocol):
    def verify(self, plaintext: str, hashed: str) -> bool:
        ...


def note_payload(note: NoteRecord) -> Dict[str, Any]:
    """Public view of a note. Never includes the hash or the author token."""
    return {
        "id": note.id,
        "user_id": note.owner_user_id,
        "title": note.title,
        "content": note.content,
        "metadata": dict(note.metadata),
        "visibility": note.visibility.value,
        "has_password": note.has_password,
        "expires_at": note.expires_at,
        "created_at": note.created_at,
        "updated_at": note.updated_at,
    }


def share_payload(share: ShareRecord) -> Dict[str, Any]:
    return {
        "id": share.id,
        "note_id": share.note_id,
        "share_code": share.share_code,
        "has_password": share.has_password,
        "expires_at": share.expires_at,
        "views": share.views,
        "created_at": share.created_at,
    }


class VisibilityPolicy:
    def __init__(self, hasher: PasswordVerifier, clock: Optional[Clock] = None):
        self.hasher = hasher
        self.clock = clock or SystemClock()

    def evaluate_note(self, note: Optional[NoteRecord], actor: ActorContext) -> Verdict:
        if note is None:
            return NotFound()

        # Expiry wins over ownership and unlock state
        if is_expired(note.expires_at, self.clock.now()):
            return Expired(note.id)

        if note.visibility == Visibility.PRIVATE:
            if actor.session_user_id is not None and actor.session_user_id == note.owner_user_id:
                return Allow(note_payload(note))
            return Forbidden(note.id)

        if note.visibility == Visibility.PASSWORD:
            if note.password_hash:
                if actor.ledger.has_note(note.id):
                    return Allow(note_payload(note))
                return RequiresPassword(note.id, title=note.title)
            logger.warning("Note %s is password protected but has no password hash", note.id)

        return Allow(note_payload(note))

    def evaluate_share(self, share: Optional[ShareRecord], actor: ActorContext) -> Verdict:
        if share is None:
            return NotFound()

        if is_expired(share.expires_at, self.clock.now()):
            return Expired(share.id)

        if share.password_hash and not actor.ledger.has_share(share.id):
            return RequiresPassword(share.id)

        return Allow(share_payload(share))

    def evaluate(self, resource: Resource, actor: ActorContext) -> Verdict:
        if isinstance(resource, ShareRecord):
            return self.evaluate_share(resource, actor)
        return self.evaluate_note(resource, actor)

    def unlock(self, resource: Optional[Resource], actor: ActorContext, supplied_password: Optional[str]) -> UnlockResult:
        """Check a password and remember the success in the actor's ledger.

        A resource without a password hash unlocks trivially. Expiry is not
        consulted here; the read path still reports an expired resource as
        expired after a successful unlock.
        """
        if resource is None:
            return NotFound()

        if resource.password_hash:
            if not supplied_password or not self.hasher.verify(supplied_password, resource.password_hash):
                return WrongPassword(resource.id)

        if isinstance(resource, ShareRecord):
            actor.ledger.add_share(resource.id)
        else:
            actor.ledger.add_note(resource.id)
        return Unlocked(resource.id)


__all__ = ["PasswordVerifier", "VisibilityPolicy", "note_payload", "share_payload"]
