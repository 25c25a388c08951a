"""Session-scoped unlock state and the actor context built around it."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Tuple

NOTE = "note"
SHARE = "share"


class UnlockLedger:
    """Append-only record of the notes and shares an actor has unlocked.

    The two id sets are disjoint namespaces: note 3 and share 3 are tracked
    independently. Ids are never removed. Insertions made during a request
    are kept as pending entries so the caller can flush them to the session
    store once the request is done.
    """

    def __init__(
        self,
        note_ids: Optional[Iterable[int]] = None,
        share_ids: Optional[Iterable[int]] = None,
    ) -> None:
        self._note_ids: Set[int] = set(note_ids or ())
        self._share_ids: Set[int] = set(share_ids or ())
        self._pending: List[Tuple[str, int]] = []

    @property
    def note_ids(self) -> frozenset:
        return frozenset(self._note_ids)

    @property
    def share_ids(self) -> frozenset:
        return frozenset(self._share_ids)

    def has_note(self, note_id: int) -> bool:
        return note_id in self._note_ids

    def has_share(self, share_id: int) -> bool:
        return share_id in self._share_ids

    def add_note(self, note_id: int) -> None:
        self._add(NOTE, note_id, self._note_ids)

    def add_share(self, share_id: int) -> None:
        self._add(SHARE, share_id, self._share_ids)

    def _add(self, kind: str, resource_id: int, bucket: Set[int]) -> None:
        if resource_id in bucket:
            return
        bucket.add(resource_id)
        self._pending.append((kind, resource_id))

    def drain_pending(self) -> List[Tuple[str, int]]:
        """Return and forget the insertions not yet persisted."""
        pending, self._pending = self._pending, []
        return pending

    def __repr__(self) -> str:
        return f"UnlockLedger(notes={sorted(self._note_ids)}, shares={sorted(self._share_ids)})"


@dataclass
class ActorContext:
    """Who is asking, as far as the access-control core is concerned.

    One instance per request. ``session_id`` is only used by the transport
    layer to persist ledger changes; the policy never looks at it.
    """

    session_user_id: Optional[int] = None
    provided_author_token: Optional[str] = None
    ledger: UnlockLedger = field(default_factory=UnlockLedger)
    session_id: Optional[str] = None

    @property
    def is_anonymous(self) -> bool:
        return self.session_user_id is None

    @property
    def unlocked_note_ids(self) -> frozenset:
        return self.ledger.note_ids

    @property
    def unlocked_share_ids(self) -> frozenset:
        return self.ledger.share_ids


__all__ = ["NOTE", "SHARE", "UnlockLedger", "ActorContext"]
