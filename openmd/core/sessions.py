"""Server-side session storage.

A session is keyed by an opaque id carried in a signed cookie. It holds the
logged-in user (if any) and the unlock ledger. Redis layout::

    session:{sid}:user     -> user id (string)
    session:{sid}:notes    -> set of unlocked note ids
    session:{sid}:shares   -> set of unlocked share ids

Every key is refreshed to the session lifetime on write.
"""
import logging
import secrets
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Protocol, Set, Tuple

import redis.asyncio as redis

from openmd.access.ledger import NOTE, SHARE, UnlockLedger
from openmd.core.config import settings

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return secrets.token_urlsafe(24)


@dataclass
class SessionData:
    session_id: str
    user_id: Optional[int] = None
    ledger: UnlockLedger = field(default_factory=UnlockLedger)


class SessionStore(Protocol):
    async def load(self, session_id: str) -> SessionData:
        ...

    async def bind_user(self, session_id: str, user_id: int) -> None:
        ...

    async def clear_user(self, session_id: str) -> None:
        ...

    async def record_unlocks(self, session_id: str, entries: Iterable[Tuple[str, int]]) -> None:
        ...


class RedisSessionStore:
    def __init__(self, client: redis.Redis, ttl_seconds: int = None):
        self.client = client
        self.ttl_seconds = ttl_seconds or settings.SESSION_EXPIRE_DAYS * 24 * 60 * 60

    @staticmethod
    def _key(session_id: str, part: str) -> str:
        return f"session:{session_id}:{part}"

    async def load(self, session_id: str) -> SessionData:
        async with self.client.pipeline(transaction=False) as pipe:
            pipe.get(self._key(session_id, "user"))
            pipe.smembers(self._key(session_id, "notes"))
            pipe.smembers(self._key(session_id, "shares"))
            user_id, note_ids, share_ids = await pipe.execute()

        return SessionData(
            session_id=session_id,
            user_id=int(user_id) if user_id is not None else None,
            ledger=UnlockLedger(
                note_ids=(int(value) for value in note_ids),
                share_ids=(int(value) for value in share_ids),
            ),
        )

    async def bind_user(self, session_id: str, user_id: int) -> None:
        await self.client.set(self._key(session_id, "user"), str(user_id), ex=self.ttl_seconds)

    async def clear_user(self, session_id: str) -> None:
        await self.client.delete(self._key(session_id, "user"))

    async def record_unlocks(self, session_id: str, entries: Iterable[Tuple[str, int]]) -> None:
        parts = {NOTE: "notes", SHARE: "shares"}
        grouped: Dict[str, Set[str]] = {}
        for kind, resource_id in entries:
            grouped.setdefault(parts[kind], set()).add(str(resource_id))
        if not grouped:
            return

        async with self.client.pipeline(transaction=True) as pipe:
            for part, members in grouped.items():
                key = self._key(session_id, part)
                pipe.sadd(key, *members)
                pipe.expire(key, self.ttl_seconds)
            await pipe.execute()
        logger.debug("Session %s unlocked %s", session_id[:8], grouped)


class MemorySessionStore:
    """Process-local session store for tests and single-worker setups"""

    def __init__(self):
        self._users: Dict[str, int] = {}
        self._unlocked: Dict[str, Dict[str, Set[int]]] = {}

    async def load(self, session_id: str) -> SessionData:
        unlocked = self._unlocked.get(session_id, {})
        return SessionData(
            session_id=session_id,
            user_id=self._users.get(session_id),
            ledger=UnlockLedger(unlocked.get(NOTE, ()), unlocked.get(SHARE, ())),
        )

    async def bind_user(self, session_id: str, user_id: int) -> None:
        self._users[session_id] = user_id

    async def clear_user(self, session_id: str) -> None:
        self._users.pop(session_id, None)

    async def record_unlocks(self, session_id: str, entries: Iterable[Tuple[str, int]]) -> None:
        unlocked = self._unlocked.setdefault(session_id, {NOTE: set(), SHARE: set()})
        for kind, resource_id in entries:
            unlocked[kind].add(resource_id)
