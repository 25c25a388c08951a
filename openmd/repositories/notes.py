from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from openmd.access.clock import as_utc
from openmd.access.records import NoteRecord, Visibility
from openmd.models.note import Note

# Columns a client may change after creation. The author token and the
# password settings are fixed at creation time.
UPDATABLE_FIELDS = {"title", "content", "metadata"}

LIST_LIMIT = 100


def _unexpired(now: Optional[datetime]) -> tuple:
    # Same rule as is_expired: a note expiring exactly at now is still live
    if now is None:
        return ()
    return (or_(Note.expires_at.is_(None), Note.expires_at >= as_utc(now)),)


class NoteRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, note_id: int) -> Optional[NoteRecord]:
        note = await self.db.get(Note, note_id, populate_existing=True)
        return NoteRecord.from_model(note) if note else None

    async def get_many(self, note_ids: List[int]) -> Dict[int, NoteRecord]:
        result = await self.db.execute(select(Note).where(Note.id.in_(note_ids)))
        return {note.id: NoteRecord.from_model(note) for note in result.scalars().all()}

    async def create(
        self,
        *,
        title: str,
        content: str,
        metadata: Dict[str, Any],
        visibility: Visibility,
        user_id: Optional[int] = None,
        password_hash: Optional[str] = None,
        expires_at=None,
        author_token: Optional[str] = None,
    ) -> NoteRecord:
        db_note = Note(
            user_id=user_id,
            title=title,
            content=content,
            metadata_=metadata,
            visibility=visibility.value,
            password_hash=password_hash,
            expires_at=expires_at,
            author_token=author_token,
        )
        self.db.add(db_note)
        await self.db.commit()
        await self.db.refresh(db_note)
        return NoteRecord.from_model(db_note)

    async def update(self, note_id: int, fields: Dict[str, Any]) -> bool:
        """Apply a partial update, returning False if the note is gone"""
        values = {}
        for name, value in fields.items():
            if name not in UPDATABLE_FIELDS:
                raise ValueError(f"Field {name!r} cannot be updated")
            values["metadata_" if name == "metadata" else name] = value
        if not values:
            return await self.db.get(Note, note_id) is not None

        values["updated_at"] = func.now()
        result = await self.db.execute(
            update(Note).where(Note.id == note_id).values(**values).execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount > 0

    async def delete(self, note_id: int) -> bool:
        # Shares go with the note through the foreign key cascade
        result = await self.db.execute(delete(Note).where(Note.id == note_id))
        await self.db.commit()
        return result.rowcount > 0

    async def list_visible(
        self,
        user_id: Optional[int] = None,
        include_own: bool = False,
        now: Optional[datetime] = None,
    ) -> List[NoteRecord]:
        """Public notes, plus the caller's own notes when asked for.

        With ``now`` given, notes that expired before it are left out.
        """
        condition = Note.visibility == Visibility.PUBLIC.value
        if include_own and user_id is not None:
            condition = or_(condition, Note.user_id == user_id)
        condition = and_(condition, *_unexpired(now))
        result = await self.db.execute(
            select(Note).where(condition).order_by(Note.updated_at.desc(), Note.id.desc()).limit(LIST_LIMIT)
        )
        return [NoteRecord.from_model(note) for note in result.scalars().all()]

    async def list_owned(self, user_id: int, now: Optional[datetime] = None) -> List[NoteRecord]:
        result = await self.db.execute(
            select(Note)
            .where(Note.user_id == user_id, *_unexpired(now))
            .order_by(Note.updated_at.desc(), Note.id.desc())
            .limit(LIST_LIMIT)
        )
        return [NoteRecord.from_model(note) for note in result.scalars().all()]
