from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from openmd.access.records import ShareRecord
from openmd.models.share import Share


class ShareRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, share_id: int) -> Optional[ShareRecord]:
        share = await self.db.get(Share, share_id, populate_existing=True)
        return ShareRecord.from_model(share) if share else None

    async def get_by_code(self, share_code: str) -> Optional[ShareRecord]:
        result = await self.db.execute(
            select(Share).where(Share.share_code == share_code).execution_options(populate_existing=True)
        )
        share = result.scalar_one_or_none()
        return ShareRecord.from_model(share) if share else None

    async def code_exists(self, share_code: str) -> bool:
        result = await self.db.execute(select(Share.id).where(Share.share_code == share_code))
        return result.first() is not None

    async def create(self, *, note_id: int, share_code: str, password_hash=None, expires_at=None) -> ShareRecord:
        db_share = Share(
            note_id=note_id,
            share_code=share_code,
            password_hash=password_hash,
            expires_at=expires_at,
        )
        self.db.add(db_share)
        await self.db.commit()
        await self.db.refresh(db_share)
        return ShareRecord.from_model(db_share)

    async def increment_views(self, share_id: int) -> bool:
        """Atomically bump the view counter in the database"""
        result = await self.db.execute(
            update(Share)
            .where(Share.id == share_id)
            .values(views=Share.views + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount > 0

    async def delete(self, share_id: int) -> bool:
        result = await self.db.execute(delete(Share).where(Share.id == share_id))
        await self.db.commit()
        return result.rowcount > 0
