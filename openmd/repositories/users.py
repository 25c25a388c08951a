from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from openmd.models.user import User


class UsernameTaken(Exception):
    pass


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_by_login(self, login: str) -> Optional[User]:
        """Look a user up by username or email"""
        result = await self.db.execute(
            select(User).where(or_(User.username == login, User.email == login))
        )
        return result.scalars().first()

    async def create(self, *, username: str, email: str, hashed_password: str) -> User:
        db_user = User(username=username, email=email, hashed_password=hashed_password)
        self.db.add(db_user)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise UsernameTaken(username) from exc
        await self.db.refresh(db_user)
        return db_user

    async def touch_last_login(self, user_id: int) -> None:
        await self.db.execute(
            update(User).where(User.id == user_id).values(last_login=func.now())
        )
        await self.db.commit()

    async def list_all(self) -> List[User]:
        result = await self.db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
        return list(result.scalars().all())
