"""Typed snapshots of notes and shares as seen by the access-control core."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Union


class Visibility(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    PASSWORD = "password"


@dataclass(frozen=True)
class NoteRecord:
    id: int
    title: str
    content: str
    visibility: Visibility = Visibility.PUBLIC
    owner_user_id: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    password_hash: Optional[str] = None
    expires_at: Optional[datetime] = None
    author_token: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    @classmethod
    def from_model(cls, note) -> "NoteRecord":
        """Build a record from a `openmd.models.Note` row"""
        return cls(
            id=note.id,
            title=note.title,
            content=note.content,
            visibility=Visibility(note.visibility),
            owner_user_id=note.user_id,
            metadata=dict(note.metadata_ or {}),
            password_hash=note.password_hash,
            expires_at=note.expires_at,
            author_token=note.author_token,
            created_at=note.created_at,
            updated_at=note.updated_at,
        )


@dataclass(frozen=True)
class ShareRecord:
    id: int
    note_id: int
    share_code: str
    password_hash: Optional[str] = None
    expires_at: Optional[datetime] = None
    views: int = 0
    created_at: Optional[datetime] = None

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    @classmethod
    def from_model(cls, share) -> "ShareRecord":
        """Build a record from a `openmd.models.Share` row"""
        return cls(
            id=share.id,
            note_id=share.note_id,
            share_code=share.share_code,
            password_hash=share.password_hash,
            expires_at=share.expires_at,
            views=share.views or 0,
            created_at=share.created_at,
        )


Resource = Union[NoteRecord, ShareRecord]


__all__ = ["Visibility", "NoteRecord", "ShareRecord", "Resource"]
