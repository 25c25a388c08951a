from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import Any, Dict, Optional

from openmd.access.records import Visibility


class NoteBase(BaseModel):
    title: Optional[str] = None
    content: str = Field(..., min_length=1)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class NoteCreate(NoteBase):
    visibility: Visibility = Visibility.PUBLIC
    password: Optional[str] = None
    expires_in: Optional[int] = Field(None, gt=0, description="Hours until the note expires")
    author_token: Optional[str] = None

    @model_validator(mode="after")
    def password_matches_visibility(self):
        if self.visibility == Visibility.PASSWORD and not self.password:
            raise ValueError("A password is required for password protected notes")
        return self


class NoteUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    author_token: Optional[str] = None


class NoteResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    title: str
    content: str
    metadata: Dict[str, Any] = {}
    visibility: Visibility
    has_password: bool = False
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NoteCreatedResponse(NoteResponse):
    # Only a prefix of the author token is ever echoed back
    author_token: Optional[str] = None


class LockedNoteResponse(BaseModel):
    id: int
    title: str
    requires_password: bool = True
    message: str = "This note requires a password"


class UnlockRequest(BaseModel):
    password: Optional[str] = None


class TokenSide(BaseModel):
    id: int
    has_token: bool
    token_prefix: Optional[str] = None


class TokenComparison(BaseModel):
    note1: TokenSide
    note2: TokenSide
    same_token: bool
