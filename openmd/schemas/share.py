from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class ShareCreate(BaseModel):
    note_id: int
    password: Optional[str] = None
    expires_in: Optional[int] = Field(None, gt=0, description="Hours until the link expires")
    author_token: Optional[str] = None


class ShareCreatedResponse(BaseModel):
    id: int
    share_code: str
    share_url: str
    expires_at: Optional[datetime] = None


class ShareResponse(BaseModel):
    id: int
    share_code: str
    has_password: bool
    expires_at: Optional[datetime] = None
    views: int
    created_at: Optional[datetime] = None


class LockedShareResponse(BaseModel):
    share_code: str
    requires_password: bool = True
    message: str = "This share link requires a password"
