from .user import UserCreate, UserResponse
from .note import NoteCreate, NoteUpdate, NoteResponse, NoteCreatedResponse, LockedNoteResponse, UnlockRequest
from .share import ShareCreate, ShareCreatedResponse, ShareResponse, LockedShareResponse
from .auth import Token

__all__ = [
    "UserCreate", "UserResponse",
    "NoteCreate", "NoteUpdate", "NoteResponse", "NoteCreatedResponse", "LockedNoteResponse", "UnlockRequest",
    "ShareCreate", "ShareCreatedResponse", "ShareResponse", "LockedShareResponse",
    "Token",
]
