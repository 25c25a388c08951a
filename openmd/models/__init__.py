from .user import User
from .note import Note
from .share import Share

__all__ = ["User", "Note", "Share"]
