from .notes import NoteRepository
from .shares import ShareRepository
from .users import UserRepository

__all__ = ["NoteRepository", "ShareRepository", "UserRepository"]
