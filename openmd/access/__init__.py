"""Access control for notes and shares: visibility, unlock state and ownership."""

from .clock import Clock, FrozenClock, SystemClock
from .ledger import ActorContext, UnlockLedger
from .ownership import Operation, OwnershipResolver, mask_token
from .records import NoteRecord, ShareRecord, Visibility
from .verdicts import (
    Allow,
    Expired,
    Forbidden,
    NotFound,
    RequiresPassword,
    Unlocked,
    WrongPassword,
)
from .visibility import PasswordVerifier, VisibilityPolicy

__all__ = [
    "ActorContext",
    "UnlockLedger",
    "Clock",
    "SystemClock",
    "FrozenClock",
    "NoteRecord",
    "ShareRecord",
    "Visibility",
    "Operation",
    "OwnershipResolver",
    "mask_token",
    "PasswordVerifier",
    "VisibilityPolicy",
    "Allow",
    "Expired",
    "Forbidden",
    "NotFound",
    "RequiresPassword",
    "Unlocked",
    "WrongPassword",
]
