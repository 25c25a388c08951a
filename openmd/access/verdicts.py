"""Closed sets of outcomes returned by the access-control core.

Every outcome here is an expected business result, not a fault: callers
branch on the variant (usually with ``isinstance``) to build a response.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class Allow:
    """Access granted. ``payload`` is the redacted view of the resource."""

    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RequiresPassword:
    """The resource is password protected and not yet unlocked.

    The title of a note is still exposed so clients can render a prompt.
    """

    resource_id: int
    title: Optional[str] = None


@dataclass(frozen=True)
class Forbidden:
    resource_id: Optional[int] = None


@dataclass(frozen=True)
class Expired:
    resource_id: int


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Unlocked:
    resource_id: int


@dataclass(frozen=True)
class WrongPassword:
    resource_id: int


Verdict = Union[Allow, RequiresPassword, Forbidden, Expired, NotFound]
UnlockResult = Union[Unlocked, WrongPassword, NotFound]
AuthorizeResult = Union[Allow, Forbidden]


__all__ = [
    "Allow",
    "RequiresPassword",
    "Forbidden",
    "Expired",
    "NotFound",
    "Unlocked",
    "WrongPassword",
    "Verdict",
    "UnlockResult",
    "AuthorizeResult",
]
