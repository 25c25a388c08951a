"""Mutation rights on notes.

Rules are checked in priority order and the first match wins:

1. The resource carries an author token: only an exact match is accepted.
   A mismatch is final, even when the session user owns the resource.
2. The resource has an owner: the session user must be that owner.
3. Neither: anyone who can reach the resource may mutate it, unless the
   resolver was built with ``allow_ownerless=False``.

Update and delete go through the same rules.
"""
from __future__ import annotations

import enum
import logging
from typing import Optional

from .ledger import ActorContext
from .verdicts import Allow, AuthorizeResult, Forbidden

audit_logger = logging.getLogger("openmd.audit")


class Operation(str, enum.Enum):
    UPDATE = "update"
    DELETE = "delete"


def mask_token(token: Optional[str]) -> Optional[str]:
    """First eight characters of a token, safe to log or return."""
    if not token:
        return None
    return token[:8] + "..."


class OwnershipResolver:
    def __init__(self, allow_ownerless: bool = True):
        self.allow_ownerless = allow_ownerless

    def authorize(self, resource, actor: ActorContext, operation: Operation) -> AuthorizeResult:
        result = self._decide(resource, actor)
        audit_logger.info(
            "%s attempt on %s %s: provided_token=%s resource_has_token=%s "
            "resource_has_owner=%s session_user=%s -> %s",
            Operation(operation).value,
            type(resource).__name__,
            getattr(resource, "id", None),
            mask_token(actor.provided_author_token) or "none",
            bool(getattr(resource, "author_token", None)),
            getattr(resource, "owner_user_id", None) is not None,
            actor.session_user_id,
            "allowed" if isinstance(result, Allow) else "rejected",
        )
        return result

    def _decide(self, resource, actor: ActorContext) -> AuthorizeResult:
        resource_id = getattr(resource, "id", None)

        author_token = getattr(resource, "author_token", None)
        if author_token:
            if actor.provided_author_token is not None and actor.provided_author_token == author_token:
                return Allow()
            return Forbidden(resource_id)

        owner_user_id = getattr(resource, "owner_user_id", None)
        if owner_user_id is not None:
            if actor.session_user_id is not None and actor.session_user_id == owner_user_id:
                return Allow()
            return Forbidden(resource_id)

        if self.allow_ownerless:
            return Allow()
        return Forbidden(resource_id)


__all__ = ["Operation", "OwnershipResolver", "mask_token"]
