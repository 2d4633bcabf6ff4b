"""
Access Control
===============

Pure predicates that classify a (caller, resource, action) triple.

Nothing here touches the database or mutates state. Routes fetch rows
through the store (which already filters on the caller's id where it
can), then ask this module what to do with the result.

Hidden-resource policy: a caller who may not see a private map gets
NOT_FOUND, never FORBIDDEN. The same answer is given for reads and for
mutations, so the API never confirms that someone else's private map
exists.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union

from fastapi import HTTPException, status

from ..models.entities import Language, Role


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried inside a verified access token"""
    user_id: str
    email: str
    username: str
    role: Role
    language: Language


@dataclass(frozen=True)
class Anonymous:
    """Request without a (valid) bearer token"""


@dataclass(frozen=True)
class Identified:
    """Request with a verified bearer token"""
    claims: TokenClaims

    @property
    def user_id(self) -> str:
        return self.claims.user_id

    @property
    def role(self) -> Role:
        return self.claims.role


Caller = Union[Anonymous, Identified]


class Decision(str, Enum):
    ALLOW = "allow"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    MODIFY = "modify"


def caller_id(caller: Caller) -> Optional[str]:
    """Account id of the caller, None for anonymous requests"""
    if isinstance(caller, Identified):
        return caller.user_id
    return None


def check_authenticated(caller: Caller) -> Decision:
    if isinstance(caller, Identified):
        return Decision.ALLOW
    return Decision.UNAUTHENTICATED


def check_role(caller: Caller, role: Role) -> Decision:
    """UNAUTHENTICATED for anonymous callers, FORBIDDEN for the wrong role"""
    if isinstance(caller, Anonymous):
        return Decision.UNAUTHENTICATED
    if caller.role is role:
        return Decision.ALLOW
    return Decision.FORBIDDEN


def _owns(caller: Caller, mindmap: Dict) -> bool:
    owner_id = mindmap.get("user_id")
    if owner_id is None:
        # Ownerless legacy map
        return isinstance(caller, Identified)
    return isinstance(caller, Identified) and caller.user_id == owner_id


def check_mindmap_access(caller: Caller, mindmap: Optional[Dict], action: Action) -> Decision:
    """
    Decide whether ``caller`` may perform ``action`` on ``mindmap``.

    - READ:   public maps and ownerless maps are readable by anyone;
              private maps only by their owner.
    - CREATE: any signed-in caller (mindmap is ignored).
    - MODIFY: signed-in owner only (or anyone signed in for ownerless
              maps). Visibility does not grant write access.

    A missing row, or a row the caller may not see, is NOT_FOUND.
    """
    if action is Action.CREATE:
        return check_authenticated(caller)

    if action is Action.MODIFY and isinstance(caller, Anonymous):
        return Decision.UNAUTHENTICATED

    if mindmap is None:
        return Decision.NOT_FOUND

    if action is Action.READ:
        if mindmap.get("is_public") or mindmap.get("user_id") is None:
            return Decision.ALLOW
        return Decision.ALLOW if _owns(caller, mindmap) else Decision.NOT_FOUND

    if action is Action.MODIFY:
        return Decision.ALLOW if _owns(caller, mindmap) else Decision.NOT_FOUND

    raise ValueError(f"Unhandled action: {action}")


_DECISION_STATUS = {
    Decision.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    Decision.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    Decision.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def raise_for_decision(decision: Decision, message: Optional[str] = None) -> None:
    """Raise the HTTPException matching a non-ALLOW decision."""
    if decision is Decision.ALLOW:
        return

    defaults = {
        Decision.UNAUTHENTICATED: "Unauthorized",
        Decision.FORBIDDEN: "Forbidden",
        Decision.NOT_FOUND: "Not found",
    }
    headers = {"WWW-Authenticate": "Bearer"} if decision is Decision.UNAUTHENTICATED else None
    raise HTTPException(
        status_code=_DECISION_STATUS[decision],
        detail=message or defaults[decision],
        headers=headers,
    )
