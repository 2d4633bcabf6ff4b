"""
Domain Enumerations
====================

Closed sets of values for roles, statuses and locales.
Values match what is stored in the database; anything else is
rejected at the API boundary with a 400.
"""

from enum import Enum
from typing import Optional, Type, TypeVar


E = TypeVar("E", bound=Enum)


class Role(str, Enum):
    """Account role"""
    MEMBER = "user"
    ADMIN = "admin"


class AccountStatus(str, Enum):
    """Account lifecycle status. Only APPROVED accounts can log in."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApplicationStatus(str, Enum):
    """Registration application status. APPROVED/REJECTED are terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not ApplicationStatus.PENDING


class Language(str, Enum):
    """Preferred UI locale"""
    ZH = "zh"
    EN = "en"


class ApplicationAction(str, Enum):
    """Admin decision on a registration application"""
    APPROVE = "approve"
    REJECT = "reject"


def parse_enum(enum_cls: Type[E], value) -> Optional[E]:
    """Return the member for ``value`` or None if it is not a valid value."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None
