"""
models/operator.py
------------------
Operators (staff using the bot) and their roles.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional


class Role(str, Enum):
    """
    Closed set of operator roles.

    Precedence backend_admin > admin > employee only decides which role an
    operator with several role rows ends up with. Access is not a ladder:
    admin and backend_admin both cover employee commands, but neither
    covers the other.
    """

    EMPLOYEE = "employee"
    ADMIN = "admin"
    BACKEND_ADMIN = "backend_admin"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def satisfies(self, required: "Role") -> bool:
        return required in _GRANTS[self]

    @classmethod
    def parse(cls, value: str) -> "Role":
        """
        Map a loosely typed role string to a Role.

        Raises:
            ValueError: If the value is not a known role.
        """
        return cls(value.strip().lower())

    @classmethod
    def highest(cls, roles: Iterable["Role"]) -> Optional["Role"]:
        """Pick the role with the highest precedence, or None if empty."""
        return max(roles, key=lambda r: r.rank, default=None)


_RANKS = {
    Role.EMPLOYEE: 0,
    Role.ADMIN: 1,
    Role.BACKEND_ADMIN: 2,
}

_GRANTS = {
    Role.EMPLOYEE: frozenset({Role.EMPLOYEE}),
    Role.ADMIN: frozenset({Role.EMPLOYEE, Role.ADMIN}),
    Role.BACKEND_ADMIN: frozenset({Role.EMPLOYEE, Role.BACKEND_ADMIN}),
}


@dataclass
class Operator:
    """A staff member identified by their Telegram account."""
    telegram_id: int
    username: str
    role: Role = Role.EMPLOYEE
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def __str__(self) -> str:
        return f"{self.username} ({self.role.value}) - {self.telegram_id}"
