"""
services/account_service.py
---------------------------
Operator accounts and roles.

Operators are identified by their Telegram account; usernames are 5-10
letters and stored lower-case. Only admins may create operators or change
roles; a backend_admin is not an admin. Telegram IDs listed in
BOOTSTRAP_ADMIN_IDS are admins even before any role row exists, so the
first admin can set everybody else up.
"""

import re
from typing import Optional

from config import BOOTSTRAP_ADMIN_IDS
from models.operator import Operator, Role
from repositories.operator_repo import OperatorRepository
from utils.errors import AuthorizationError, NotFoundError, ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z]{5,10}$")
BOOTSTRAP_USERNAME = "admin"


def validate_username(username: str) -> str:
    """
    Raises:
        ValidationError: If the username is not 5-10 letters.

    Returns:
        The username in lower case.
    """
    if not username or not USERNAME_PATTERN.match(username.strip()):
        raise ValidationError("Username must be 5-10 letters only")
    return username.strip().lower()


def parse_role(value: Optional[str]) -> Role:
    """Parse a role name, defaulting to the lowest tier when empty."""
    if not value:
        return Role.EMPLOYEE
    try:
        return Role.parse(value)
    except ValueError:
        allowed = ", ".join(r.value for r in Role)
        raise ValidationError(f"Unknown role '{value}'. Use one of: {allowed}")


class AccountService:
    """Looks up operators and manages their accounts."""

    def __init__(
        self,
        repo: Optional[OperatorRepository] = None,
        bootstrap_admin_ids: Optional[list[int]] = None,
    ):
        self.repo = repo or OperatorRepository()
        self.bootstrap_admin_ids = (
            BOOTSTRAP_ADMIN_IDS if bootstrap_admin_ids is None else bootstrap_admin_ids
        )

    def get_operator(self, telegram_id: int) -> Optional[Operator]:
        """
        Resolve the operator behind a Telegram account.

        Returns:
            The Operator with its highest role, or None if unknown.
        """
        operator = self.repo.get_by_telegram_id(telegram_id)
        if telegram_id not in self.bootstrap_admin_ids:
            return operator
        if operator is None:
            return Operator(telegram_id=telegram_id, username=BOOTSTRAP_USERNAME, role=Role.ADMIN)
        operator.role = Role.highest([operator.role, Role.ADMIN])
        return operator

    def list_operators(self) -> list[Operator]:
        return self.repo.get_all()

    def create_operator(
        self, caller: Operator, telegram_id: int, username: str, role: Optional[str] = None
    ) -> Operator:
        """
        Create an operator account.

        Raises:
            AuthorizationError: If the caller is not an admin.
            ValidationError: If the username is malformed or already taken,
                or the Telegram account is already registered.
        """
        self._require_admin(caller)
        username = validate_username(username)
        parsed_role = parse_role(role)

        if self.repo.get_by_username(username):
            raise ValidationError("Username already taken")
        if self.repo.get_by_telegram_id(telegram_id):
            raise ValidationError(f"Telegram account {telegram_id} is already registered")

        operator = self.repo.add(Operator(telegram_id=telegram_id, username=username, role=parsed_role))
        logger.info(f"{caller.username} created operator {username} ({parsed_role.value})")
        return operator

    def set_role(self, caller: Operator, username: str, role: str) -> Operator:
        """
        Replace an operator's role.

        Raises:
            AuthorizationError: If the caller is not an admin.
            NotFoundError: If no operator has that username.
        """
        self._require_admin(caller)
        parsed_role = parse_role(role)
        operator = self.repo.get_by_username(validate_username(username))
        if operator is None:
            raise NotFoundError(f"Operator '{username}' not found")
        self.repo.set_role(operator.telegram_id, parsed_role)
        operator.role = parsed_role
        logger.info(f"{caller.username} set role of {operator.username} to {parsed_role.value}")
        return operator

    def operators_with_role(self, role: Role) -> list[Operator]:
        """Operators whose resolved role is exactly `role`."""
        return [o for o in self.repo.get_all() if o.role == role]

    @staticmethod
    def _require_admin(caller: Operator) -> None:
        if not caller.role.satisfies(Role.ADMIN):
            raise AuthorizationError("Admin access required")
