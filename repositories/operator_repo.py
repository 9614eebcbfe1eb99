"""
repositories/operator_repo.py
-----------------------------
Data access layer for operators and their role rows.
"""

from typing import Optional

import psycopg2

from db.connection import get_connection, release_connection, transaction
from models.operator import Operator, Role
from utils.errors import TransientIOError
from utils.logger import get_logger

logger = get_logger(__name__)

# One row per operator; role rows are folded into an array and resolved by precedence.
_SELECT_SQL = """
    SELECT o.id, o.telegram_id, o.username, o.created_at,
           COALESCE(ARRAY_AGG(r.role) FILTER (WHERE r.role IS NOT NULL), '{}')
    FROM operators o
    LEFT JOIN user_roles r ON r.telegram_id = o.telegram_id
"""


class OperatorRepository:
    """Repository for the operators and user_roles tables."""

    # ── CREATE ────────────────────────────────────────────

    def add(self, operator: Operator) -> Operator:
        """
        Insert an operator together with its role row.

        Raises:
            TransientIOError: If the insert failed (including a duplicate
                username or Telegram ID).
        """
        with transaction(f"add operator {operator.username}") as cur:
            cur.execute(
                "INSERT INTO operators (telegram_id, username) VALUES (%s, %s) "
                "RETURNING id, created_at;",
                (operator.telegram_id, operator.username),
            )
            row = cur.fetchone()
            cur.execute(
                "INSERT INTO user_roles (telegram_id, role) VALUES (%s, %s);",
                (operator.telegram_id, operator.role.value),
            )
        operator.id = row[0]
        operator.created_at = row[1]
        logger.info(f"Added operator {operator.username} as {operator.role.value}")
        return operator

    # ── READ ──────────────────────────────────────────────

    def get_by_telegram_id(self, telegram_id: int) -> Optional[Operator]:
        return self._fetch_one("o.telegram_id = %s", telegram_id)

    def get_by_username(self, username: str) -> Optional[Operator]:
        return self._fetch_one("o.username = %s", username.lower())

    def get_all(self) -> list[Operator]:
        sql = _SELECT_SQL + " GROUP BY o.id ORDER BY o.username;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql)
                return [self._row_to_operator(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to fetch operators: {e}")
            raise TransientIOError("Failed to fetch operators") from e
        finally:
            release_connection(conn)

    # ── UPDATE ────────────────────────────────────────────

    def set_role(self, telegram_id: int, role: Role) -> None:
        """Replace every role row of an operator with a single one."""
        with transaction(f"set role of {telegram_id}") as cur:
            cur.execute("DELETE FROM user_roles WHERE telegram_id = %s;", (telegram_id,))
            cur.execute(
                "INSERT INTO user_roles (telegram_id, role) VALUES (%s, %s);",
                (telegram_id, role.value),
            )
        logger.info(f"Operator {telegram_id} is now {role.value}")

    # ── HELPERS ───────────────────────────────────────────

    def _fetch_one(self, condition: str, value) -> Optional[Operator]:
        sql = _SELECT_SQL + f" WHERE {condition} GROUP BY o.id;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (value,))
                row = cur.fetchone()
                return self._row_to_operator(row) if row else None
        except psycopg2.Error as e:
            logger.error(f"Failed to fetch operator ({condition} {value}): {e}")
            raise TransientIOError("Failed to fetch operator") from e
        finally:
            release_connection(conn)

    @staticmethod
    def _row_to_operator(row: tuple) -> Operator:
        """Convert a database row to an Operator, resolving the role by precedence."""
        roles = [Role.parse(r) for r in row[4]]
        return Operator(
            id=row[0],
            telegram_id=row[1],
            username=row[2],
            created_at=row[3],
            role=Role.highest(roles) or Role.EMPLOYEE,
        )
