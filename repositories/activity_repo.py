"""
repositories/activity_repo.py
-----------------------------
Data access layer for the append-only activity log.
Entries are never updated or deleted.
"""

from datetime import datetime

import psycopg2

from db.connection import get_connection, release_connection
from models.activity import ActionType, ActivityLogEntry
from utils.errors import TransientIOError
from utils.logger import get_logger

logger = get_logger(__name__)


class ActivityRepository:
    """Repository for the activity_logs table."""

    def add(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        sql = """
            INSERT INTO activity_logs
                (action_type, performed_by_user_id, performed_by_username,
                 subscriber_id, subscriber_name, amount, details)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING id, created_at;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    entry.action_type.value, entry.performed_by_user_id,
                    entry.performed_by_username, entry.subscriber_id,
                    entry.subscriber_name, entry.amount, entry.details,
                ))
                row = cur.fetchone()
                entry.id = row[0]
                entry.created_at = row[1]
            conn.commit()
            return entry
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to add activity log: {e}")
            raise TransientIOError("Failed to add activity log") from e
        finally:
            release_connection(conn)

    def get_since(self, since: datetime) -> list[ActivityLogEntry]:
        """
        Fetch entries created at or after `since`.

        Returns:
            List of ActivityLogEntry objects, newest first.
        """
        sql = """
            SELECT id, action_type, performed_by_user_id, performed_by_username,
                   subscriber_id, subscriber_name, amount, details, created_at
            FROM activity_logs
            WHERE created_at >= %s
            ORDER BY created_at DESC, id DESC;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (since,))
                return [
                    ActivityLogEntry(
                        id=r[0],
                        action_type=ActionType(r[1]),
                        performed_by_user_id=r[2],
                        performed_by_username=r[3],
                        subscriber_id=r[4],
                        subscriber_name=r[5],
                        amount=r[6],
                        details=r[7],
                        created_at=r[8],
                    )
                    for r in cur.fetchall()
                ]
        except psycopg2.Error as e:
            logger.error(f"Failed to fetch activity logs: {e}")
            raise TransientIOError("Failed to fetch activity logs") from e
        finally:
            release_connection(conn)
