"""
repositories/message_repo.py
----------------------------
Data access layer for the reminder mailbox.
All SQL queries related to the `pending_messages` table live here.
"""

from datetime import datetime
from typing import Optional

import psycopg2

from db.connection import get_connection, release_connection
from models.message import MessageStatus, PendingMessage
from utils.errors import TransientIOError
from utils.logger import get_logger

logger = get_logger(__name__)

_COLUMNS = """
    id, subscriber_id, subscriber_name, subscriber_phone, vehicle_plate,
    message, requested_by_user_id, requested_by_username, is_bulk, status,
    created_at, resolved_at, resolved_by_username
"""


class MessageRepository:
    """Repository for the pending_messages table."""

    # ── CREATE ────────────────────────────────────────────

    def add(self, message: PendingMessage) -> PendingMessage:
        """
        Queue a new message. No deduplication is performed.

        Returns:
            The same PendingMessage with its `id` and `created_at` populated.
        """
        sql = """
            INSERT INTO pending_messages
                (subscriber_id, subscriber_name, subscriber_phone, vehicle_plate,
                 message, requested_by_user_id, requested_by_username, is_bulk, status)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id, created_at;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    message.subscriber_id, message.subscriber_name,
                    message.subscriber_phone, message.vehicle_plate,
                    message.message, message.requested_by_user_id,
                    message.requested_by_username, message.is_bulk,
                    MessageStatus.PENDING.value,
                ))
                row = cur.fetchone()
                message.id = row[0]
                message.created_at = row[1]
                message.status = MessageStatus.PENDING
            conn.commit()
            logger.info(
                f"Queued message #{message.id} for {message.subscriber_name} "
                f"(bulk={message.is_bulk})"
            )
            return message
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to queue message: {e}")
            raise TransientIOError("Failed to queue message") from e
        finally:
            release_connection(conn)

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, message_id: int) -> Optional[PendingMessage]:
        sql = f"SELECT {_COLUMNS} FROM pending_messages WHERE id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (message_id,))
                row = cur.fetchone()
                return self._row_to_message(row) if row else None
        except psycopg2.Error as e:
            logger.error(f"Failed to fetch message #{message_id}: {e}")
            raise TransientIOError("Failed to fetch message") from e
        finally:
            release_connection(conn)

    def get_all(self, status: Optional[MessageStatus] = None) -> list[PendingMessage]:
        """
        Fetch messages, optionally filtered by status.

        Returns:
            List of PendingMessage objects, newest first.
        """
        sql = f"SELECT {_COLUMNS} FROM pending_messages"
        params: list = []
        if status:
            sql += " WHERE status = %s"
            params.append(status.value)
        sql += " ORDER BY created_at DESC, id DESC;"

        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return [self._row_to_message(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to fetch messages: {e}")
            raise TransientIOError("Failed to fetch messages") from e
        finally:
            release_connection(conn)

    def count_pending_for(self, subscriber_id: int) -> int:
        sql = """
            SELECT COUNT(*) FROM pending_messages
            WHERE subscriber_id = %s AND status = 'pending';
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (subscriber_id,))
                return int(cur.fetchone()[0])
        except psycopg2.Error as e:
            logger.error(f"Failed to count pending messages of subscriber #{subscriber_id}: {e}")
            raise TransientIOError("Failed to count pending messages") from e
        finally:
            release_connection(conn)

    # ── UPDATE ────────────────────────────────────────────

    def mark_sent(self, message_id: int, resolved_by: str, resolved_at: datetime) -> bool:
        """
        Transition a message from pending to sent.

        Only rows still in 'pending' are touched, so an already-sent message
        keeps its original resolved_at / resolved_by_username.

        Returns:
            True if the message was pending and is now sent.
        """
        sql = """
            UPDATE pending_messages
            SET status = 'sent', resolved_at = %s, resolved_by_username = %s
            WHERE id = %s AND status = 'pending';
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (resolved_at, resolved_by, message_id))
                updated = cur.rowcount > 0
            conn.commit()
            if updated:
                logger.info(f"Message #{message_id} marked sent by {resolved_by}")
            return updated
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to mark message #{message_id} as sent: {e}")
            raise TransientIOError("Failed to mark message as sent") from e
        finally:
            release_connection(conn)

    # ── DELETE ────────────────────────────────────────────

    def delete(self, message_id: int) -> bool:
        """Hard-delete a message whatever its status."""
        sql = "DELETE FROM pending_messages WHERE id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (message_id,))
                deleted = cur.rowcount > 0
            conn.commit()
            if deleted:
                logger.info(f"Dismissed message #{message_id}")
            return deleted
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to dismiss message #{message_id}: {e}")
            raise TransientIOError("Failed to dismiss message") from e
        finally:
            release_connection(conn)

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_message(row: tuple) -> PendingMessage:
        """Convert a database row tuple to a PendingMessage domain object."""
        return PendingMessage(
            id=row[0],
            subscriber_id=row[1],
            subscriber_name=row[2],
            subscriber_phone=row[3],
            vehicle_plate=row[4],
            message=row[5],
            requested_by_user_id=row[6],
            requested_by_username=row[7],
            is_bulk=row[8],
            status=MessageStatus(row[9]),
            created_at=row[10],
            resolved_at=row[11],
            resolved_by_username=row[12],
        )
