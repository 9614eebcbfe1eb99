"""
repositories/payment_repo.py
----------------------------
Data access layer for subscriber payments.
All SQL queries related to the `payments` table live here.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

import psycopg2

from db.connection import get_connection, release_connection, transaction
from models.subscriber import Payment, PaymentStatus
from utils.errors import TransientIOError
from utils.logger import get_logger

logger = get_logger(__name__)


class PaymentRepository:
    """Repository for operations on the payments table."""

    # ── CREATE ────────────────────────────────────────────

    def record_payment(self, payment: Payment, valid_until: date) -> Payment:
        """
        Insert a payment and extend the subscriber's validity in one transaction.

        Either both the payment row and the subscriber update are stored, or
        neither is.

        Args:
            payment: The Payment to persist.
            valid_until: New validity-end date for the subscriber.

        Returns:
            The same Payment with its `id` and `created_at` populated.

        Raises:
            TransientIOError: If the transaction failed and was rolled back.
        """
        insert_sql = """
            INSERT INTO payments (subscriber_id, amount, payment_date, recorded_by_username)
            VALUES (%s, %s, %s, %s)
            RETURNING id, created_at;
        """
        update_sql = """
            UPDATE subscribers
            SET last_payment_date = %s, validity_end = %s, status = %s
            WHERE id = %s;
        """
        with transaction("record payment") as cur:
            cur.execute(insert_sql, (
                payment.subscriber_id, payment.amount,
                payment.payment_date, payment.recorded_by_username,
            ))
            row = cur.fetchone()
            cur.execute(update_sql, (
                payment.payment_date, valid_until,
                PaymentStatus.PAID.value, payment.subscriber_id,
            ))
        payment.id = row[0]
        payment.created_at = row[1]
        logger.info(
            f"Recorded payment #{payment.id} of {payment.amount} for subscriber "
            f"#{payment.subscriber_id}, valid until {valid_until}"
        )
        return payment

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, payment_id: int) -> Optional[Payment]:
        sql = """
            SELECT id, subscriber_id, amount, payment_date, recorded_by_username, created_at
            FROM payments WHERE id = %s;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (payment_id,))
                row = cur.fetchone()
                return self._row_to_payment(row) if row else None
        except psycopg2.Error as e:
            logger.error(f"Failed to fetch payment #{payment_id}: {e}")
            raise TransientIOError("Failed to fetch payment") from e
        finally:
            release_connection(conn)

    def get_for_subscriber(self, subscriber_id: int) -> list[Payment]:
        """
        Payment history of one subscriber.

        Returns:
            List of Payment objects, most recent payment date first.
        """
        sql = """
            SELECT id, subscriber_id, amount, payment_date, recorded_by_username, created_at
            FROM payments
            WHERE subscriber_id = %s
            ORDER BY payment_date DESC, id DESC;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (subscriber_id,))
                return [self._row_to_payment(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to fetch payments of subscriber #{subscriber_id}: {e}")
            raise TransientIOError("Failed to fetch payment history") from e
        finally:
            release_connection(conn)

    def get_by_date_range(self, start: date, end: date) -> list[Payment]:
        """
        Fetch all payments dated within a range, with the subscriber's name.

        Args:
            start: Start date (inclusive).
            end: End date (inclusive).

        Returns:
            List of Payment objects ordered by payment date descending.
        """
        sql = """
            SELECT p.id, p.subscriber_id, p.amount, p.payment_date,
                   p.recorded_by_username, p.created_at, s.name
            FROM payments p
            LEFT JOIN subscribers s ON s.id = p.subscriber_id
            WHERE p.payment_date BETWEEN %s AND %s
            ORDER BY p.payment_date DESC, p.id DESC;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (start, end))
                return [self._row_to_payment(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to fetch payments between {start} and {end}: {e}")
            raise TransientIOError("Failed to fetch payments") from e
        finally:
            release_connection(conn)

    # ── UPDATE ────────────────────────────────────────────

    def update(self, payment_id: int, amount: Decimal, payment_date: date) -> bool:
        """
        Correct the amount and date of a payment.
        The owning subscriber's validity is left untouched.
        """
        sql = "UPDATE payments SET amount = %s, payment_date = %s WHERE id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (amount, payment_date, payment_id))
                updated = cur.rowcount > 0
            conn.commit()
            if updated:
                logger.info(f"Updated payment #{payment_id}: {amount} on {payment_date}")
            return updated
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to update payment #{payment_id}: {e}")
            raise TransientIOError("Failed to update payment") from e
        finally:
            release_connection(conn)

    # ── DELETE ────────────────────────────────────────────

    def delete(self, payment_id: int) -> bool:
        """Delete a single payment. Returns True if a row was deleted."""
        sql = "DELETE FROM payments WHERE id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (payment_id,))
                deleted = cur.rowcount > 0
            conn.commit()
            if deleted:
                logger.info(f"Deleted payment #{payment_id}")
            return deleted
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to delete payment #{payment_id}: {e}")
            raise TransientIOError("Failed to delete payment") from e
        finally:
            release_connection(conn)

    def delete_for_subscriber(self, subscriber_id: int) -> int:
        """
        Delete every payment owned by a subscriber.

        Returns:
            Number of deleted rows.
        """
        sql = "DELETE FROM payments WHERE subscriber_id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (subscriber_id,))
                deleted = cur.rowcount
            conn.commit()
            logger.info(f"Deleted {deleted} payment(s) of subscriber #{subscriber_id}")
            return deleted
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to delete payments of subscriber #{subscriber_id}: {e}")
            raise TransientIOError("Failed to delete payments") from e
        finally:
            release_connection(conn)

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_payment(row: tuple) -> Payment:
        """Convert a database row tuple to a Payment domain object."""
        return Payment(
            id=row[0],
            subscriber_id=row[1],
            amount=row[2],
            payment_date=row[3],
            recorded_by_username=row[4],
            created_at=row[5],
            subscriber_name=row[6] if len(row) > 6 else None,
        )
