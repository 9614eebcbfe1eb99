"""
repositories/subscriber_repo.py
-------------------------------
Data access layer for parking subscribers.
All SQL queries related to the `subscribers` table live here.

The stored `status` column is only an optimistic copy; callers derive the
real status from `validity_end` on every read.
"""

from datetime import date, datetime
from typing import Optional

import psycopg2

from db.connection import get_connection, release_connection
from models.subscriber import PaymentStatus, Subscriber
from utils.errors import TransientIOError
from utils.logger import get_logger

logger = get_logger(__name__)

_COLUMNS = """
    id, name, phone, car, vehicle_plate, monthly_fee,
    last_payment_date, validity_end, status, created_at
"""


class SubscriberRepository:
    """Repository for CRUD operations on the subscribers table."""

    # ── CREATE ────────────────────────────────────────────

    def add(self, subscriber: Subscriber) -> Subscriber:
        """
        Insert a new subscriber.

        Args:
            subscriber: The Subscriber to persist (status already computed).

        Returns:
            The same Subscriber with its `id` and `created_at` populated.
        """
        sql = """
            INSERT INTO subscribers
                (name, phone, car, vehicle_plate, monthly_fee,
                 last_payment_date, validity_end, status)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id, created_at;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    subscriber.name, subscriber.phone, subscriber.car,
                    subscriber.vehicle_plate, subscriber.monthly_fee,
                    subscriber.last_payment_date, subscriber.valid_until,
                    subscriber.status.value,
                ))
                row = cur.fetchone()
                subscriber.id = row[0]
                subscriber.created_at = row[1]
            conn.commit()
            logger.info(f"Added subscriber #{subscriber.id} ({subscriber.vehicle_plate})")
            return subscriber
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to add subscriber: {e}")
            raise TransientIOError("Failed to add subscriber") from e
        finally:
            release_connection(conn)

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, subscriber_id: int) -> Optional[Subscriber]:
        """Fetch a single subscriber by ID, or None if it does not exist."""
        sql = f"SELECT {_COLUMNS} FROM subscribers WHERE id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (subscriber_id,))
                row = cur.fetchone()
                return self._row_to_subscriber(row) if row else None
        except psycopg2.Error as e:
            logger.error(f"Failed to fetch subscriber #{subscriber_id}: {e}")
            raise TransientIOError("Failed to fetch subscriber") from e
        finally:
            release_connection(conn)

    def get_all(self) -> list[Subscriber]:
        """
        Fetch every subscriber.

        Returns:
            List of Subscriber objects, newest first.
        """
        sql = f"SELECT {_COLUMNS} FROM subscribers ORDER BY created_at DESC, id DESC;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql)
                return [self._row_to_subscriber(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to fetch subscribers: {e}")
            raise TransientIOError("Failed to fetch subscribers") from e
        finally:
            release_connection(conn)

    def get_created_before(self, cutoff: datetime) -> list[Subscriber]:
        """
        Fetch subscribers that already existed at `cutoff`.
        Used to reconstruct past months.

        Args:
            cutoff: Exclusive upper bound on created_at.
        """
        sql = f"SELECT {_COLUMNS} FROM subscribers WHERE created_at < %s ORDER BY id;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (cutoff,))
                return [self._row_to_subscriber(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to fetch subscribers created before {cutoff}: {e}")
            raise TransientIOError("Failed to fetch historical subscribers") from e
        finally:
            release_connection(conn)

    # ── UPDATE ────────────────────────────────────────────

    def update(self, subscriber: Subscriber) -> bool:
        """
        Update the identity fields of a subscriber (not its validity).

        Returns:
            True if a row was updated, False otherwise.
        """
        sql = """
            UPDATE subscribers
            SET name = %s, phone = %s, car = %s, vehicle_plate = %s, monthly_fee = %s
            WHERE id = %s;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    subscriber.name, subscriber.phone, subscriber.car,
                    subscriber.vehicle_plate, subscriber.monthly_fee, subscriber.id,
                ))
                updated = cur.rowcount > 0
            conn.commit()
            return updated
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to update subscriber #{subscriber.id}: {e}")
            raise TransientIOError("Failed to update subscriber") from e
        finally:
            release_connection(conn)

    def set_validity(
        self, subscriber_id: int, valid_until: Optional[date], status: PaymentStatus
    ) -> bool:
        """Overwrite the validity-end date (admin correction)."""
        sql = "UPDATE subscribers SET validity_end = %s, status = %s WHERE id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (valid_until, status.value, subscriber_id))
                updated = cur.rowcount > 0
            conn.commit()
            if updated:
                logger.info(f"Set validity of subscriber #{subscriber_id} to {valid_until}")
            return updated
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to set validity for subscriber #{subscriber_id}: {e}")
            raise TransientIOError("Failed to update validity") from e
        finally:
            release_connection(conn)

    # ── DELETE ────────────────────────────────────────────

    def delete(self, subscriber_id: int) -> bool:
        """
        Delete a subscriber row. Its payments must be deleted first.

        Returns:
            True if a row was deleted, False otherwise.
        """
        sql = "DELETE FROM subscribers WHERE id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (subscriber_id,))
                deleted = cur.rowcount > 0
            conn.commit()
            if deleted:
                logger.info(f"Deleted subscriber #{subscriber_id}")
            return deleted
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to delete subscriber #{subscriber_id}: {e}")
            raise TransientIOError("Failed to delete subscriber") from e
        finally:
            release_connection(conn)

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_subscriber(row: tuple) -> Subscriber:
        """Convert a database row tuple to a Subscriber domain object."""
        return Subscriber(
            id=row[0],
            name=row[1],
            phone=row[2],
            car=row[3],
            vehicle_plate=row[4],
            monthly_fee=row[5],
            last_payment_date=row[6],
            valid_until=row[7],
            status=PaymentStatus(row[8]),
            created_at=row[9],
        )
