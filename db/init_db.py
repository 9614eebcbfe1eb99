"""
db/init_db.py
-------------
Creates the database schema (tables) if they do not already exist.
Run this module directly to initialize a fresh database:
    python -m db.init_db
"""

import psycopg2

from db.connection import get_connection, release_connection
from utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA_SQL = """
-- Subscribers: one row per monthly parking customer
CREATE TABLE IF NOT EXISTS subscribers (
    id                  SERIAL PRIMARY KEY,
    name                VARCHAR(120) NOT NULL,
    phone               VARCHAR(30) NOT NULL,
    car                 VARCHAR(120) NOT NULL DEFAULT 'Not Available',
    vehicle_plate       VARCHAR(30) NOT NULL,
    monthly_fee         NUMERIC(12,2) NOT NULL CHECK (monthly_fee >= 0),
    last_payment_date   DATE,
    validity_end        DATE,
    status              VARCHAR(10) NOT NULL DEFAULT 'overdue'
                        CHECK (status IN ('paid', 'pending', 'overdue')),
    created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Payments: owned by a subscriber, deleted explicitly before the subscriber
CREATE TABLE IF NOT EXISTS payments (
    id                    SERIAL PRIMARY KEY,
    subscriber_id         INT NOT NULL REFERENCES subscribers(id),
    amount                NUMERIC(12,2) NOT NULL CHECK (amount > 0),
    payment_date          DATE NOT NULL DEFAULT CURRENT_DATE,
    recorded_by_username  VARCHAR(30),
    created_at            TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Pending messages: reminder mailbox with snapshot of the subscriber
CREATE TABLE IF NOT EXISTS pending_messages (
    id                     SERIAL PRIMARY KEY,
    subscriber_id          INT REFERENCES subscribers(id) ON DELETE SET NULL,
    subscriber_name        VARCHAR(120) NOT NULL,
    subscriber_phone       VARCHAR(30) NOT NULL,
    vehicle_plate          VARCHAR(30) NOT NULL,
    message                TEXT NOT NULL,
    requested_by_user_id   BIGINT NOT NULL,
    requested_by_username  VARCHAR(30) NOT NULL,
    is_bulk                BOOLEAN NOT NULL DEFAULT FALSE,
    status                 VARCHAR(10) NOT NULL DEFAULT 'pending'
                           CHECK (status IN ('pending', 'sent')),
    created_at             TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    resolved_at            TIMESTAMPTZ,
    resolved_by_username   VARCHAR(30)
);

-- Activity log: append-only audit trail
CREATE TABLE IF NOT EXISTS activity_logs (
    id                     SERIAL PRIMARY KEY,
    action_type            VARCHAR(30) NOT NULL
                           CHECK (action_type IN ('payment_recorded', 'subscriber_added')),
    performed_by_user_id   BIGINT NOT NULL,
    performed_by_username  VARCHAR(30) NOT NULL,
    subscriber_id          INT REFERENCES subscribers(id) ON DELETE SET NULL,
    subscriber_name        VARCHAR(120) NOT NULL,
    amount                 NUMERIC(12,2),
    details                TEXT,
    created_at             TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Operators: staff identified by their Telegram account
CREATE TABLE IF NOT EXISTS operators (
    id              SERIAL PRIMARY KEY,
    telegram_id     BIGINT UNIQUE NOT NULL,
    username        VARCHAR(10) UNIQUE NOT NULL,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Roles: one or more rows per operator, highest precedence wins
CREATE TABLE IF NOT EXISTS user_roles (
    id              SERIAL PRIMARY KEY,
    telegram_id     BIGINT NOT NULL REFERENCES operators(telegram_id) ON DELETE CASCADE,
    role            VARCHAR(20) NOT NULL
                    CHECK (role IN ('employee', 'admin', 'backend_admin')),
    UNIQUE(telegram_id, role)
);

-- Indexes for faster queries
CREATE INDEX IF NOT EXISTS idx_payments_subscriber ON payments(subscriber_id);
CREATE INDEX IF NOT EXISTS idx_payments_date ON payments(payment_date);
CREATE INDEX IF NOT EXISTS idx_messages_pending ON pending_messages(subscriber_id) WHERE status = 'pending';
CREATE INDEX IF NOT EXISTS idx_activity_created ON activity_logs(created_at);
"""


def create_tables() -> None:
    """
    Execute the schema SQL to create all tables.
    Safe to call multiple times (uses IF NOT EXISTS).
    """
    conn = get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
        conn.commit()
        logger.info("Database schema initialized successfully.")
    except psycopg2.Error as e:
        conn.rollback()
        logger.error(f"Failed to initialize schema: {e}")
        raise
    finally:
        release_connection(conn)


if __name__ == "__main__":
    from db.connection import init_pool
    init_pool()
    create_tables()
    print("Database schema created successfully.")
