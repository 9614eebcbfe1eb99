from datetime import date, datetime
from decimal import Decimal
from unittest.mock import MagicMock

import psycopg2
import pytest

import db.connection
import repositories.message_repo
import repositories.payment_repo
from models.operator import Role
from models.subscriber import Payment
from repositories.message_repo import MessageRepository
from repositories.operator_repo import OperatorRepository
from repositories.payment_repo import PaymentRepository
from utils.errors import TransientIOError


@pytest.fixture
def conn(monkeypatch):
    """A mocked psycopg2 connection handed out by every repository."""
    connection = MagicMock()
    cursor = MagicMock()
    connection.cursor.return_value.__enter__.return_value = cursor
    connection.cur = cursor
    released = []

    for module in (db.connection, repositories.message_repo, repositories.payment_repo):
        monkeypatch.setattr(module, "get_connection", lambda: connection)
        monkeypatch.setattr(module, "release_connection", released.append)
    connection.released = released
    return connection


def test_mark_sent_only_touches_pending_rows(conn):
    conn.cur.rowcount = 1

    assert MessageRepository().mark_sent(5, "backend", datetime(2024, 3, 1, 10, 0)) is True

    sql, params = conn.cur.execute.call_args[0]
    assert "status = 'pending'" in sql
    assert params == (datetime(2024, 3, 1, 10, 0), "backend", 5)
    conn.commit.assert_called_once()
    assert conn.released == [conn]


def test_mark_sent_on_sent_row_is_noop(conn):
    conn.cur.rowcount = 0
    assert MessageRepository().mark_sent(5, "backend", datetime(2024, 3, 1)) is False


def test_database_error_rolls_back(conn):
    conn.cur.execute.side_effect = psycopg2.OperationalError("connection reset")

    with pytest.raises(TransientIOError):
        MessageRepository().delete(3)

    conn.rollback.assert_called_once()
    conn.commit.assert_not_called()
    assert conn.released == [conn]


def test_record_payment_runs_in_one_transaction(conn):
    conn.cur.fetchone.return_value = (11, datetime(2024, 3, 10, 9, 0))
    payment = Payment(
        subscriber_id=4, amount=Decimal("100.00"),
        payment_date=date(2024, 3, 10), recorded_by_username="alice",
    )

    saved = PaymentRepository().record_payment(payment, valid_until=date(2024, 3, 31))

    assert saved.id == 11
    statements = [c[0][0] for c in conn.cur.execute.call_args_list]
    assert "INSERT INTO payments" in statements[0]
    assert "UPDATE subscribers" in statements[1]
    assert conn.cur.execute.call_args_list[1][0][1] == (date(2024, 3, 10), date(2024, 3, 31), "paid", 4)
    conn.commit.assert_called_once()


def test_record_payment_failure_rolls_back_both_writes(conn):
    conn.cur.fetchone.return_value = (11, datetime(2024, 3, 10, 9, 0))
    conn.cur.execute.side_effect = [None, psycopg2.IntegrityError("boom")]
    payment = Payment(subscriber_id=4, amount=Decimal("100"), payment_date=date(2024, 3, 10))

    with pytest.raises(TransientIOError):
        PaymentRepository().record_payment(payment, valid_until=date(2024, 3, 31))

    conn.rollback.assert_called_once()
    conn.commit.assert_not_called()
    assert payment.id is None


def test_operator_role_resolved_by_precedence():
    row = (1, 100, "alice", datetime(2024, 1, 1), ["employee", "backend_admin", "admin"])
    assert OperatorRepository._row_to_operator(row).role == Role.BACKEND_ADMIN


def test_operator_without_role_rows_is_employee():
    row = (1, 100, "alice", datetime(2024, 1, 1), [])
    assert OperatorRepository._row_to_operator(row).role == Role.EMPLOYEE
