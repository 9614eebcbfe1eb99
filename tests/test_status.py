from datetime import date

import pytest

from models.subscriber import PaymentStatus
from services.status import compute_status


@pytest.mark.parametrize("today", [date(2024, 3, 1), date(2024, 3, 5), date(2024, 3, 20)])
def test_validity_covering_this_month_is_paid(today):
    assert compute_status(date(2024, 3, 31), today) == PaymentStatus.PAID


def test_validity_on_month_start_counts_as_paid():
    assert compute_status(date(2024, 3, 1), date(2024, 3, 25)) == PaymentStatus.PAID


@pytest.mark.parametrize("day", [1, 2, 5])
def test_unpaid_in_grace_period_is_pending(day):
    assert compute_status(date(2024, 2, 29), date(2024, 3, day)) == PaymentStatus.PENDING


@pytest.mark.parametrize("day", [6, 15, 31])
def test_unpaid_after_grace_period_is_overdue(day):
    assert compute_status(date(2024, 2, 29), date(2024, 3, day)) == PaymentStatus.OVERDUE


def test_last_months_validity_is_overdue_after_the_fifth():
    assert compute_status(date(2024, 1, 31), date(2024, 2, 10)) == PaymentStatus.OVERDUE


def test_no_validity_follows_the_grace_rule():
    assert compute_status(None, date(2024, 3, 4)) == PaymentStatus.PENDING
    assert compute_status(None, date(2024, 3, 6)) == PaymentStatus.OVERDUE
