"""
services/status.py
------------------
Payment status rule for subscribers.

A subscriber is:
    - paid     when their validity covers the current month,
    - pending  when it does not but we are still in the first days of the month,
    - overdue  otherwise.
"""

from datetime import date
from typing import Optional

from models.subscriber import PaymentStatus
from utils.dates import month_start

# Last day of the month on which an unpaid subscriber is still 'pending'.
GRACE_PERIOD_LAST_DAY = 5


def compute_status(valid_until: Optional[date], today: date) -> PaymentStatus:
    """
    Derive a subscriber's status from their validity-end date.

    Args:
        valid_until: Last date covered by the subscriber's payment, or None.
        today: The reference date (business timezone).

    Returns:
        PaymentStatus.PAID if `valid_until` is on or after the first day of
        today's month, PENDING on days 1-5 otherwise, OVERDUE from day 6.
    """
    if valid_until is not None and valid_until >= month_start(today):
        return PaymentStatus.PAID
    if today.day <= GRACE_PERIOD_LAST_DAY:
        return PaymentStatus.PENDING
    return PaymentStatus.OVERDUE
