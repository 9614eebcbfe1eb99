"""
models/stats.py
---------------
Derived (never persisted) reporting models.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class MonthlyStats:
    """Subscriber counts by status plus revenue for one month."""
    total: int = 0
    paid: int = 0
    pending: int = 0
    overdue: int = 0
    monthly_revenue: Decimal = Decimal("0")


@dataclass(frozen=True)
class CollectedPayment:
    subscriber_name: str
    amount: Decimal
    payment_date: date


@dataclass
class CollectorStat:
    """How much one operator collected in a month."""
    username: str
    total_collected: Decimal = Decimal("0")
    payment_count: int = 0
    payments: list[CollectedPayment] = field(default_factory=list)
