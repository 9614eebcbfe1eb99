"""
services/stats_service.py
-------------------------
Monthly statistics: subscriber counts by status, revenue, and how much each
operator collected.

The current month is computed from live subscriber state (revenue = fees of
paid subscribers). Past months are rebuilt from the payments table
(revenue = amounts actually collected, since fees may have changed since).
"""

from collections import Counter
from datetime import date
from decimal import Decimal
from typing import Optional

from models.stats import CollectedPayment, CollectorStat, MonthlyStats
from models.subscriber import Payment, PaymentStatus, Subscriber
from repositories.payment_repo import PaymentRepository
from repositories.subscriber_repo import SubscriberRepository
from services.status import compute_status
from utils.dates import month_end, month_start, next_month_start, same_month, start_of_day
from utils.errors import InvalidRangeError
from utils.logger import get_logger

logger = get_logger(__name__)

UNKNOWN_COLLECTOR = "Unknown"


def current_month_stats(subscribers: list[Subscriber]) -> MonthlyStats:
    """Aggregate live subscribers whose `status` has already been derived."""
    counts = Counter(s.status for s in subscribers)
    revenue = sum(
        (s.monthly_fee for s in subscribers if s.status == PaymentStatus.PAID),
        Decimal("0"),
    )
    return MonthlyStats(
        total=len(subscribers),
        paid=counts[PaymentStatus.PAID],
        pending=counts[PaymentStatus.PENDING],
        overdue=counts[PaymentStatus.OVERDUE],
        monthly_revenue=revenue,
    )


def historical_stats(subscribers: list[Subscriber], payments: list[Payment]) -> MonthlyStats:
    """
    Rebuild a past month.

    Args:
        subscribers: Subscribers that existed by the end of the month.
        payments: Payments dated within the month.

    Past months have no grace period: anyone without a payment is overdue.
    """
    candidate_ids = {s.id for s in subscribers}
    month_payments = [p for p in payments if p.subscriber_id in candidate_ids]
    paid_ids = {p.subscriber_id for p in month_payments}
    revenue = sum((p.amount for p in month_payments), Decimal("0"))
    total = len(candidate_ids)
    return MonthlyStats(
        total=total,
        paid=len(paid_ids),
        pending=0,
        overdue=total - len(paid_ids),
        monthly_revenue=revenue,
    )


def group_collections(payments: list[Payment]) -> list[CollectorStat]:
    """Group payments by the operator who recorded them, biggest total first."""
    grouped: dict[str, CollectorStat] = {}
    for p in payments:
        username = p.recorded_by_username or UNKNOWN_COLLECTOR
        stat = grouped.setdefault(username, CollectorStat(username=username))
        stat.total_collected += p.amount
        stat.payment_count += 1
        stat.payments.append(CollectedPayment(
            subscriber_name=p.subscriber_name or UNKNOWN_COLLECTOR,
            amount=p.amount,
            payment_date=p.payment_date,
        ))
    return sorted(grouped.values(), key=lambda s: s.total_collected, reverse=True)


class StatsService:
    """Builds monthly statistics for the dashboard and the collections report."""

    def __init__(
        self,
        subscriber_repo: Optional[SubscriberRepository] = None,
        payment_repo: Optional[PaymentRepository] = None,
    ):
        self.subscriber_repo = subscriber_repo or SubscriberRepository()
        self.payment_repo = payment_repo or PaymentRepository()

    def get_stats(self, reference_month: date, today: date) -> MonthlyStats:
        """
        Statistics for the month containing `reference_month`.

        Args:
            reference_month: Any date inside the requested month.
            today: The reference "now" date.

        Raises:
            InvalidRangeError: If the month is in the future.
        """
        self._check_not_future(reference_month, today)

        if same_month(reference_month, today):
            subscribers = self.subscriber_repo.get_all()
            for s in subscribers:
                s.status = compute_status(s.valid_until, today)
            return current_month_stats(subscribers)

        start, end = month_start(reference_month), month_end(reference_month)
        subscribers = self.subscriber_repo.get_created_before(
            start_of_day(next_month_start(reference_month))
        )
        payments = self.payment_repo.get_by_date_range(start, end)
        stats = historical_stats(subscribers, payments)
        logger.info(f"Rebuilt stats for {start:%Y-%m}: {stats}")
        return stats

    def get_collections(self, reference_month: date, today: date) -> list[CollectorStat]:
        """Per-operator collection totals for a month (current or past)."""
        self._check_not_future(reference_month, today)
        payments = self.payment_repo.get_by_date_range(
            month_start(reference_month), month_end(reference_month)
        )
        return group_collections(payments)

    @staticmethod
    def _check_not_future(reference_month: date, today: date) -> None:
        if month_start(reference_month) > month_start(today):
            raise InvalidRangeError(
                f"Cannot compute statistics for {reference_month:%Y-%m}: month has not started"
            )

    # ── FORMATTING ────────────────────────────────────────

    @staticmethod
    def format_stats(stats: MonthlyStats, reference_month: date, currency: str = "$") -> str:
        return (
            f"📊 Stats for {reference_month:%B %Y}\n\n"
            f"  👥 Total: {stats.total}\n"
            f"  ✅ Paid: {stats.paid}\n"
            f"  ⏳ Pending: {stats.pending}\n"
            f"  🔴 Overdue: {stats.overdue}\n"
            f"  💵 Revenue: {currency}{stats.monthly_revenue:,.2f}"
        )

    @staticmethod
    def format_collections(
        collectors: list[CollectorStat], reference_month: date, currency: str = "$"
    ) -> str:
        if not collectors:
            return f"📭 No payments collected in {reference_month:%B %Y}."

        lines = [f"💰 Collections for {reference_month:%B %Y}\n"]
        for c in collectors:
            lines.append(f"👤 {c.username}: {currency}{c.total_collected:,.2f} ({c.payment_count} payments)")
            for p in c.payments:
                lines.append(f"    • {p.subscriber_name}: {currency}{p.amount:,.2f} on {p.payment_date:%b %d}")
        grand_total = sum((c.total_collected for c in collectors), Decimal("0"))
        count = sum(c.payment_count for c in collectors)
        lines.append(f"\n🧾 Total: {currency}{grand_total:,.2f} from {count} payments")
        return "\n".join(lines)
