"""
services/activity_service.py
----------------------------
Audit trail of operator actions (payments recorded, subscribers added).
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from config import ACTIVITY_WINDOW_DAYS, DEFAULT_CURRENCY
from models.activity import ActionType, ActivityLogEntry
from models.operator import Operator
from repositories.activity_repo import ActivityRepository
from utils.errors import TransientIOError
from utils.logger import get_logger

logger = get_logger(__name__)

_ACTION_LABELS = {
    ActionType.PAYMENT_RECORDED: ("💵", "recorded a payment from"),
    ActionType.SUBSCRIBER_ADDED: ("➕", "added subscriber"),
}


class ActivityService:
    """Appends to and reads back the activity log."""

    def __init__(self, repo: Optional[ActivityRepository] = None):
        self.repo = repo or ActivityRepository()

    def append(self, entry: ActivityLogEntry) -> Optional[ActivityLogEntry]:
        """
        Fire-and-forget write.

        A failed write is logged and dropped so it never aborts the action
        being audited.

        Returns:
            The stored entry, or None if the write failed.
        """
        try:
            return self.repo.add(entry)
        except TransientIOError as e:
            logger.warning(f"Activity log entry dropped ({entry.action_type.value}): {e}")
            return None

    def log_action(
        self,
        action_type: ActionType,
        operator: Operator,
        subscriber_name: str,
        subscriber_id: Optional[int] = None,
        amount: Optional[Decimal] = None,
        details: Optional[str] = None,
    ) -> Optional[ActivityLogEntry]:
        return self.append(ActivityLogEntry(
            action_type=action_type,
            performed_by_user_id=operator.telegram_id,
            performed_by_username=operator.username,
            subscriber_id=subscriber_id,
            subscriber_name=subscriber_name,
            amount=amount,
            details=details,
        ))

    def list_recent(
        self, now: datetime, window_days: int = ACTIVITY_WINDOW_DAYS
    ) -> list[ActivityLogEntry]:
        """Entries from the last `window_days` days, newest first."""
        return self.repo.get_since(now - timedelta(days=window_days))

    @staticmethod
    def render(entries: list[ActivityLogEntry], now: datetime) -> str:
        """
        Format entries for operators.

        Timestamps read 'HH:MM' for today, 'Yesterday HH:MM' for yesterday
        and 'Ddd D Mon, HH:MM' for anything older.
        """
        if not entries:
            return "📭 No activity in the last days."

        lines = ["🕒 Recent activity:\n"]
        for e in entries:
            icon, verb = _ACTION_LABELS.get(e.action_type, ("•", e.action_type.value))
            when = _format_when(e.created_at, now) if e.created_at else ""
            line = f"{icon} {when} {e.performed_by_username} {verb} {e.subscriber_name}"
            if e.amount is not None:
                line += f" ({DEFAULT_CURRENCY}{e.amount:,.2f})"
            if e.details:
                line += f" - {e.details}"
            lines.append(line)
        return "\n".join(lines)


def _format_when(created_at: datetime, now: datetime) -> str:
    local = created_at.astimezone(now.tzinfo) if now.tzinfo else created_at
    if local.date() == now.date():
        return local.strftime("%H:%M")
    if local.date() == (now - timedelta(days=1)).date():
        return f"Yesterday {local:%H:%M}"
    return f"{local:%a} {local.day} {local:%b, %H:%M}"
