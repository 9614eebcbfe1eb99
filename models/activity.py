"""
models/activity.py
------------------
Domain model for the operator activity log.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class ActionType(str, Enum):
    PAYMENT_RECORDED = "payment_recorded"
    SUBSCRIBER_ADDED = "subscriber_added"


@dataclass
class ActivityLogEntry:
    """An append-only audit record of something an operator did."""
    action_type: ActionType
    performed_by_user_id: int
    performed_by_username: str
    subscriber_name: str
    subscriber_id: Optional[int] = None
    amount: Optional[Decimal] = None
    details: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
