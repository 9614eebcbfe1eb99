"""
models/message.py
-----------------
Domain models for the reminder message queue.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from utils.phone import normalize_phone


class MessageStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"


@dataclass
class PendingMessage:
    """
    A reminder waiting to be sent by a backend admin.

    The subscriber_* and vehicle_plate fields are a snapshot taken when the
    message was requested, so the message still makes sense after the
    subscriber is edited or deleted.

    Attributes:
        subscriber_id: Weak reference; None once the subscriber is deleted.
        subscriber_name: Snapshot of the subscriber's name.
        subscriber_phone: Snapshot of the subscriber's phone.
        vehicle_plate: Snapshot of the subscriber's plate.
        message: Message body.
        requested_by_user_id: Telegram ID of the requesting operator.
        requested_by_username: Username of the requesting operator.
        is_bulk: True when queued by a bulk reminder.
        status: 'pending' until marked sent.
        resolved_at: When it was marked sent.
        resolved_by_username: Who marked it sent.
    """
    subscriber_name: str
    subscriber_phone: str
    vehicle_plate: str
    message: str
    requested_by_user_id: int
    requested_by_username: str
    subscriber_id: Optional[int] = None
    is_bulk: bool = False
    status: MessageStatus = MessageStatus.PENDING
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    resolved_by_username: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == MessageStatus.PENDING

    def __str__(self) -> str:
        kind = "Bulk" if self.is_bulk else "Individual"
        return (
            f"#{self.id} [{kind}] {self.subscriber_name} ({self.subscriber_phone}, "
            f"{self.vehicle_plate}) requested by {self.requested_by_username}"
        )


@dataclass
class BulkGroup:
    """Pending bulk messages sharing the exact same (stripped) text."""

    text: str
    messages: list[PendingMessage] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.messages)

    @property
    def phones(self) -> list[str]:
        """Normalized recipient phones, de-duplicated, in message order."""
        seen: list[str] = []
        for m in self.messages:
            phone = normalize_phone(m.subscriber_phone)
            if phone and phone not in seen:
                seen.append(phone)
        return seen

    @property
    def ids(self) -> list[int]:
        return [m.id for m in self.messages]

    @property
    def key(self) -> int:
        """
        Id of the oldest member. Stays the same when newer batches are queued,
        so operators can refer to a group by it.
        """
        return min(self.ids)
