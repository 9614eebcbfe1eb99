"""
models/subscriber.py
--------------------
Domain models for parking subscribers and the payments they make.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

DEFAULT_CAR = "Not Available"


class PaymentStatus(str, Enum):
    """Monthly payment status of a subscriber."""

    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"


@dataclass
class Subscriber:
    """
    A monthly parking subscriber.

    Attributes:
        id: Database primary key (None for new records).
        name: Full name.
        phone: Phone number as typed by the operator.
        vehicle_plate: Licence plate.
        monthly_fee: Fee charged per month.
        car: Vehicle descriptor (make/model/colour).
        last_payment_date: Date of the most recent recorded payment.
        valid_until: Last date covered by the current payment.
        status: Derived from `valid_until` and today; recomputed on every read.
        created_at: Timestamp when the record was created.
    """
    name: str
    phone: str
    vehicle_plate: str
    monthly_fee: Decimal
    car: str = DEFAULT_CAR
    last_payment_date: Optional[date] = None
    valid_until: Optional[date] = None
    status: PaymentStatus = PaymentStatus.OVERDUE
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def matches(self, query: str) -> bool:
        """Case-insensitive search over name, plate and car."""
        q = query.strip().lower()
        return (
            q in self.name.lower()
            or q in self.vehicle_plate.lower()
            or q in self.car.lower()
        )

    def __str__(self) -> str:
        valid = self.valid_until.isoformat() if self.valid_until else "-"
        return f"#{self.id} {self.name} | {self.vehicle_plate} | {self.status.value} (valid until {valid})"


@dataclass
class Payment:
    """
    A payment recorded against a subscriber.

    `subscriber_name` is only filled by queries that join the subscriber.
    """
    subscriber_id: int
    amount: Decimal
    payment_date: date
    recorded_by_username: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    subscriber_name: Optional[str] = None

    def __str__(self) -> str:
        by = f" by {self.recorded_by_username}" if self.recorded_by_username else ""
        return f"#{self.id} {self.payment_date} | {self.amount:.2f}{by}"
