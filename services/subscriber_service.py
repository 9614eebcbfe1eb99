"""
services/subscriber_service.py
------------------------------
Business logic for subscribers and their payments.
Orchestrates the subscriber/payment repositories and the activity log,
and derives every subscriber's status on read.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from models.activity import ActionType
from models.operator import Operator
from models.subscriber import DEFAULT_CAR, Payment, PaymentStatus, Subscriber
from repositories.payment_repo import PaymentRepository
from repositories.subscriber_repo import SubscriberRepository
from services.activity_service import ActivityService
from services.status import compute_status
from utils.dates import month_end
from utils.errors import NotFoundError, ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)


def parse_money(value, field_name: str = "amount", allow_zero: bool = False) -> Decimal:
    """
    Parse a currency amount typed by an operator.

    Raises:
        ValidationError: If the value is not a number, negative, or zero
            when zero is not allowed.
    """
    try:
        amount = Decimal(str(value).strip().replace(",", "").lstrip("$"))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not amount.is_finite() or amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{field_name} must be greater than zero")
    return amount.quantize(Decimal("0.01"))


def _require(value: Optional[str], field_name: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


class SubscriberService:
    """
    Handles all business logic related to subscribers.

    Responsibilities:
        - Validate and persist subscriber records.
        - Record payments (payment row + validity update in one transaction).
        - Delete subscribers together with their payments.
        - Recompute status on every read.
    """

    def __init__(
        self,
        subscriber_repo: Optional[SubscriberRepository] = None,
        payment_repo: Optional[PaymentRepository] = None,
        activity_service: Optional[ActivityService] = None,
    ):
        self.subscriber_repo = subscriber_repo or SubscriberRepository()
        self.payment_repo = payment_repo or PaymentRepository()
        self.activity = activity_service or ActivityService()

    # ── READ ──────────────────────────────────────────────

    def list_subscribers(
        self,
        today: date,
        status: Optional[PaymentStatus] = None,
        search: Optional[str] = None,
    ) -> list[Subscriber]:
        """
        All subscribers with a freshly derived status, newest first.

        Args:
            today: Reference date for the status rule.
            status: Optional status filter.
            search: Optional text matched against name, plate and car.
        """
        subscribers = [self._with_status(s, today) for s in self.subscriber_repo.get_all()]
        if status:
            subscribers = [s for s in subscribers if s.status == status]
        if search and search.strip():
            subscribers = [s for s in subscribers if s.matches(search)]
        return subscribers

    def get_subscriber(self, subscriber_id: int, today: date) -> Subscriber:
        """
        Raises:
            NotFoundError: If the subscriber does not exist.
        """
        subscriber = self.subscriber_repo.get_by_id(subscriber_id)
        if subscriber is None:
            raise NotFoundError(f"Subscriber #{subscriber_id} not found")
        return self._with_status(subscriber, today)

    def payment_history(self, subscriber_id: int) -> list[Payment]:
        """Payments of a subscriber, most recent first."""
        if self.subscriber_repo.get_by_id(subscriber_id) is None:
            raise NotFoundError(f"Subscriber #{subscriber_id} not found")
        return self.payment_repo.get_for_subscriber(subscriber_id)

    # ── CREATE ────────────────────────────────────────────

    def add_subscriber(
        self,
        operator: Operator,
        today: date,
        name: str,
        phone: str,
        vehicle_plate: str,
        monthly_fee,
        car: Optional[str] = None,
        last_payment_date: Optional[date] = None,
        valid_until: Optional[date] = None,
    ) -> Subscriber:
        """
        Validate and store a new subscriber, then log the action.

        Raises:
            ValidationError: If a required field is missing or the fee is invalid.
        """
        subscriber = Subscriber(
            name=_require(name, "Name"),
            phone=_require(phone, "Phone"),
            vehicle_plate=_require(vehicle_plate, "Vehicle plate"),
            monthly_fee=parse_money(monthly_fee, "Monthly fee", allow_zero=True),
            car=(car or "").strip() or DEFAULT_CAR,
            last_payment_date=last_payment_date,
            valid_until=valid_until,
            status=compute_status(valid_until, today),
        )
        saved = self.subscriber_repo.add(subscriber)
        self.activity.log_action(
            ActionType.SUBSCRIBER_ADDED, operator, saved.name, subscriber_id=saved.id,
            details=saved.vehicle_plate,
        )
        return saved

    # ── UPDATE ────────────────────────────────────────────

    def update_subscriber(
        self,
        subscriber_id: int,
        today: date,
        name: str,
        phone: str,
        vehicle_plate: str,
        monthly_fee,
        car: Optional[str] = None,
    ) -> Subscriber:
        """Edit identity fields. Validity and status are not touched."""
        subscriber = self.get_subscriber(subscriber_id, today)
        subscriber.name = _require(name, "Name")
        subscriber.phone = _require(phone, "Phone")
        subscriber.vehicle_plate = _require(vehicle_plate, "Vehicle plate")
        subscriber.monthly_fee = parse_money(monthly_fee, "Monthly fee", allow_zero=True)
        subscriber.car = (car or "").strip() or DEFAULT_CAR
        if not self.subscriber_repo.update(subscriber):
            raise NotFoundError(f"Subscriber #{subscriber_id} not found")
        return subscriber

    def record_payment(
        self, subscriber_id: int, amount, operator: Operator, today: date
    ) -> Payment:
        """
        Record a payment made today and extend validity to the end of the month.

        The payment insert and the subscriber update run in a single
        transaction, so a failure leaves neither behind.

        Raises:
            NotFoundError: If the subscriber does not exist.
            ValidationError: If the amount is invalid.
            TransientIOError: If the store call failed.
        """
        subscriber = self.get_subscriber(subscriber_id, today)
        payment = Payment(
            subscriber_id=subscriber_id,
            amount=parse_money(amount),
            payment_date=today,
            recorded_by_username=operator.username,
        )
        saved = self.payment_repo.record_payment(payment, valid_until=month_end(today))
        self.activity.log_action(
            ActionType.PAYMENT_RECORDED, operator, subscriber.name,
            subscriber_id=subscriber_id, amount=saved.amount,
        )
        return saved

    def set_validity(
        self, subscriber_id: int, valid_until: Optional[date], today: date
    ) -> Subscriber:
        """Admin override of the validity-end date (None clears it)."""
        subscriber = self.get_subscriber(subscriber_id, today)
        status = compute_status(valid_until, today)
        self.subscriber_repo.set_validity(subscriber_id, valid_until, status)
        subscriber.valid_until = valid_until
        subscriber.status = status
        return subscriber

    def update_payment(self, payment_id: int, amount, payment_date: date) -> Payment:
        """
        Correct a recorded payment.

        The owning subscriber's validity is NOT recomputed; use
        `set_validity` if the correction changes what the subscriber owes.
        """
        payment = self._get_payment(payment_id)
        payment.amount = parse_money(amount)
        payment.payment_date = payment_date
        if not self.payment_repo.update(payment_id, payment.amount, payment_date):
            raise NotFoundError(f"Payment #{payment_id} not found")
        return payment

    # ── DELETE ────────────────────────────────────────────

    def delete_payment(self, payment_id: int) -> Payment:
        """
        Delete a recorded payment.

        Like `update_payment`, this leaves the subscriber's validity as is.
        """
        payment = self._get_payment(payment_id)
        if not self.payment_repo.delete(payment_id):
            raise NotFoundError(f"Payment #{payment_id} not found")
        logger.info(
            f"Payment #{payment_id} deleted; validity of subscriber "
            f"#{payment.subscriber_id} left unchanged"
        )
        return payment

    def delete_subscriber(self, subscriber_id: int) -> int:
        """
        Delete a subscriber after deleting all of their payments.

        Returns:
            Number of payments deleted along with the subscriber.

        Raises:
            NotFoundError: If the subscriber does not exist.
        """
        if self.subscriber_repo.get_by_id(subscriber_id) is None:
            raise NotFoundError(f"Subscriber #{subscriber_id} not found")
        removed = self.payment_repo.delete_for_subscriber(subscriber_id)
        if not self.subscriber_repo.delete(subscriber_id):
            raise NotFoundError(f"Subscriber #{subscriber_id} not found")
        return removed

    # ── HELPERS ───────────────────────────────────────────

    def _get_payment(self, payment_id: int) -> Payment:
        payment = self.payment_repo.get_by_id(payment_id)
        if payment is None:
            raise NotFoundError(f"Payment #{payment_id} not found")
        return payment

    @staticmethod
    def _with_status(subscriber: Subscriber, today: date) -> Subscriber:
        subscriber.status = compute_status(subscriber.valid_until, today)
        return subscriber
