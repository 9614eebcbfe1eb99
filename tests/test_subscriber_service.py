from datetime import date
from decimal import Decimal

import pytest

from fakes import FakeActivityRepo, FakePaymentRepo, FakeSubscriberRepo, employee
from models.activity import ActionType
from models.subscriber import DEFAULT_CAR, PaymentStatus
from services.activity_service import ActivityService
from services.subscriber_service import SubscriberService, parse_money
from utils.errors import NotFoundError, TransientIOError, ValidationError

TODAY = date(2024, 3, 10)


@pytest.fixture
def calls():
    return []


@pytest.fixture
def subscribers(calls):
    return FakeSubscriberRepo(calls)


@pytest.fixture
def payments(subscribers):
    return FakePaymentRepo(subscribers)


@pytest.fixture
def activity():
    return FakeActivityRepo()


@pytest.fixture
def service(subscribers, payments, activity):
    return SubscriberService(subscribers, payments, ActivityService(activity))


def _add(service, name="Rami Khoury", fee="100", **kwargs):
    return service.add_subscriber(
        employee(), TODAY, name, "03 123 456", f"B-{name[:3]}", fee, **kwargs
    )


@pytest.mark.parametrize("raw, expected", [
    ("100", Decimal("100.00")),
    ("1,250.5", Decimal("1250.50")),
    ("$80", Decimal("80.00")),
    (Decimal("99.999"), Decimal("100.00")),
])
def test_parse_money(raw, expected):
    assert parse_money(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "-5", "0", "", "nan"])
def test_parse_money_rejects(raw):
    with pytest.raises(ValidationError):
        parse_money(raw)


def test_parse_money_allows_zero_when_asked():
    assert parse_money("0", allow_zero=True) == Decimal("0.00")


def test_add_subscriber_defaults_and_logs(service, activity):
    saved = _add(service)

    assert saved.id == 1
    assert saved.car == DEFAULT_CAR
    assert saved.status == PaymentStatus.OVERDUE
    assert saved.monthly_fee == Decimal("100.00")
    assert activity.rows[0].action_type == ActionType.SUBSCRIBER_ADDED
    assert activity.rows[0].subscriber_id == saved.id


@pytest.mark.parametrize("field", ["name", "phone", "vehicle_plate"])
def test_add_subscriber_requires_identity_fields(service, field):
    values = {"name": "Rami", "phone": "03123456", "vehicle_plate": "B 1", "monthly_fee": "100"}
    values[field] = "  "
    with pytest.raises(ValidationError):
        service.add_subscriber(employee(), TODAY, **values)


def test_add_subscriber_survives_activity_failure(service, activity):
    activity.fail = True
    saved = _add(service)
    assert saved.id is not None
    assert activity.rows == []


def test_record_payment_extends_to_month_end(service, activity):
    subscriber = _add(service)

    payment = service.record_payment(subscriber.id, "100", employee(), TODAY)

    refreshed = service.get_subscriber(subscriber.id, TODAY)
    assert payment.payment_date == TODAY
    assert payment.recorded_by_username == "alice"
    assert refreshed.valid_until == date(2024, 3, 31)
    assert refreshed.last_payment_date == TODAY
    assert refreshed.status == PaymentStatus.PAID
    assert activity.rows[-1].action_type == ActionType.PAYMENT_RECORDED
    assert activity.rows[-1].amount == Decimal("100.00")


def test_record_payment_in_february_of_leap_year(service):
    subscriber = _add(service)
    service.record_payment(subscriber.id, "100", employee(), date(2024, 2, 15))
    assert service.get_subscriber(subscriber.id, date(2024, 2, 15)).valid_until == date(2024, 2, 29)


def test_record_payment_failure_changes_nothing(service, payments, activity):
    subscriber = _add(service)
    payments.fail = True

    with pytest.raises(TransientIOError):
        service.record_payment(subscriber.id, "100", employee(), TODAY)

    assert service.get_subscriber(subscriber.id, TODAY).valid_until is None
    assert payments.rows == {}
    assert len(activity.rows) == 1


def test_record_payment_unknown_subscriber(service):
    with pytest.raises(NotFoundError):
        service.record_payment(99, "100", employee(), TODAY)


def test_record_payment_rejects_bad_amount(service):
    subscriber = _add(service)
    with pytest.raises(ValidationError):
        service.record_payment(subscriber.id, "-1", employee(), TODAY)


def test_status_is_recomputed_on_read(service):
    subscriber = _add(service)
    service.record_payment(subscriber.id, "100", employee(), date(2024, 3, 10))

    assert service.get_subscriber(subscriber.id, date(2024, 4, 3)).status == PaymentStatus.PENDING
    assert service.get_subscriber(subscriber.id, date(2024, 4, 6)).status == PaymentStatus.OVERDUE


def test_list_subscribers_filters(service):
    rami = _add(service, "Rami Khoury")
    _add(service, "Nadia Haddad", car="Kia Rio")
    service.record_payment(rami.id, "100", employee(), TODAY)

    assert [s.name for s in service.list_subscribers(TODAY, status=PaymentStatus.PAID)] == ["Rami Khoury"]
    assert [s.name for s in service.list_subscribers(TODAY, search="kia")] == ["Nadia Haddad"]
    assert len(service.list_subscribers(TODAY)) == 2


def test_update_subscriber_keeps_validity(service):
    subscriber = _add(service)
    service.record_payment(subscriber.id, "100", employee(), TODAY)

    updated = service.update_subscriber(
        subscriber.id, TODAY, "Rami K.", "70 000 000", "B-9", "120", car="Golf"
    )

    assert updated.name == "Rami K."
    assert updated.monthly_fee == Decimal("120.00")
    assert updated.valid_until == date(2024, 3, 31)


def test_set_validity_override(service):
    subscriber = _add(service)

    updated = service.set_validity(subscriber.id, date(2024, 6, 30), TODAY)
    assert updated.status == PaymentStatus.PAID

    cleared = service.set_validity(subscriber.id, None, TODAY)
    assert cleared.valid_until is None
    assert cleared.status == PaymentStatus.OVERDUE


def test_payment_edit_and_delete_leave_validity(service, payments):
    subscriber = _add(service)
    payment = service.record_payment(subscriber.id, "100", employee(), TODAY)

    service.update_payment(payment.id, "90", date(2024, 3, 9))
    assert payments.rows[payment.id].amount == Decimal("90.00")

    service.delete_payment(payment.id)
    assert payments.rows == {}
    assert service.get_subscriber(subscriber.id, TODAY).valid_until == date(2024, 3, 31)


def test_unknown_payment(service):
    with pytest.raises(NotFoundError):
        service.update_payment(5, "10", TODAY)
    with pytest.raises(NotFoundError):
        service.delete_payment(5)


def test_delete_subscriber_removes_payments_first(service, payments, calls):
    subscriber = _add(service)
    service.record_payment(subscriber.id, "100", employee(), TODAY)
    payments.add(subscriber.id, "100", date(2024, 2, 2))

    removed = service.delete_subscriber(subscriber.id)

    assert removed == 2
    assert calls == [("delete_payments", subscriber.id), ("delete_subscriber", subscriber.id)]
    assert payments.rows == {}
    with pytest.raises(NotFoundError):
        service.get_subscriber(subscriber.id, TODAY)


def test_delete_unknown_subscriber(service, calls):
    with pytest.raises(NotFoundError):
        service.delete_subscriber(42)
    assert calls == []


def test_payment_history(service, payments):
    subscriber = _add(service)
    payments.add(subscriber.id, "100", date(2024, 1, 2))
    payments.add(subscriber.id, "100", date(2024, 2, 2))

    history = service.payment_history(subscriber.id)
    assert [p.payment_date for p in history] == [date(2024, 2, 2), date(2024, 1, 2)]
