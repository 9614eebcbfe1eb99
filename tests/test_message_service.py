from datetime import datetime
from decimal import Decimal

import pytest

from fakes import FakeMessageRepo, FakeSms, employee
from models.message import MessageStatus, PendingMessage
from models.subscriber import Subscriber
from services.message_service import MessageService, group_bulk, render_template
from utils.errors import NotFoundError, PartialBulkFailure, TransientIOError, ValidationError

NOW = datetime(2024, 3, 10, 12, 0)
LATER = datetime(2024, 3, 11, 8, 30)


def _subscriber(sid, name, phone="03 123 456", fee="100"):
    return Subscriber(
        id=sid, name=name, phone=phone, vehicle_plate=f"B {sid}",
        monthly_fee=Decimal(fee),
    )


@pytest.fixture
def repo():
    return FakeMessageRepo()


@pytest.fixture
def sms():
    return FakeSms()


@pytest.fixture
def service(repo, sms):
    return MessageService(repo, sms)


def _queue(service, sid, text, is_bulk=True, phone="03 123 456"):
    return service.queue_reminder(_subscriber(sid, f"Sub{sid}", phone), text, employee(), is_bulk=is_bulk)


def test_render_template():
    subscriber = _subscriber(1, "Rami", fee="100.50")
    text = render_template("Hi {name}, pay ${fee} for {plate}", subscriber)
    assert text == "Hi Rami, pay $100.5 for B 1"


def test_render_template_keeps_whole_fees():
    assert render_template("{fee}", _subscriber(1, "Rami", fee="100")) == "100"


def test_queue_reminder_snapshots_subscriber(service, repo):
    message_id = _queue(service, 7, "Please pay", is_bulk=False)

    stored = repo.rows[message_id]
    assert stored.subscriber_id == 7
    assert stored.subscriber_name == "Sub7"
    assert stored.vehicle_plate == "B 7"
    assert stored.requested_by_username == "alice"
    assert stored.status == MessageStatus.PENDING


def test_empty_message_is_rejected(service):
    with pytest.raises(ValidationError):
        _queue(service, 1, "   ")


def test_duplicates_are_allowed(service, repo):
    _queue(service, 1, "Pay", is_bulk=False)
    _queue(service, 1, "Pay", is_bulk=False)
    assert service.pending_count_for(1) == 2


def test_queue_bulk_renders_per_subscriber(service, repo):
    queued = service.queue_bulk(
        [_subscriber(1, "Rami"), _subscriber(2, "Nadia")], "Hi {name}", employee()
    )
    assert queued == 2
    assert sorted(m.message for m in repo.rows.values()) == ["Hi Nadia", "Hi Rami"]
    assert all(m.is_bulk for m in repo.rows.values())


def test_grouping_by_stripped_text(service):
    _queue(service, 1, "Pay now", phone="03 111 111")
    _queue(service, 2, "Pay now  ", phone="03 222 222")
    _queue(service, 3, "Other text")
    _queue(service, 4, "Pay now", is_bulk=False)

    groups = service.bulk_groups()

    assert [g.count for g in groups] == [1, 2]
    other, pay = groups
    assert other.text == "Other text"
    assert pay.text == "Pay now"
    assert pay.phones == ["9613222222", "9613111111"]


def test_grouping_skips_sent_messages():
    sent = PendingMessage(
        subscriber_name="A", subscriber_phone="03111111", vehicle_plate="X",
        message="Pay", requested_by_user_id=1, requested_by_username="alice",
        is_bulk=True, status=MessageStatus.SENT, id=1,
    )
    pending = PendingMessage(
        subscriber_name="B", subscriber_phone="03111111", vehicle_plate="Y",
        message="Pay", requested_by_user_id=1, requested_by_username="alice",
        is_bulk=True, id=2,
    )
    groups = group_bulk([sent, pending, pending])
    assert len(groups) == 1
    assert groups[0].ids == [2, 2]
    assert groups[0].phones == ["9613111111"]


def test_mark_sent_records_resolution(service, repo):
    message_id = _queue(service, 1, "Pay")

    assert service.mark_sent(message_id, "backend", NOW) is True

    stored = repo.rows[message_id]
    assert stored.status == MessageStatus.SENT
    assert stored.resolved_by_username == "backend"
    assert stored.resolved_at == NOW


def test_second_mark_sent_keeps_original_values(service, repo):
    message_id = _queue(service, 1, "Pay")
    service.mark_sent(message_id, "backend", NOW)

    assert service.mark_sent(message_id, "someone", LATER) is False

    stored = repo.rows[message_id]
    assert stored.resolved_by_username == "backend"
    assert stored.resolved_at == NOW


def test_mark_sent_unknown_message(service):
    with pytest.raises(NotFoundError):
        service.mark_sent(404, "backend", NOW)


def test_mark_group_sent(service, repo):
    for sid in (1, 2, 3):
        _queue(service, sid, "Pay")
    group = service.bulk_groups()[0]

    assert service.mark_group_sent(group, "backend", NOW) == 3
    assert service.bulk_groups() == []


def test_mark_group_sent_partial_failure(service, repo):
    ids = [_queue(service, sid, "Pay") for sid in (1, 2, 3)]
    repo.fail_mark_ids.add(ids[1])
    group = service.bulk_groups()[0]

    with pytest.raises(PartialBulkFailure) as exc:
        service.mark_group_sent(group, "backend", NOW)

    assert exc.value.failed == [ids[1]]
    assert sorted(exc.value.succeeded) == [ids[0], ids[2]]
    assert repo.rows[ids[0]].status == MessageStatus.SENT
    assert repo.rows[ids[1]].status == MessageStatus.PENDING


def test_mark_group_sent_total_failure(service, repo):
    ids = [_queue(service, sid, "Pay") for sid in (1, 2)]
    repo.fail_mark_ids.update(ids)

    with pytest.raises(TransientIOError):
        service.mark_group_sent(service.bulk_groups()[0], "backend", NOW)


def test_dismiss(service, repo):
    message_id = _queue(service, 1, "Pay")
    service.dismiss(message_id)
    assert message_id not in repo.rows
    with pytest.raises(NotFoundError):
        service.dismiss(message_id)


def test_list_pending_excludes_sent(service):
    first = _queue(service, 1, "Pay")
    second = _queue(service, 2, "Pay")
    service.mark_sent(first, "backend", NOW)

    assert [m.id for m in service.list_pending()] == [second]
    assert len(service.list_messages()) == 2


def test_whatsapp_link(service):
    message = service.get_message(_queue(service, 1, "Pay now", is_bulk=False))
    assert service.whatsapp_link(message) == "https://wa.me/9613123456?text=Pay%20now"


def test_dispatch_sms_marks_sent(service, repo, sms):
    message_id = _queue(service, 1, "Pay", is_bulk=False)

    result = service.dispatch_sms(message_id, "backend", NOW)

    assert result.success
    assert sms.sent == [("03 123 456", "Pay")]
    assert repo.rows[message_id].status == MessageStatus.SENT


def test_dispatch_sms_failure_leaves_message_pending(repo):
    service = MessageService(repo, FakeSms(success=False))
    message_id = _queue(service, 1, "Pay", is_bulk=False)

    with pytest.raises(TransientIOError):
        service.dispatch_sms(message_id, "backend", NOW)

    assert repo.rows[message_id].status == MessageStatus.PENDING


def test_dispatch_sms_rejects_sent_message(service):
    message_id = _queue(service, 1, "Pay", is_bulk=False)
    service.mark_sent(message_id, "backend", NOW)
    with pytest.raises(ValidationError):
        service.dispatch_sms(message_id, "backend", LATER)


def test_dispatch_group_sms_uses_one_call(service, sms):
    _queue(service, 1, "Pay", phone="03 111 111")
    _queue(service, 2, "Pay", phone="03 222 222")
    group = service.bulk_groups()[0]

    assert service.dispatch_group_sms(group, "backend", NOW) == 2
    assert len(sms.bulk) == 1
    assert sorted(sms.bulk[0][0]) == ["9613111111", "9613222222"]


def test_dispatch_group_sms_failure_marks_nothing(repo):
    service = MessageService(repo, FakeSms(success=False))
    _queue(service, 1, "Pay")
    group = service.bulk_groups()[0]

    with pytest.raises(TransientIOError):
        service.dispatch_group_sms(group, "backend", NOW)

    assert service.bulk_groups()[0].count == 1


def test_group_key_survives_newer_batches(service):
    first = _queue(service, 1, "Pay March", phone="03 111 111")
    _queue(service, 2, "Pay March", phone="03 222 222")
    listed = service.bulk_groups()
    key = listed[0].key
    assert key == first

    _queue(service, 3, "Different text")
    assert service.bulk_groups()[0].text == "Different text"

    group = service.find_group(key)
    assert group.text == "Pay March"
    assert service.mark_group_sent(group, "backend", NOW) == 2
    assert [g.text for g in service.bulk_groups()] == ["Different text"]


def test_find_group_after_its_oldest_member_was_sent(service):
    first = _queue(service, 1, "Pay")
    _queue(service, 2, "Pay")
    service.mark_sent(first, "backend", NOW)

    with pytest.raises(NotFoundError):
        service.find_group(first)
