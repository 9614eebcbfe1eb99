import pytest
import requests

from services.sms_service import SmsService


class _Response:
    def __init__(self, text, status=200):
        self.text = text
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture
def service():
    return SmsService(base_url="https://gw.example/websms", user="park", password="s3cret", sid="PARK", timeout=7)


@pytest.fixture
def calls(monkeypatch):
    recorded = []

    def fake_get(url, timeout):
        recorded.append((url, timeout))
        return _Response("OK 12345")

    monkeypatch.setattr(requests, "get", fake_get)
    return recorded


def test_build_url(service):
    url = service.build_url(["03 123 456", "+961 70 000000"], "Pay now")
    assert url == (
        "https://gw.example/websms?user=park&pass=s3cret&sid=PARK"
        "&mno=9613123456,96170000000&type=1&text=Pay%20now"
    )


def test_arabic_text_uses_unicode_type(service):
    assert "&type=4&" in service.build_url(["03123456"], "مرحبا")
    assert service.message_type("Hello") == "1"


def test_send_one_call_per_recipient(service, calls):
    results = service.send([("03 123 456", "Hi"), ("71 123 456", "Hello")])

    assert [r.success for r in results] == [True, True]
    assert [r.phone for r in results] == ["9613123456", "96171123456"]
    assert len(calls) == 2
    assert all(timeout == 7 for _, timeout in calls)


def test_send_bulk_single_call(service, calls):
    result = service.send_bulk(["03 123 456", "71 123 456"], "Hi")
    assert result.success
    assert len(calls) == 1
    assert "mno=9613123456,96171123456" in calls[0][0]


def test_error_body_is_failure(service, monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, timeout: _Response("ERROR 102 invalid sid"))
    result = service.send_bulk(["03123456"], "Hi")
    assert not result.success
    assert result.error == "ERROR 102 invalid sid"


def test_timeout_is_failure(service, monkeypatch):
    def boom(url, timeout):
        raise requests.Timeout("timed out")

    monkeypatch.setattr(requests, "get", boom)
    result = service.send([("03123456", "Hi")])[0]
    assert not result.success
    assert "timed out" in result.error


def test_http_error_is_failure(service, monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, timeout: _Response("down", status=503))
    assert not service.send_bulk(["03123456"], "Hi").success


def test_password_is_masked(service):
    masked = service._mask(service.build_url(["03123456"], "Hi"))
    assert "s3cret" not in masked
    assert "pass=***" in masked


def test_unconfigured_gateway_refuses():
    service = SmsService(user="", password="", sid="")
    assert not service.is_configured
    with pytest.raises(RuntimeError):
        service.send_bulk(["03123456"], "Hi")
