import pytest
import requests

from app.services.notifier import (
    TwilioNotifier, MetaNotifier, ConsoleNotifier, build_notifier, format_twilio_number,
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.content = b"{}" if payload is not None else b""

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.exc:
            raise self.exc
        return self.response


def test_format_twilio_number():
    assert format_twilio_number("+5215550001") == "whatsapp:+5215550001"
    assert format_twilio_number("5215550001") == "whatsapp:+5215550001"
    assert format_twilio_number("whatsapp:+1") == "whatsapp:+1"


def test_twilio_send_ok():
    s = FakeSession(FakeResponse(201, {"sid": "SM123"}))
    n = TwilioNotifier("AC1", "tok", "+14155238886", session=s)
    res = n.send("+5215550001", "hola", media_url="https://x/v.mp4")

    assert res.success and res.message_id == "SM123"
    url, kwargs = s.calls[0]
    assert url.endswith("/Accounts/AC1/Messages.json")
    assert kwargs["data"] == {
        "From": "whatsapp:+14155238886", "To": "whatsapp:+5215550001",
        "Body": "hola", "MediaUrl": "https://x/v.mp4",
    }
    assert kwargs["auth"] == ("AC1", "tok")


def test_twilio_send_failures_are_reported():
    n = TwilioNotifier("AC1", "tok", "+1", session=FakeSession(FakeResponse(400, {}, "bad")))
    assert n.send("+52", "x").success is False

    n = TwilioNotifier("AC1", "tok", "+1", session=FakeSession(exc=requests.ConnectionError("down")))
    res = n.send("+52", "x")
    assert res.success is False and "down" in res.error


def test_twilio_requires_credentials():
    with pytest.raises(RuntimeError):
        TwilioNotifier("", "", "+1")


def test_meta_payloads():
    s = FakeSession(FakeResponse(200, {"messages": [{"id": "wamid.1"}]}))
    n = MetaNotifier("PNID", "token", session=s)

    res = n.send("whatsapp:+5215550001", "mira https://youtu.be/x")
    assert res.success and res.message_id == "wamid.1"
    url, kwargs = s.calls[0]
    assert url == "https://graph.facebook.com/v18.0/PNID/messages"
    assert kwargs["json"]["to"] == "+5215550001"
    assert kwargs["json"]["text"] == {"body": "mira https://youtu.be/x", "preview_url": True}
    assert kwargs["headers"]["Authorization"] == "Bearer token"

    n.send("+52", "caption", media_url="https://x/v.mp4")
    assert s.calls[1][1]["json"]["video"] == {"link": "https://x/v.mp4", "caption": "caption"}


def test_meta_error_message():
    s = FakeSession(FakeResponse(401, {"error": {"message": "Invalid token"}}))
    res = MetaNotifier("PNID", "token", session=s).send("+52", "x")
    assert res.success is False and "Invalid token" in res.error


def test_build_notifier_defaults_to_console():
    assert isinstance(build_notifier("console"), ConsoleNotifier)
    assert isinstance(build_notifier("carrier-pigeon"), ConsoleNotifier)
    assert ConsoleNotifier().send("+52", "x").success
