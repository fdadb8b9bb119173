import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app.core import config

log = logging.getLogger("notifier")


@dataclass(frozen=True)
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class Notifier(Protocol):
    """Contrato del canal de mensajería: nunca lanza, reporta el fallo en SendResult."""

    def send(self, to: str, body: str, media_url: Optional[str] = None) -> SendResult:
        ...


def _retrying_session() -> requests.Session:
    # Session con reintentos (para 429/5xx)
    s = requests.Session()
    s.mount(
        "https://",
        HTTPAdapter(
            max_retries=Retry(
                total=3,
                backoff_factor=1.2,
                status_forcelist=(429, 500, 502, 503, 504),
                allowed_methods=frozenset(["POST"]),
                raise_on_status=False,
            )
        ),
    )
    return s


def format_twilio_number(phone: str) -> str:
    """'+52...' / '52...' / 'whatsapp:+52...' -> 'whatsapp:+52...'."""
    if phone.startswith("whatsapp:"):
        return phone
    clean = phone if phone.startswith("+") else f"+{phone}"
    return f"whatsapp:{clean}"


class TwilioNotifier:
    BASE_URL = "https://api.twilio.com/2010-04-01/Accounts"

    def __init__(self, account_sid: str, auth_token: str, from_number: str,
                 timeout: int = 20, session: requests.Session | None = None):
        if not account_sid or not auth_token:
            raise RuntimeError("TWILIO_ACCOUNT_SID y TWILIO_AUTH_TOKEN deben estar configurados")
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = format_twilio_number(from_number)
        self.timeout = timeout
        self._session = session or _retrying_session()

    def send(self, to: str, body: str, media_url: Optional[str] = None) -> SendResult:
        url = f"{self.BASE_URL}/{self.account_sid}/Messages.json"
        data = {"From": self.from_number, "To": format_twilio_number(to), "Body": body}
        if media_url:
            data["MediaUrl"] = media_url
        try:
            resp = self._session.post(url, data=data, auth=(self.account_sid, self.auth_token), timeout=self.timeout)
        except requests.RequestException as e:
            log.warning("twilio send to %s failed: %s", to, e)
            return SendResult(False, error=f"Twilio API error: {e}")
        if resp.status_code >= 400:
            log.warning("twilio non-2xx %s to %s: %s", resp.status_code, to, resp.text[:300])
            return SendResult(False, error=f"Twilio API error: {resp.status_code}")
        try:
            sid = (resp.json() or {}).get("sid")
        except ValueError:
            sid = None
        log.info("twilio message sent to %s sid=%s", to, sid)
        return SendResult(True, message_id=sid)


class MetaNotifier:
    """WhatsApp Cloud API (Graph)."""

    def __init__(self, phone_number_id: str, access_token: str, graph_version: str = "v18.0",
                 timeout: int = 20, session: requests.Session | None = None):
        if not phone_number_id or not access_token:
            raise RuntimeError("WHATSAPP_PHONE_NUMBER_ID y WHATSAPP_ACCESS_TOKEN deben estar configurados")
        self.url = f"https://graph.facebook.com/{graph_version}/{phone_number_id}/messages"
        self.access_token = access_token
        self.timeout = timeout
        self._session = session or _retrying_session()

    def _payload(self, to: str, body: str, media_url: Optional[str]) -> dict:
        payload = {"messaging_product": "whatsapp", "to": to.replace("whatsapp:", "")}
        if media_url:
            payload["type"] = "video" if media_url.lower().endswith(".mp4") else "image"
            payload[payload["type"]] = {"link": media_url, "caption": body}
        else:
            # preview_url: WhatsApp arma la tarjeta del link (YouTube)
            payload["type"] = "text"
            payload["text"] = {"body": body, "preview_url": "http" in body}
        return payload

    def send(self, to: str, body: str, media_url: Optional[str] = None) -> SendResult:
        headers = {"Authorization": f"Bearer {self.access_token}"}
        try:
            resp = self._session.post(self.url, json=self._payload(to, body, media_url),
                                      headers=headers, timeout=self.timeout)
            data = resp.json() if resp.content else {}
        except (requests.RequestException, ValueError) as e:
            log.warning("meta send to %s failed: %s", to, e)
            return SendResult(False, error=f"Meta API error: {e}")
        if resp.status_code >= 400:
            msg = ((data.get("error") or {}).get("message")) or f"HTTP {resp.status_code}"
            log.warning("meta non-2xx to %s: %s", to, msg)
            return SendResult(False, error=f"Meta API error: {msg}")
        message_id = ((data.get("messages") or [{}])[0]).get("id")
        log.info("meta message sent to %s id=%s", to, message_id)
        return SendResult(True, message_id=message_id)


class ConsoleNotifier:
    """Modo demo: sin proveedor configurado solo se registra en el log."""

    def send(self, to: str, body: str, media_url: Optional[str] = None) -> SendResult:
        log.info("[DEV WHATSAPP] To:%s | media=%s | %s", to, media_url or "-", body)
        return SendResult(True, message_id="console")


def build_notifier(provider: str | None = None) -> Notifier:
    """Resuelve el proveedor UNA vez (al arrancar); el resultado se inyecta en motor/router/dispatcher."""
    provider = (provider or config.WHATSAPP_PROVIDER or "console").lower()
    if provider == "twilio":
        return TwilioNotifier(
            config.TWILIO_ACCOUNT_SID, config.TWILIO_AUTH_TOKEN, config.TWILIO_WHATSAPP_NUMBER,
            timeout=config.HTTP_TIMEOUT_SEC,
        )
    if provider == "meta":
        return MetaNotifier(
            config.WHATSAPP_PHONE_NUMBER_ID, config.WHATSAPP_ACCESS_TOKEN, config.WHATSAPP_GRAPH_VERSION,
            timeout=config.HTTP_TIMEOUT_SEC,
        )
    if provider != "console":
        log.warning("unknown WHATSAPP_PROVIDER=%r, falling back to console", provider)
    return ConsoleNotifier()
