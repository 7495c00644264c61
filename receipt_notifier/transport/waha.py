from __future__ import annotations

import logging
import time
from typing import Any, Callable

import requests

from ..config import Settings
from ..errors import TransportError
from .base import DeliveryHandle, DeliveryStatus, TransportEvent, TransportEvents

logger = logging.getLogger(__name__)

READY_STATUS = "WORKING"


def _message_id(data: Any) -> str | None:
    """Gateway engines report ids either flat or as a serialized object."""
    if isinstance(data, dict):
        data = data.get("id")
    if isinstance(data, dict):
        data = data.get("_serialized") or data.get("id")
    return str(data) if data else None


class WahaTransport:
    """Send WhatsApp messages through a WAHA-compatible HTTP gateway.

    The gateway owns the WhatsApp Web session (login, QR pairing, reconnects).
    Status callbacks reach this object through ``handle_webhook``.
    """

    def __init__(
        self,
        base_url: str,
        session_name: str = "default",
        api_key: str | None = None,
        timeout: float = 30,
        session: requests.Session | None = None,
        events: TransportEvents | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session_name = session_name
        self.timeout = timeout
        self.events = events or TransportEvents()
        self._http = session or requests.Session()
        if api_key:
            self._http.headers["X-Api-Key"] = api_key
        self._last_status: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "WahaTransport":
        return cls(
            base_url=settings.transport_url,
            session_name=settings.transport_session,
            api_key=settings.transport_api_key,
            timeout=settings.request_timeout,
        )

    def send(self, destination: str, text: str) -> DeliveryHandle:
        payload = {"session": self.session_name, "chatId": destination, "text": text}
        try:
            response = self._http.post(
                f"{self.base_url}/api/sendText", json=payload, timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json() if response.content else {}
        except requests.RequestException as exc:
            raise TransportError(f"Sending to {destination} failed: {exc}") from exc
        except ValueError as exc:
            raise TransportError(f"Gateway returned invalid JSON for {destination}") from exc

        message_id = _message_id(data)
        if not message_id:
            raise TransportError(f"Gateway response for {destination} is missing a message id")
        return DeliveryHandle(message_id=message_id, destination=destination)

    def session_status(self) -> str | None:
        response = self._http.get(
            f"{self.base_url}/api/sessions/{self.session_name}", timeout=self.timeout
        )
        response.raise_for_status()
        return response.json().get("status")

    def wait_until_ready(
        self,
        timeout: float,
        poll_interval: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> bool:
        """Poll the gateway until the session is usable, emitting status events."""
        deadline = time.monotonic() + timeout
        while True:
            try:
                status = self.session_status()
            except (requests.RequestException, ValueError) as exc:
                logger.debug("Gateway not reachable yet: %s", exc)
            else:
                self._on_session_status(status, source="poll")
                if status == READY_STATUS:
                    return True
            if time.monotonic() >= deadline:
                return False
            sleep(poll_interval)

    def handle_webhook(self, body: dict[str, Any]) -> None:
        """Translate one gateway webhook body into transport events."""
        event = body.get("event")
        payload = body.get("payload") or {}
        if body.get("session") not in (None, self.session_name):
            logger.debug("Ignoring event for session %s", body.get("session"))
            return
        if not isinstance(payload, dict):
            logger.warning("Ignoring %s event with non-object payload: %r", event, payload)
            return

        if event == "message.ack":
            message_id = _message_id(payload)
            if message_id is None:
                logger.warning("Ignoring acknowledgement without message id: %s", payload)
                return
            handle = DeliveryHandle(message_id=message_id, destination=str(payload.get("to", "")))
            raw_ack = payload.get("ack")
            try:
                status: DeliveryStatus | int = DeliveryStatus(raw_ack)
            except ValueError:
                status = raw_ack if isinstance(raw_ack, int) else DeliveryStatus.ERROR
            self.events.emit(TransportEvent.DELIVERY_STATUS, handle, status)
        elif event == "session.status":
            self._on_session_status(payload.get("status"), source="webhook")
        else:
            logger.debug("Ignoring gateway event %s", event)

    def _on_session_status(self, status: str | None, source: str) -> None:
        if status == self._last_status:
            return
        previous, self._last_status = self._last_status, status
        logger.debug("Session %s status %s -> %s (%s)", self.session_name, previous, status, source)

        if status == READY_STATUS:
            if previous == "SCAN_QR_CODE":
                self.events.emit(TransportEvent.AUTHENTICATED)
            self.events.emit(TransportEvent.SESSION_READY)
        elif status == "SCAN_QR_CODE":
            self.events.emit(
                TransportEvent.QR_CHALLENGE,
                f"{self.base_url}/api/{self.session_name}/auth/qr",
            )
        elif status == "FAILED":
            self.events.emit(TransportEvent.AUTH_FAILURE, f"session {self.session_name} failed")
        elif status == "STOPPED" and previous == READY_STATUS:
            self.events.emit(TransportEvent.DISCONNECTED, f"session {self.session_name} stopped")
