from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


class DeliveryStatus(IntEnum):
    """Acknowledgement levels reported by the gateway, in their usual order.

    States may arrive out of order or be skipped entirely.
    """

    ERROR = -1
    QUEUED = 0
    SENT = 1
    DELIVERED = 2
    READ = 3
    PLAYED = 4

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    DeliveryStatus.ERROR: "failed",
    DeliveryStatus.QUEUED: "queued",
    DeliveryStatus.SENT: "sent to server",
    DeliveryStatus.DELIVERED: "delivered to recipient",
    DeliveryStatus.READ: "read by recipient",
    DeliveryStatus.PLAYED: "played by recipient",
}


class TransportEvent(str, Enum):
    SESSION_READY = "session_ready"
    AUTHENTICATED = "authenticated"
    AUTH_FAILURE = "auth_failure"
    DISCONNECTED = "disconnected"
    QR_CHALLENGE = "qr_challenge"
    DELIVERY_STATUS = "delivery_status"


@dataclass(frozen=True, slots=True)
class DeliveryHandle:
    message_id: str
    destination: str


class Transport(Protocol):
    events: "TransportEvents"

    def send(self, destination: str, text: str) -> DeliveryHandle: ...


Handler = Callable[..., Any]


class TransportEvents:
    """Fan-out of gateway callbacks to subscribers.

    Handlers run synchronously on the thread that emits the event. A failing
    handler is logged and does not stop delivery to the remaining ones.
    """

    def __init__(self) -> None:
        self._handlers: dict[TransportEvent, list[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event: TransportEvent, handler: Handler) -> None:
        with self._lock:
            self._handlers[event].append(handler)

    def unsubscribe(self, event: TransportEvent, handler: Handler) -> None:
        with self._lock:
            if handler in self._handlers[event]:
                self._handlers[event].remove(handler)

    def emit(self, event: TransportEvent, *args: Any) -> None:
        with self._lock:
            handlers = list(self._handlers[event])
        for handler in handlers:
            try:
                handler(*args)
            except Exception:  # noqa: BLE001
                logger.exception("Handler %r failed for %s event", handler, event.value)
