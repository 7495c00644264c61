from __future__ import annotations

import logging
import threading
from collections import OrderedDict

from ..dispatch.models import NotificationRecord
from ..transport.base import DeliveryHandle, DeliveryStatus, TransportEvent, TransportEvents

logger = logging.getLogger(__name__)

FINAL_STATUSES = {DeliveryStatus.ERROR, DeliveryStatus.READ, DeliveryStatus.PLAYED}
MAX_TRACKED = 1000


class DeliveryObserver:
    """Log delivery acknowledgements and tie them back to sheet rows.

    Purely informational: nothing here feeds back into row marking. Only the
    most recent ``max_tracked`` messages are remembered; older ones are logged
    without their row.
    """

    def __init__(self, max_tracked: int = MAX_TRACKED) -> None:
        self.max_tracked = max_tracked
        self._pending: OrderedDict[str, NotificationRecord] = OrderedDict()
        self._lock = threading.Lock()

    def attach(self, events: TransportEvents) -> None:
        events.subscribe(TransportEvent.DELIVERY_STATUS, self.on_status)

    def track(self, handle: DeliveryHandle, record: NotificationRecord) -> None:
        with self._lock:
            self._pending[handle.message_id] = record
            self._pending.move_to_end(handle.message_id)
            while len(self._pending) > self.max_tracked:
                self._pending.popitem(last=False)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def tracked(self, message_id: str) -> NotificationRecord | None:
        with self._lock:
            return self._pending.get(message_id)

    def on_status(self, handle: DeliveryHandle, status: DeliveryStatus | int) -> None:
        with self._lock:
            record = self._pending.get(handle.message_id)
            if record is not None and status in FINAL_STATUSES:
                del self._pending[handle.message_id]

        destination = handle.destination or (record.destination if record else "unknown")
        context = f" (row {record.row_number})" if record else ""

        if not isinstance(status, DeliveryStatus):
            logger.info("Message to %s%s acknowledgment: %s", destination, context, status)
        elif status is DeliveryStatus.ERROR:
            logger.warning("Message to %s%s failed to deliver", destination, context)
        else:
            logger.info(
                "Message to %s%s %s (ACK: %s)", destination, context, status.label, status.name
            )


class SessionEventLogger:
    """Report gateway session changes; the gateway handles the session itself."""

    def attach(self, events: TransportEvents) -> None:
        events.subscribe(TransportEvent.SESSION_READY, self.on_ready)
        events.subscribe(TransportEvent.AUTHENTICATED, self.on_authenticated)
        events.subscribe(TransportEvent.AUTH_FAILURE, self.on_auth_failure)
        events.subscribe(TransportEvent.DISCONNECTED, self.on_disconnected)
        events.subscribe(TransportEvent.QR_CHALLENGE, self.on_qr)

    def on_ready(self) -> None:
        logger.info("WhatsApp client is ready!")

    def on_authenticated(self) -> None:
        logger.info("AUTHENTICATED")

    def on_auth_failure(self, reason: str) -> None:
        logger.error("AUTHENTICATION FAILURE: %s", reason)

    def on_disconnected(self, reason: str) -> None:
        logger.warning("Client was disconnected: %s", reason)

    def on_qr(self, payload: str) -> None:
        logger.warning("QR RECEIVED; pair the gateway session using %s", payload)
