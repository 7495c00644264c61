from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

from ..errors import SchemaChanged

logger = logging.getLogger(__name__)

PATRON_NAME = "Patron Name"
AMOUNT = "Amount"
PAYMENT_OPTION = "Payment Option (Cash, Cheque, UPI)"
CONTACT_NUMBER = "Contact Number"
NOTIFICATION_SENT = "Notification Sent"


class CellWriter(Protocol):
    def cell_address(self, row: int, col: int) -> str: ...

    def write_cells(self, address: str, values: Sequence[Sequence[str]], *, raw: bool = True) -> None: ...


@dataclass(frozen=True, slots=True)
class ColumnIndex:
    """Zero-based positions of the known columns; None when a header is missing."""

    patron_name: int | None
    amount: int | None
    payment_option: int | None
    contact_number: int | None
    notification_sent: int


def _position(header: Sequence[str], name: str) -> int | None:
    for index, label in enumerate(header):
        if label.strip() == name:
            return index
    return None


def resolve_columns(header: Sequence[str], writer: CellWriter) -> ColumnIndex:
    """Map header labels to positions.

    When the tracking column is missing it is appended to the header row and
    written back, then ``SchemaChanged`` is raised so the caller re-reads the
    sheet instead of indexing into the stale snapshot.
    """
    notification_sent = _position(header, NOTIFICATION_SENT)
    if notification_sent is None:
        logger.info("Adding '%s' column to the sheet...", NOTIFICATION_SENT)
        new_header = [*header, NOTIFICATION_SENT]
        writer.write_cells(writer.cell_address(1, 1), [new_header], raw=True)
        raise SchemaChanged(NOTIFICATION_SENT)

    index = ColumnIndex(
        patron_name=_position(header, PATRON_NAME),
        amount=_position(header, AMOUNT),
        payment_option=_position(header, PAYMENT_OPTION),
        contact_number=_position(header, CONTACT_NUMBER),
        notification_sent=notification_sent,
    )
    missing = [
        name
        for name, position in {
            PATRON_NAME: index.patron_name,
            AMOUNT: index.amount,
            PAYMENT_OPTION: index.payment_option,
            CONTACT_NUMBER: index.contact_number,
        }.items()
        if position is None
    ]
    if missing:
        logger.warning("Header row is missing column(s): %s", ", ".join(missing))
    return index
