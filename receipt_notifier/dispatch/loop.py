from __future__ import annotations

import logging
from typing import Protocol, Sequence

from ..errors import ConfigurationError, SchemaChanged, SourceUnavailable
from ..sheets.client import Table
from ..sheets.schema import CellWriter, ColumnIndex, resolve_columns
from ..transport.base import DeliveryHandle, Transport
from .models import FALLBACK_TEXT, IterationResult, IterationStatus, NotificationRecord

logger = logging.getLogger(__name__)

SENT_MARKER = "true"


class RecordSource(CellWriter, Protocol):
    def scan_range(self) -> str: ...

    def fetch_table(self, range_spec: str | None = None) -> Table: ...


class DeliveryTracker(Protocol):
    def track(self, handle: DeliveryHandle, record: NotificationRecord) -> None: ...


def _cell(row: Sequence[str], position: int | None) -> str:
    if position is None or position >= len(row):
        return ""
    return row[position].strip()


def is_eligible(flag: str) -> bool:
    flag = flag.strip()
    return not flag or flag.lower() == "false"


class Dispatcher:
    """One pass over the sheet: fetch, filter, send, mark.

    Rows are handled strictly in sheet order, each send followed by its
    write-back before the next row starts. A failing row is logged and left
    unmarked so the next pass picks it up again.
    """

    def __init__(
        self,
        source: RecordSource,
        transport: Transport,
        sheet_configured: bool = True,
        address_suffix: str = "@c.us",
        tracker: DeliveryTracker | None = None,
    ) -> None:
        self.source = source
        self.transport = transport
        self.sheet_configured = sheet_configured
        self.address_suffix = address_suffix
        self.tracker = tracker

    def run_iteration(self) -> IterationResult:
        result = IterationResult()

        try:
            self._check_configuration()
        except ConfigurationError as exc:
            logger.error("%s", exc)
            result.status = IterationStatus.CONFIG_ERROR
            return result

        try:
            rows = self.source.fetch_table(self.source.scan_range())
        except SourceUnavailable as exc:
            logger.error("Error reading sheet: %s", exc)
            result.status = IterationStatus.SOURCE_UNAVAILABLE
            return result

        if not rows:
            logger.info("No data found in the sheet.")
            result.status = IterationStatus.EMPTY
            return result

        header, *data_rows = rows
        try:
            columns = resolve_columns(header, self.source)
        except SchemaChanged as exc:
            logger.info("%s Rows will be scanned on the next run.", exc)
            result.status = IterationStatus.SCHEMA_MIGRATED
            return result
        except SourceUnavailable as exc:
            logger.error("Could not update the header row: %s", exc)
            result.status = IterationStatus.SOURCE_UNAVAILABLE
            return result

        for offset, row in enumerate(data_rows):
            # header is sheet row 1
            self._process_row(offset + 2, row, columns, result)

        logger.info(
            "Iteration finished: %d sent, %d marked, %d skipped, %d failed.",
            result.sent,
            result.marked,
            result.skipped,
            result.failed,
        )
        return result

    def _check_configuration(self) -> None:
        if not self.sheet_configured:
            raise ConfigurationError(
                "SPREADSHEET_ID is not set. Update it with your actual Google Sheet ID."
            )

    def build_record(self, row_number: int, row: Sequence[str], columns: ColumnIndex) -> NotificationRecord:
        return NotificationRecord(
            row_number=row_number,
            patron_name=_cell(row, columns.patron_name) or FALLBACK_TEXT,
            amount=_cell(row, columns.amount) or FALLBACK_TEXT,
            payment_option=_cell(row, columns.payment_option) or FALLBACK_TEXT,
            contact_number=_cell(row, columns.contact_number),
            address_suffix=self.address_suffix,
        )

    def _process_row(
        self,
        row_number: int,
        row: Sequence[str],
        columns: ColumnIndex,
        result: IterationResult,
    ) -> None:
        if not is_eligible(_cell(row, columns.notification_sent)):
            logger.debug("Row %d already notified.", row_number)
            return

        record = self.build_record(row_number, row, columns)
        if not record.contact_number:
            logger.info("Skipping row %d: No contact number found.", row_number)
            result.skipped += 1
            return

        logger.info("Sending message to %s: %s", record.destination, record.message)
        try:
            handle = self.transport.send(record.destination, record.message)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to send message to %s for row %d: %s", record.destination, row_number, exc)
            result.failed_rows.append(row_number)
            return

        result.sent += 1
        logger.info("Message sent successfully.")
        if self.tracker is not None:
            self.tracker.track(handle, record)

        try:
            self.source.write_cells(
                self.source.cell_address(row_number, columns.notification_sent + 1),
                [[SENT_MARKER]],
                raw=True,
            )
        except SourceUnavailable as exc:
            # the message went out; it will be sent again on the next pass
            logger.error("Sent to %s but failed to mark row %d: %s", record.destination, row_number, exc)
            result.failed_rows.append(row_number)
            return

        result.marked += 1
        logger.info("Row %d marked as 'Notification Sent'.", row_number)
