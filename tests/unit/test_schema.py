from __future__ import annotations

import pytest

from receipt_notifier.errors import SchemaChanged
from receipt_notifier.sheets.schema import NOTIFICATION_SENT, ColumnIndex, resolve_columns


class RecordingWriter:
    def __init__(self) -> None:
        self.writes = []

    def cell_address(self, row: int, col: int) -> str:
        return f"'Sheet1'!R{row}C{col}"

    def write_cells(self, address, values, *, raw=True) -> None:
        self.writes.append((address, values, raw))


def test_resolves_positions_without_writing() -> None:
    writer = RecordingWriter()
    header = ["Contact Number", "Patron Name", "Notification Sent", "Amount", "Payment Option (Cash, Cheque, UPI)"]

    index = resolve_columns(header, writer)

    assert index == ColumnIndex(
        patron_name=1,
        amount=3,
        payment_option=4,
        contact_number=0,
        notification_sent=2,
    )
    assert writer.writes == []


def test_header_labels_are_matched_after_trimming() -> None:
    index = resolve_columns([" Patron Name ", "Notification Sent "], RecordingWriter())

    assert index.patron_name == 0
    assert index.notification_sent == 1


def test_missing_optional_columns_resolve_to_none(caplog) -> None:
    index = resolve_columns(["Notification Sent"], RecordingWriter())

    assert index.patron_name is None
    assert index.contact_number is None
    assert "missing column(s)" in caplog.text


def test_missing_tracking_column_is_appended_and_signalled() -> None:
    writer = RecordingWriter()
    header = ["Patron Name", "Amount"]

    with pytest.raises(SchemaChanged) as excinfo:
        resolve_columns(header, writer)

    assert excinfo.value.column == NOTIFICATION_SENT
    assert writer.writes == [("'Sheet1'!R1C1", [["Patron Name", "Amount", "Notification Sent"]], True)]
    assert header == ["Patron Name", "Amount"]
