# Shared pytest fixtures: in-memory sheet and transport doubles
from __future__ import annotations

import re

import pytest

from receipt_notifier.errors import SourceUnavailable, TransportError
from receipt_notifier.transport.base import DeliveryHandle, TransportEvents

HEADER = ["Patron Name", "Amount", "Payment Option (Cash, Cheque, UPI)", "Contact Number"]

_ADDRESS = re.compile(r"R(\d+)C(\d+)")


class FakeSheet:
    """Table held in memory, addressed like the real client (1-based cells)."""

    def __init__(self, rows: list[list[str]]) -> None:
        self.rows = [list(row) for row in rows]
        self.reads = 0
        self.writes: list[tuple[str, list[list[str]]]] = []
        self.fail_reads = False
        self.fail_write_rows: set[int] = set()

    def scan_range(self) -> str:
        return "'Sheet1'"

    def cell_address(self, row: int, col: int) -> str:
        return f"R{row}C{col}"

    def fetch_table(self, range_spec: str | None = None) -> list[list[str]]:
        self.reads += 1
        if self.fail_reads:
            raise SourceUnavailable("sheet offline")
        return [list(row) for row in self.rows]

    def write_cells(self, address, values, *, raw=True) -> None:
        row, col = (int(part) for part in _ADDRESS.fullmatch(address).groups())
        if row in self.fail_write_rows:
            raise SourceUnavailable(f"write to row {row} failed")
        self.writes.append((address, [list(v) for v in values]))
        for r_offset, value_row in enumerate(values):
            target = row + r_offset - 1
            while len(self.rows) <= target:
                self.rows.append([])
            cells = self.rows[target]
            for c_offset, value in enumerate(value_row):
                index = col + c_offset - 1
                while len(cells) <= index:
                    cells.append("")
                cells[index] = value


class FakeTransport:
    def __init__(self) -> None:
        self.events = TransportEvents()
        self.sent: list[tuple[str, str]] = []
        self.failing: set[str] = set()

    def send(self, destination: str, text: str) -> DeliveryHandle:
        if destination in self.failing:
            raise TransportError(f"gateway refused {destination}")
        self.sent.append((destination, text))
        return DeliveryHandle(message_id=f"msg-{len(self.sent)}", destination=destination)


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def make_sheet():
    def _make(*data_rows: list[str], header: list[str] | None = None) -> FakeSheet:
        return FakeSheet([header if header is not None else HEADER, *data_rows])

    return _make
