from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

FALLBACK_TEXT = "N/A"
MESSAGE_TEMPLATE = "Dear {patron_name}, we have received {amount} via {payment_option}."


class IterationStatus(str, Enum):
    COMPLETED = "completed"
    EMPTY = "empty"
    SCHEMA_MIGRATED = "schema_migrated"
    CONFIG_ERROR = "config_error"
    SOURCE_UNAVAILABLE = "source_unavailable"

    @property
    def ok(self) -> bool:
        return self in {IterationStatus.COMPLETED, IterationStatus.EMPTY, IterationStatus.SCHEMA_MIGRATED}


@dataclass(frozen=True, slots=True)
class NotificationRecord:
    row_number: int
    patron_name: str
    amount: str
    payment_option: str
    contact_number: str
    address_suffix: str

    @property
    def message(self) -> str:
        return MESSAGE_TEMPLATE.format(
            patron_name=self.patron_name,
            amount=self.amount,
            payment_option=self.payment_option,
        )

    @property
    def destination(self) -> str:
        return f"{self.contact_number}{self.address_suffix}"


@dataclass(slots=True)
class IterationResult:
    status: IterationStatus = IterationStatus.COMPLETED
    sent: int = 0
    marked: int = 0
    skipped: int = 0
    failed_rows: list[int] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_rows)
