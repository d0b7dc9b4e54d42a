"""Types and key helpers shared by the pending-hours store backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Sequence

KEY_PREFIX = "timestamp"
KEY_SEPARATOR = "|"
SORT_KEY = "void"


def date_key(day: date) -> str:
    """Return the partition key for *day*, e.g. ``timestamp|2022-02-27``."""

    return f"{KEY_PREFIX}{KEY_SEPARATOR}{day.isoformat()}"


def parse_date_key(key: str | None) -> datetime | None:
    """Return midnight of the date encoded in *key*, or None when it has none."""

    if not key or KEY_SEPARATOR not in key:
        return None
    _, _, raw_date = key.partition(KEY_SEPARATOR)
    try:
        parsed = date.fromisoformat(raw_date)
    except ValueError:
        return None
    return datetime(parsed.year, parsed.month, parsed.day)


def expiry_timestamp(now: datetime, ttl_hours: int) -> int:
    """Absolute epoch-seconds expiry ``ttl_hours`` after *now*."""

    return int((now + timedelta(hours=ttl_hours)).timestamp())


@dataclass(frozen=True)
class PendingHoursRecord:
    pk: str
    hours: Decimal
    ttl: int
    sk: str = SORT_KEY

    @property
    def day(self) -> date | None:
        parsed = parse_date_key(self.pk)
        return parsed.date() if parsed else None


@dataclass(frozen=True)
class RemovalEvent:
    """Last known values of a record whose ttl has passed."""

    pk: str
    hours: Decimal
    ttl: int | None = None

    @property
    def spent_date(self) -> datetime | None:
        return parse_date_key(self.pk)


class PendingHoursStore(ABC):
    """Key-value store holding at most one pending-hours record per day."""

    @abstractmethod
    def create_pending(self, day: date, *, hours: int | Decimal, now: datetime, ttl_hours: int) -> bool:
        """Create the record for *day* unless one exists. Returns True when created."""

    @abstractmethod
    def confirm_hours(self, day: date, hours: Decimal, *, now: datetime) -> None:
        """Overwrite ``hours`` on an existing, unexpired record.

        Raises ``StoreConditionFailed`` when there is no such record; never
        creates one and never touches ``ttl``.
        """

    @abstractmethod
    def get(self, day: date) -> PendingHoursRecord | None:
        """Return the record for *day* if present."""

    @abstractmethod
    def list_expired(self, now: datetime) -> list[RemovalEvent]:
        """Return removal events for records whose ttl has passed, without deleting them."""

    @abstractmethod
    def delete_expired(self, events: Sequence[RemovalEvent]) -> int:
        """Delete the records behind *events*. Returns how many rows were removed.

        A record is only deleted while it still carries the ttl captured in its
        event, so a record recreated in the meantime survives.
        """

    def ping(self) -> None:
        """Raise when the backing store is unreachable."""
