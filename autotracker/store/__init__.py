"""Conditional pending-hours store: shared types plus SQL and DynamoDB backends."""

from .base import (
    KEY_PREFIX,
    SORT_KEY,
    PendingHoursRecord,
    PendingHoursStore,
    RemovalEvent,
    date_key,
    parse_date_key,
)
from .dynamodb import DynamoPendingHoursStore, removal_events_from_stream
from .sql import SqlPendingHoursStore

__all__ = [
    "KEY_PREFIX",
    "SORT_KEY",
    "PendingHoursRecord",
    "PendingHoursStore",
    "RemovalEvent",
    "date_key",
    "parse_date_key",
    "DynamoPendingHoursStore",
    "SqlPendingHoursStore",
    "removal_events_from_stream",
]
