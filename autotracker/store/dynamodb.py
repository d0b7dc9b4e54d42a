"""DynamoDB-backed pending-hours store and stream-record parsing.

The table uses a composite key (``pk`` partition key, ``sk`` sort key) with
TTL enabled on ``ttl`` and a stream publishing old images, so expiry and the
removal events are handled by DynamoDB itself.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Sequence

import boto3
import structlog
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from autotracker.errors import StoreConditionFailed, StoreError, TransientStoreError

from .base import SORT_KEY, PendingHoursRecord, PendingHoursStore, RemovalEvent, date_key, expiry_timestamp

CONDITION_FAILED_CODES = {"ConditionalCheckFailedException"}
TRANSIENT_ERROR_CODES = {
    "InternalServerError",
    "LimitExceededException",
    "ProvisionedThroughputExceededException",
    "RequestLimitExceeded",
    "ServiceUnavailable",
    "ThrottlingException",
    "TransactionConflictException",
}
_TRANSIENT_BOTO_ERRORS = (BotoConnectionError, ConnectTimeoutError, EndpointConnectionError, ReadTimeoutError)


def classify_dynamodb_error(exc: Exception) -> Exception:
    """Map a boto3/botocore exception onto the store error taxonomy."""

    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code", "")
        if code in CONDITION_FAILED_CODES:
            return StoreConditionFailed(f"Condition failed: {code}")
        if code in TRANSIENT_ERROR_CODES:
            return TransientStoreError(f"Transient DynamoDB error: {code}")
        return StoreError(f"DynamoDB error: {code or exc}")
    if isinstance(exc, _TRANSIENT_BOTO_ERRORS):
        return TransientStoreError(f"DynamoDB unreachable: {exc}")
    if isinstance(exc, BotoCoreError):
        return StoreError(f"DynamoDB client error: {exc}")
    return StoreError(f"Unexpected DynamoDB failure: {exc}")


def _key(day: date) -> dict[str, dict[str, str]]:
    return {"pk": {"S": date_key(day)}, "sk": {"S": SORT_KEY}}


def _number(item: Mapping[str, Any], name: str) -> Decimal | None:
    raw = (item.get(name) or {}).get("N")
    if raw is None:
        return None
    try:
        return Decimal(raw)
    except InvalidOperation:
        return None


class DynamoPendingHoursStore(PendingHoursStore):
    def __init__(self, table_name: str, *, client: Any | None = None) -> None:
        self._table_name = table_name
        self._client = client or boto3.client("dynamodb")
        self._log = structlog.get_logger().bind(store="dynamodb", table=table_name)

    def _call(self, operation: str, **kwargs: Any) -> Mapping[str, Any]:
        try:
            return getattr(self._client, operation)(TableName=self._table_name, **kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise classify_dynamodb_error(exc) from exc

    def create_pending(self, day: date, *, hours: int | Decimal, now: datetime, ttl_hours: int) -> bool:
        item = _key(day)
        item["hours"] = {"N": str(hours)}
        item["ttl"] = {"N": str(expiry_timestamp(now, ttl_hours))}
        try:
            self._call(
                "put_item",
                Item=item,
                ConditionExpression="attribute_not_exists(#pk)",
                ExpressionAttributeNames={"#pk": "pk"},
            )
        except StoreConditionFailed:
            self._log.info("record_exists", pk=item["pk"]["S"])
            return False
        self._log.info("record_created", pk=item["pk"]["S"], hours=str(hours))
        return True

    def confirm_hours(self, day: date, hours: Decimal, *, now: datetime) -> None:
        # DynamoDB deletes expired items lazily, so the ttl guard keeps late clicks out.
        self._call(
            "update_item",
            Key=_key(day),
            UpdateExpression="SET #hours = :hours",
            ConditionExpression="attribute_exists(#pk) AND #ttl > :now",
            ExpressionAttributeNames={"#hours": "hours", "#pk": "pk", "#ttl": "ttl"},
            ExpressionAttributeValues={
                ":hours": {"N": str(hours)},
                ":now": {"N": str(int(now.timestamp()))},
            },
        )

    def get(self, day: date) -> PendingHoursRecord | None:
        response = self._call("get_item", Key=_key(day), ConsistentRead=True)
        item = response.get("Item")
        if not item:
            return None
        hours = _number(item, "hours")
        ttl = _number(item, "ttl")
        if hours is None or ttl is None:
            raise StoreError(f"Stored item for {date_key(day)} is missing hours or ttl")
        return PendingHoursRecord(pk=item["pk"]["S"], sk=item["sk"]["S"], hours=hours, ttl=int(ttl))

    def list_expired(self, now: datetime) -> list[RemovalEvent]:
        return []

    def delete_expired(self, events: Sequence[RemovalEvent]) -> int:
        return 0

    def ping(self) -> None:
        self._call("describe_table")


def removal_events_from_stream(event: Mapping[str, Any] | None) -> list[RemovalEvent]:
    """Extract removal events from a DynamoDB stream invocation payload."""

    log = structlog.get_logger()
    records: Iterable[Mapping[str, Any]] = (event or {}).get("Records") or []
    removed: list[RemovalEvent] = []
    for record in records:
        if str(record.get("eventName", "")).upper() != "REMOVE":
            continue
        image = (record.get("dynamodb") or {}).get("OldImage") or {}
        pk = (image.get("pk") or {}).get("S")
        hours = _number(image, "hours")
        if not pk or hours is None:
            log.warning("stream_record_skipped", event_id=record.get("eventID"), reason="missing_pk_or_hours")
            continue
        ttl = _number(image, "ttl")
        removed.append(RemovalEvent(pk=pk, hours=hours, ttl=int(ttl) if ttl is not None else None))
    return removed
