"""Webhook handler recording the hour count a user clicked."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Mapping

import structlog

from autotracker.actions import decode_interaction_body, parse_action_context
from autotracker.errors import StoreConditionFailed
from autotracker.security import extract_signature_headers, verify
from autotracker.store import PendingHoursStore, date_key


@dataclass(frozen=True)
class ConfirmationResult:
    status: int
    body: str
    record_date: date
    hours: Decimal
    applied: bool


def handle_confirmation(
    *,
    headers: Mapping[str, str] | None,
    body: str | bytes,
    signing_secret: str,
    store: PendingHoursStore,
    tolerance: int,
    now: datetime | None = None,
) -> ConfirmationResult:
    """Authenticate a button callback and apply it to the day's pending record.

    *body* must be the request body exactly as received; it is verified
    before anything decodes it. Authentication and payload problems raise
    ``AuthError`` / ``MalformedPayload``. Store faults other than the
    record-exists condition propagate for the platform to retry.
    """

    log = structlog.get_logger()

    timestamp, signature = extract_signature_headers(headers)
    verify(signing_secret, timestamp, signature, body, tolerance=tolerance)

    payload = decode_interaction_body(body)
    context = parse_action_context(payload)

    current = now or datetime.now(UTC)
    record_date = context.prompt_date or current.date()
    log = log.bind(pk=date_key(record_date), hours=str(context.hours), user_id=context.user_id)
    if context.prompt_date is None:
        log.info("confirmation_date_defaulted", reason="button value carried no date")

    try:
        store.confirm_hours(record_date, context.hours, now=current)
    except StoreConditionFailed:
        # Late or duplicate click on an expired or missing record: nothing safe to do.
        log.info("confirmation_condition_failed")
        return ConfirmationResult(status=200, body="", record_date=record_date, hours=context.hours, applied=False)

    log.info("confirmation_recorded")
    return ConfirmationResult(status=200, body="", record_date=record_date, hours=context.hours, applied=True)
