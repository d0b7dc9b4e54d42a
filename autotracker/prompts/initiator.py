"""Scheduled prompt: create today's pending record and ask how many hours to log."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime

import structlog

from autotracker.config import AppSettings
from autotracker.slack_client import SlackClient
from autotracker.store import PendingHoursStore, date_key

from .messages import build_hours_prompt


@dataclass(frozen=True)
class PromptResult:
    prompt_date: date
    channel: str
    created: bool
    message_ts: str | None = None


def send_hours_prompt(
    *,
    settings: AppSettings,
    slack: SlackClient,
    store: PendingHoursStore,
    now: datetime | None = None,
) -> PromptResult:
    """Resolve the configured user, seed the day's record and post the question.

    The record is written before the message goes out so a click can never
    reach the webhook ahead of the record it updates. An existing record for
    the day is kept as is; the prompt is posted again.
    """

    current = now or datetime.now(UTC)
    prompt_date = current.date()
    log = structlog.get_logger().bind(pk=date_key(prompt_date))

    member = slack.find_user_by_display_name(settings.prompt_user_display_name)
    user_id = member["id"]

    created = store.create_pending(
        prompt_date,
        hours=settings.default_hours,
        now=current,
        ttl_hours=settings.pending_ttl_hours,
    )
    if not created:
        log.info("prompt_record_reused")

    message = build_hours_prompt(
        text=settings.prompt_text,
        options=settings.hour_options,
        prompt_date=prompt_date,
    )
    response = slack.post_message(channel=user_id, text=message["text"], blocks=message["blocks"])
    message_ts = response.get("ts") if response else None

    log.info("prompt_sent", user_id=user_id, created=created, message_ts=message_ts)
    return PromptResult(prompt_date=prompt_date, channel=user_id, created=created, message_ts=message_ts)
