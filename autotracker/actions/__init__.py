"""Utilities for handling Slack interaction payloads."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping
from urllib.parse import parse_qs, urlencode

from pydantic import ValidationError

from autotracker.errors import MalformedPayload, NoActionPresent
from autotracker.models import HOURS_SCALE, MAX_HOURS

from .models import Action, ActionText, InteractionPayload, InteractionUser

PAYLOAD_FIELD = "payload"
HOURS_QUANTUM = Decimal(1).scaleb(-HOURS_SCALE)


@dataclass(frozen=True)
class ActionContext:
    """Parsed context describing an hours button click."""

    hours: Decimal
    prompt_date: date | None = None
    user_id: str | None = None


def decode_interaction_body(body: str | bytes) -> InteractionPayload:
    """Decode a form-urlencoded body whose ``payload`` field holds JSON."""

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedPayload("Body is not valid UTF-8.") from exc

    form = parse_qs(body, keep_blank_values=True)
    values = form.get(PAYLOAD_FIELD)
    if not values:
        raise MalformedPayload("Body has no payload field.")

    try:
        raw = json.loads(values[0])
    except json.JSONDecodeError as exc:
        raise MalformedPayload("Payload is not valid JSON.") from exc

    if not isinstance(raw, dict):
        raise MalformedPayload("Payload must be a JSON object.")

    try:
        return InteractionPayload.model_validate(raw)
    except ValidationError as exc:
        raise MalformedPayload("Payload does not match the interaction schema.") from exc


def encode_interaction_body(payload: InteractionPayload | Mapping[str, Any]) -> str:
    """Inverse of :func:`decode_interaction_body`; used to build test fixtures and replays."""

    if isinstance(payload, InteractionPayload):
        data = payload.model_dump(mode="json", exclude_none=True)
    else:
        data = dict(payload)
    return urlencode({PAYLOAD_FIELD: json.dumps(data, separators=(",", ":"))})


def first_action(payload: InteractionPayload) -> Action:
    if not payload.actions:
        raise NoActionPresent("Interaction payload carries no actions.")
    return payload.actions[0]


def parse_hours(label: str) -> Decimal:
    """Parse a button label such as ``"6"`` or ``"7.5"`` into an hour count."""

    try:
        hours = Decimal(label.strip())
    except (InvalidOperation, AttributeError) as exc:
        raise MalformedPayload(f"Action label {label!r} is not a number.") from exc

    if not hours.is_finite() or hours < 0:
        raise MalformedPayload(f"Action label {label!r} is not a valid hour count.")
    if hours > MAX_HOURS or hours != hours.quantize(HOURS_QUANTUM):
        raise MalformedPayload(f"Action label {label!r} exceeds the stored hour precision.")
    return hours


def parse_button_value(raw_value: str | None) -> date | None:
    """Return the prompt date carried in a button value, if any."""

    if not raw_value:
        return None
    try:
        payload = json.loads(raw_value)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict) or not isinstance(payload.get("date"), str):
        return None
    try:
        return date.fromisoformat(payload["date"])
    except ValueError:
        return None


def build_button_value(prompt_date: date) -> str:
    return json.dumps({"date": prompt_date.isoformat()}, separators=(",", ":"))


def parse_action_context(payload: InteractionPayload) -> ActionContext:
    """Select the first action and extract the hours and prompt date from it."""

    action = first_action(payload)
    return ActionContext(
        hours=parse_hours(action.text.text),
        prompt_date=parse_button_value(action.value),
        user_id=payload.user.id if payload.user else None,
    )


__all__ = [
    "Action",
    "ActionContext",
    "ActionText",
    "InteractionPayload",
    "InteractionUser",
    "build_button_value",
    "decode_interaction_body",
    "encode_interaction_body",
    "first_action",
    "parse_action_context",
    "parse_button_value",
    "parse_hours",
]
