"""AWS Lambda entry points: scheduled prompt, webhook and stream finalizer."""

from __future__ import annotations

import base64
import json
from functools import lru_cache
from typing import Any, Mapping
from uuid import uuid4

import structlog
from structlog.contextvars import bind_contextvars, unbind_contextvars

from autotracker.config import get_settings
from autotracker.confirmation import handle_confirmation
from autotracker.errors import AutotrackerError
from autotracker.finalizer import finalize_removals
from autotracker.logging_config import configure_logging
from autotracker.prompts import send_hours_prompt
from autotracker.services import Services, build_services
from autotracker.store import removal_events_from_stream


@lru_cache()
def get_services() -> Services:
    """Build clients once per container; warm invocations reuse them."""

    configure_logging()
    return build_services(get_settings())


def _response(status: int, body: str = "", headers: Mapping[str, str] | None = None) -> dict[str, Any]:
    return {"statusCode": status, "headers": dict(headers or {}), "body": body}


def _raw_body(event: Mapping[str, Any]) -> bytes:
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        return base64.b64decode(body)
    return body.encode("utf-8")


def prompt_handler(event: Any, context: Any, *, services: Services | None = None) -> dict[str, Any]:
    services = services or get_services()
    bind_contextvars(trace_id=str(uuid4()))
    log = structlog.get_logger().bind(entry_point="prompt")
    try:
        result = send_hours_prompt(settings=services.settings, slack=services.slack, store=services.store)
        log.info("prompt_invocation_completed", created=result.created)
        return {"date": result.prompt_date.isoformat(), "created": result.created}
    finally:
        unbind_contextvars("trace_id")


def confirm_handler(event: Mapping[str, Any], context: Any, *, services: Services | None = None) -> dict[str, Any]:
    services = services or get_services()
    trace_id = str(uuid4())
    bind_contextvars(trace_id=trace_id)
    log = structlog.get_logger().bind(entry_point="confirm")
    try:
        result = handle_confirmation(
            headers=event.get("headers") or {},
            body=_raw_body(event),
            signing_secret=services.settings.signing_secret,
            store=services.store,
            tolerance=services.settings.signature_tolerance_seconds,
        )
        return _response(result.status, result.body)
    except AutotrackerError as exc:
        log.warning("confirmation_rejected", error=exc.code, status_code=exc.status_code, detail=str(exc))
        return _response(
            exc.status_code,
            json.dumps({"error": exc.code, "trace_id": trace_id}),
            {"content-type": "application/json"},
        )
    finally:
        unbind_contextvars("trace_id")


def finalize_handler(event: Mapping[str, Any], context: Any, *, services: Services | None = None) -> dict[str, Any]:
    services = services or get_services()
    bind_contextvars(trace_id=str(uuid4()))
    try:
        report = finalize_removals(
            removal_events_from_stream(event),
            harvest=services.harvest,
            project_name=services.settings.harvest_project_name,
            task_name=services.settings.harvest_task_name,
            max_workers=services.settings.finalizer_max_workers,
        )
        return report.as_dict()
    finally:
        unbind_contextvars("trace_id")
