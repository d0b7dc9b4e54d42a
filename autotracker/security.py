"""Utilities for validating Slack request signatures."""

from __future__ import annotations

import hmac
import time
from hashlib import sha256
from typing import Mapping

from autotracker.errors import InvalidSignature, MalformedTimestamp, MissingHeader, ReplayRejected

SLACK_SIGNATURE_HEADER = "X-Slack-Signature"
SLACK_TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
VERSION = "v0"
DEFAULT_TOLERANCE = 60 * 5  # five minutes


def compute_signature(signing_secret: str, timestamp: str, body: str | bytes) -> str:
    """Return Slack-compatible signature for the provided payload."""

    raw = body if isinstance(body, bytes) else body.encode("utf-8")
    basestring = f"{VERSION}:{timestamp}:".encode("utf-8") + raw
    secret = signing_secret.encode("utf-8")
    digest = hmac.new(secret, basestring, sha256).hexdigest()
    return f"{VERSION}={digest}"


def verify(
    signing_secret: str,
    timestamp: str,
    signature: str,
    body: str | bytes,
    *,
    tolerance: int = DEFAULT_TOLERANCE,
) -> None:
    """Validate Slack signature and timestamp to guard against replay attacks.

    Must be given the body exactly as received. Raises a subclass of
    ``AuthError`` on failure and returns ``None`` otherwise.
    """

    try:
        request_ts = int(timestamp)
    except (TypeError, ValueError) as exc:
        raise MalformedTimestamp(f"Request timestamp {timestamp!r} is not an integer") from exc

    current_ts = int(time.time())
    if abs(current_ts - request_ts) > tolerance:
        raise ReplayRejected(f"Request timestamp {request_ts} is outside the {tolerance}s window")

    expected = compute_signature(signing_secret, timestamp, body)
    if not hmac.compare_digest(expected.encode("utf-8"), (signature or "").encode("utf-8")):
        raise InvalidSignature("Request signature does not match")


def extract_signature_headers(headers: Mapping[str, str] | None) -> tuple[str, str]:
    """Return ``(timestamp, signature)`` from *headers*, matching names case-insensitively."""

    lowered = {str(key).lower(): value for key, value in (headers or {}).items()}
    timestamp = lowered.get(SLACK_TIMESTAMP_HEADER.lower())
    signature = lowered.get(SLACK_SIGNATURE_HEADER.lower())
    if not timestamp:
        raise MissingHeader(f"Missing {SLACK_TIMESTAMP_HEADER} header")
    if not signature:
        raise MissingHeader(f"Missing {SLACK_SIGNATURE_HEADER} header")
    return timestamp, signature
