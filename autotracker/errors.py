"""Exception taxonomy shared by the webhook, prompt and finalizer entry points.

Each error carries the HTTP status it maps to when it escapes a request
handler. Client mistakes (bad signature, bad payload) are 4xx; store and
upstream failures are 5xx so the calling platform retries the invocation.
"""

from __future__ import annotations


class AutotrackerError(Exception):
    """Base class for all application errors."""

    status_code = 500
    code = "internal_error"


class AuthError(AutotrackerError):
    """The inbound request could not be authenticated."""

    status_code = 401
    code = "unauthorized"


class MissingHeader(AuthError):
    code = "missing_header"


class MalformedTimestamp(AuthError):
    code = "malformed_timestamp"


class ReplayRejected(AuthError):
    code = "replay_rejected"


class InvalidSignature(AuthError):
    code = "invalid_signature"


class MalformedPayload(AutotrackerError):
    """The callback body could not be decoded into an interaction payload."""

    status_code = 400
    code = "malformed_payload"


class NoActionPresent(MalformedPayload):
    code = "no_action_present"


class StoreConditionFailed(AutotrackerError):
    """A conditional write did not apply because its condition was false."""

    status_code = 409
    code = "condition_failed"


class StoreError(AutotrackerError):
    """Non-retryable store failure (missing table, invalid request, ...)."""

    code = "store_error"


class TransientStoreError(StoreError):
    """Retryable store failure (throttling, timeouts, internal errors)."""

    status_code = 503
    code = "store_unavailable"


class UpstreamApiError(AutotrackerError):
    """A call to Slack or Harvest failed."""

    status_code = 502
    code = "upstream_error"

    def __init__(self, message: str, *, service: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.service = service
        self.status = status


class RecipientNotFound(UpstreamApiError):
    code = "recipient_not_found"


class AssignmentNotFound(AutotrackerError):
    """No Harvest assignment matches the configured names. Never retried."""

    status_code = 422
    code = "assignment_not_found"


class ProjectNotFound(AssignmentNotFound):
    code = "project_not_found"


class TaskNotFound(AssignmentNotFound):
    code = "task_not_found"
