"""Application entry point for the Autotracker webhook and task endpoints."""

from __future__ import annotations

import hmac
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

from flask import Flask, jsonify, request
import structlog
from structlog.contextvars import bind_contextvars, unbind_contextvars

from autotracker.config import get_settings
from autotracker.confirmation import handle_confirmation
from autotracker.errors import AutotrackerError
from autotracker.finalizer import finalize_expired
from autotracker.logging_config import configure_logging
from autotracker.prompts import send_hours_prompt
from autotracker.services import Services, build_services


def _register_error_handlers(flask_app: Flask) -> None:
    """Register JSON error handlers that attach a trace identifier."""

    @flask_app.errorhandler(AutotrackerError)
    def handle_application_error(error: AutotrackerError):  # type: ignore[override]
        trace_id = str(uuid4())
        structlog.get_logger().warning(
            "request_failed",
            trace_id=trace_id,
            error=error.code,
            status_code=error.status_code,
            detail=str(error),
        )
        response = jsonify({"error": error.code, "trace_id": trace_id})
        response.status_code = error.status_code
        return response

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):  # type: ignore[override]
        trace_id = str(uuid4())
        flask_app.logger.exception(
            "Unhandled application error", extra={"trace_id": trace_id}, exc_info=error
        )
        response = jsonify({"error": "internal_server_error", "trace_id": trace_id})
        response.status_code = 500
        return response


def _is_task_authorised(token: str | None) -> bool:
    if token is None:
        return True
    header = request.headers.get("Authorization", "")
    scheme, _, supplied = header.partition(" ")
    if scheme.lower() != "bearer" or not supplied:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), token.encode("utf-8"))


def _load_version() -> str:
    version_file = Path(__file__).resolve().parent / "VERSION"
    if version_file.exists():
        return version_file.read_text(encoding="utf-8").strip()
    return "unknown"


def create_app(services: Services | None = None) -> Flask:
    """Create and configure the Flask application."""

    configure_logging()

    services = services or build_services(get_settings())
    settings = services.settings

    flask_app = Flask(__name__)
    flask_app.config["APP_VERSION"] = _load_version()
    flask_app.config["SERVICES"] = services
    flask_app.logger.setLevel("INFO")
    _register_error_handlers(flask_app)

    if settings.tasks_token is None:
        structlog.get_logger().warning("task_endpoints_unprotected", endpoints=["/tasks/prompt", "/tasks/sweep"])

    @flask_app.route("/slack/actions", methods=["POST"])
    def slack_actions():
        # Signature covers the exact bytes; read them before any form parsing.
        raw_body = request.get_data(cache=True)
        trace_id = str(uuid4())
        bind_contextvars(trace_id=trace_id)
        try:
            result = handle_confirmation(
                headers=dict(request.headers),
                body=raw_body,
                signing_secret=settings.signing_secret,
                store=services.store,
                tolerance=settings.signature_tolerance_seconds,
            )
        finally:
            unbind_contextvars("trace_id")
        return result.body, result.status

    @flask_app.route("/tasks/prompt", methods=["POST"])
    def run_prompt():
        if not _is_task_authorised(settings.tasks_token):
            return jsonify({"error": "unauthorized"}), 401

        bind_contextvars(trace_id=str(uuid4()))
        try:
            result = send_hours_prompt(settings=settings, slack=services.slack, store=services.store)
        finally:
            unbind_contextvars("trace_id")
        return jsonify({"date": result.prompt_date.isoformat(), "created": result.created}), 200

    @flask_app.route("/tasks/sweep", methods=["POST"])
    def run_sweep():
        if not _is_task_authorised(settings.tasks_token):
            return jsonify({"error": "unauthorized"}), 401

        bind_contextvars(trace_id=str(uuid4()))
        try:
            events, report = finalize_expired(
                services.store,
                harvest=services.harvest,
                project_name=settings.harvest_project_name,
                task_name=settings.harvest_task_name,
                now=datetime.now(UTC),
                max_workers=settings.finalizer_max_workers,
            )
        finally:
            unbind_contextvars("trace_id")
        return jsonify({"expired": len(events), **report.as_dict()}), 200

    @flask_app.route("/healthz", methods=["GET"])
    def healthz():
        health: dict[str, object] = {"ok": True}
        health["version"] = flask_app.config.get("APP_VERSION", "unknown")
        health["config"] = "valid"
        health["store_backend"] = settings.store_backend

        try:
            services.store.ping()
            health["store"] = "up"
        except Exception as exc:
            health["store"] = "down"
            health["store_error"] = str(exc)
            health["ok"] = False

        status = 200 if health["ok"] else 503
        return jsonify(health), status

    return flask_app


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    application = create_app()
    application.run(host="0.0.0.0", port=3000, debug=True)
