"""Pydantic-based configuration helpers for Autotracker."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Iterable, List

from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_PROMPT_TEXT = "Should I adjust the number of hours for today's work? You have until end of day."


class AppSettings(BaseModel):
    """Settings required to talk to Slack, Harvest and the pending-hours store."""

    bot_token: str = Field(..., alias="SLACK_BOT_TOKEN")
    signing_secret: str = Field(..., alias="SLACK_SIGNING_SECRET")
    harvest_account_id: str = Field(..., alias="HARVEST_ACCOUNT_ID")
    harvest_token: str = Field(..., alias="HARVEST_TOKEN")
    prompt_user_display_name: str = Field(..., alias="PROMPT_USER_DISPLAY_NAME")
    harvest_project_name: str = Field(..., alias="HARVEST_PROJECT_NAME")
    harvest_task_name: str = Field(..., alias="HARVEST_TASK_NAME")

    store_backend: str = Field("sql", alias="STORE_BACKEND")
    database_url: str = Field("sqlite:///autotracker.db", alias="DATABASE_URL")
    table_name: str = Field("autotracker-actions", alias="TABLE_NAME")
    default_hours: int = Field(8, alias="DEFAULT_HOURS")
    pending_ttl_hours: int = Field(8, alias="PENDING_TTL_HOURS")
    prompt_hour_step: int = Field(2, alias="PROMPT_HOUR_STEP")
    prompt_option_count: int = Field(4, alias="PROMPT_OPTION_COUNT")
    prompt_text: str = Field(DEFAULT_PROMPT_TEXT, alias="PROMPT_TEXT")
    signature_tolerance_seconds: int = Field(300, alias="SIGNATURE_TOLERANCE_SECONDS")
    harvest_base_url: str = Field("https://api.harvestapp.com/v2", alias="HARVEST_BASE_URL")
    http_timeout_seconds: int = Field(10, alias="HTTP_TIMEOUT_SECONDS")
    tasks_token: str | None = Field(None, alias="TASKS_TOKEN")
    finalizer_max_workers: int = Field(4, alias="FINALIZER_MAX_WORKERS")

    @field_validator("store_backend")
    @classmethod
    def _validate_backend(cls, value: str) -> str:
        backend = value.strip().lower()
        if backend not in {"sql", "dynamodb"}:
            raise ValueError("STORE_BACKEND must be 'sql' or 'dynamodb'")
        return backend

    @field_validator(
        "pending_ttl_hours",
        "prompt_hour_step",
        "prompt_option_count",
        "signature_tolerance_seconds",
        "http_timeout_seconds",
        "finalizer_max_workers",
    )
    @classmethod
    def _ensure_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Value must be greater than zero")
        return value

    @field_validator("default_hours")
    @classmethod
    def _ensure_not_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("DEFAULT_HOURS cannot be negative")
        return value

    @field_validator("tasks_token")
    @classmethod
    def _blank_token_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @property
    def hour_options(self) -> List[int]:
        """Button values offered in the prompt, e.g. 0, 2, 4, 6."""

        return [index * self.prompt_hour_step for index in range(self.prompt_option_count)]


def _format_missing(fields: Iterable[str]) -> str:
    """Return a human-friendly comma-separated list of missing env vars."""

    unique: List[str] = []
    for field in fields:
        if field not in unique:
            unique.append(field)
    return ", ".join(unique)


@lru_cache()
def get_settings() -> AppSettings:
    """Fetch and cache settings from environment variables."""

    try:
        return AppSettings.model_validate(os.environ)
    except ValidationError as exc:
        missing = [str(error["loc"][0]) for error in exc.errors() if error["type"] == "missing"]
        if not missing:
            raise RuntimeError(f"Invalid configuration: {exc}") from exc
        message = (
            "Missing required environment variables: "
            f"{_format_missing(missing)}"
        )
        raise RuntimeError(message) from exc
