"""Explicit bundle of the clients every entry point needs.

Built once per process from validated settings and handed to handlers,
instead of each handler reaching for module-level globals.
"""

from __future__ import annotations

from dataclasses import dataclass

from autotracker.config import AppSettings
from autotracker.db import create_session_factory, get_engine
from autotracker.harvest import HarvestClient
from autotracker.slack_client import SlackClient
from autotracker.store import DynamoPendingHoursStore, PendingHoursStore, SqlPendingHoursStore


@dataclass(frozen=True)
class Services:
    settings: AppSettings
    slack: SlackClient
    harvest: HarvestClient
    store: PendingHoursStore


def build_store(settings: AppSettings) -> PendingHoursStore:
    if settings.store_backend == "dynamodb":
        return DynamoPendingHoursStore(settings.table_name)

    store = SqlPendingHoursStore(create_session_factory(get_engine(settings.database_url)))
    store.create_schema()
    return store


def build_services(settings: AppSettings) -> Services:
    return Services(
        settings=settings,
        slack=SlackClient(token=settings.bot_token),
        harvest=HarvestClient(
            account_id=settings.harvest_account_id,
            token=settings.harvest_token,
            base_url=settings.harvest_base_url,
            timeout=settings.http_timeout_seconds,
        ),
        store=build_store(settings),
    )
