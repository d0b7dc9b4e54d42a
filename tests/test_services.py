"""Tests for building the per-process client bundle."""

from pathlib import Path
import sys

from sqlalchemy import inspect

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover
    sys.path.insert(0, str(ROOT))

from autotracker import services as services_module  # noqa: E402
from autotracker.config import AppSettings  # noqa: E402
from autotracker.db import get_engine  # noqa: E402
from autotracker.harvest import HarvestClient  # noqa: E402
from autotracker.slack_client import SlackClient  # noqa: E402
from autotracker.store import DynamoPendingHoursStore, SqlPendingHoursStore  # noqa: E402
from autotracker.store import dynamodb as dynamodb_module  # noqa: E402


def _settings(**overrides):
    env = {
        "SLACK_BOT_TOKEN": "token",
        "SLACK_SIGNING_SECRET": "secret",
        "HARVEST_ACCOUNT_ID": "1",
        "HARVEST_TOKEN": "harvest",
        "PROMPT_USER_DISPLAY_NAME": "mj",
        "HARVEST_PROJECT_NAME": "Project",
        "HARVEST_TASK_NAME": "Task",
    }
    env.update(overrides)
    return AppSettings.model_validate(env)


def test_sql_backend_creates_schema(tmp_path):
    url = f"sqlite:///{tmp_path / 'services.db'}"

    store = services_module.build_store(_settings(DATABASE_URL=url))

    assert isinstance(store, SqlPendingHoursStore)
    assert "pending_hours" in inspect(get_engine(url)).get_table_names()
    get_engine.cache_clear()


def test_dynamodb_backend_uses_configured_table(monkeypatch):
    created = []
    monkeypatch.setattr(dynamodb_module.boto3, "client", lambda service: created.append(service) or object())

    store = services_module.build_store(_settings(STORE_BACKEND="dynamodb", TABLE_NAME="hours-table"))

    assert isinstance(store, DynamoPendingHoursStore)
    assert created == ["dynamodb"]
    assert store._table_name == "hours-table"


def test_build_services_wires_every_client(tmp_path):
    url = f"sqlite:///{tmp_path / 'bundle.db'}"

    bundle = services_module.build_services(_settings(DATABASE_URL=url))

    try:
        assert isinstance(bundle.slack, SlackClient)
        assert isinstance(bundle.harvest, HarvestClient)
        assert isinstance(bundle.store, SqlPendingHoursStore)
        assert bundle.settings.database_url == url
    finally:
        bundle.harvest.close()
        get_engine.cache_clear()
