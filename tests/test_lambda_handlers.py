"""Tests for the AWS Lambda adapters."""

import base64
from datetime import UTC, date, datetime
from decimal import Decimal
import json
from pathlib import Path
import sys
from types import SimpleNamespace

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover
    sys.path.insert(0, str(ROOT))

from autotracker import lambda_handlers, security  # noqa: E402
from autotracker.actions import build_button_value, encode_interaction_body  # noqa: E402
from autotracker.config import AppSettings  # noqa: E402
from autotracker.errors import StoreConditionFailed, UpstreamApiError  # noqa: E402
from autotracker.harvest import Me, ProjectAssignment, TimeEntry  # noqa: E402
from autotracker.services import Services  # noqa: E402
from autotracker.store import PendingHoursStore  # noqa: E402

NOW = datetime.now(UTC)
TODAY = NOW.date()


class MemoryStore(PendingHoursStore):
    def __init__(self):
        self.records = {}

    def create_pending(self, day, *, hours, now, ttl_hours):
        if day in self.records:
            return False
        self.records[day] = Decimal(hours)
        return True

    def confirm_hours(self, day, hours, *, now):
        if day not in self.records:
            raise StoreConditionFailed("missing")
        self.records[day] = hours

    def get(self, day):
        return self.records.get(day)

    def list_expired(self, now):
        return []

    def delete_expired(self, events):
        return 0


class DummySlack:
    def find_user_by_display_name(self, display_name):
        return {"id": "U1"}

    def post_message(self, *, channel, text, blocks):
        return {"ok": True, "ts": "1.1"}


class DummyHarvest:
    def __init__(self, fail=False):
        self.fail = fail
        self.created = []

    def get_me(self):
        if self.fail:
            raise UpstreamApiError("down", service="harvest", status=503)
        return Me(id=7)

    def list_project_assignments(self):
        return [
            ProjectAssignment.model_validate(
                {
                    "id": 1,
                    "project": {"id": 10, "name": "Billable"},
                    "task_assignments": [{"id": 1, "task": {"id": 11, "name": "Dev"}}],
                }
            )
        ]

    def create_time_entry(self, **kwargs):
        self.created.append(kwargs)
        return TimeEntry(id=1, spent_date=kwargs["spent_date"].isoformat(), hours=float(kwargs["hours"]))


@pytest.fixture
def services():
    settings = AppSettings.model_validate(
        {
            "SLACK_BOT_TOKEN": "token",
            "SLACK_SIGNING_SECRET": "secret",
            "HARVEST_ACCOUNT_ID": "1",
            "HARVEST_TOKEN": "harvest",
            "PROMPT_USER_DISPLAY_NAME": "mj",
            "HARVEST_PROJECT_NAME": "billable",
            "HARVEST_TASK_NAME": "dev",
            "STORE_BACKEND": "dynamodb",
        }
    )
    return Services(settings=settings, slack=DummySlack(), harvest=DummyHarvest(), store=MemoryStore())


def _gateway_event(body, timestamp, *, encode=False, secret="secret"):
    headers = {
        "x-slack-request-timestamp": timestamp,
        "x-slack-signature": security.compute_signature(secret, timestamp, body),
    }
    if encode:
        return {"headers": headers, "body": base64.b64encode(body.encode("utf-8")).decode("ascii"), "isBase64Encoded": True}
    return {"headers": headers, "body": body, "isBase64Encoded": False}


def _click(label="4"):
    return encode_interaction_body(
        {
            "type": "block_actions",
            "actions": [{"type": "button", "text": {"type": "plain_text", "text": label}, "value": build_button_value(TODAY)}],
        }
    )


@pytest.fixture
def frozen_time(monkeypatch):
    timestamp = str(int(NOW.timestamp()))
    monkeypatch.setattr(security, "time", SimpleNamespace(time=lambda: int(timestamp)))
    return timestamp


def test_prompt_handler_seeds_record(services):
    result = lambda_handlers.prompt_handler({}, None, services=services)

    assert result == {"date": TODAY.isoformat(), "created": True}
    assert services.store.records[TODAY] == Decimal("8")


@pytest.mark.parametrize("encode", [False, True])
def test_confirm_handler_updates_record(services, frozen_time, encode):
    services.store.records[TODAY] = Decimal("8")

    response = lambda_handlers.confirm_handler(_gateway_event(_click("4"), frozen_time, encode=encode), None, services=services)

    assert response["statusCode"] == 200
    assert response["body"] == ""
    assert services.store.records[TODAY] == Decimal("4")


def test_confirm_handler_maps_auth_errors_to_401(services, frozen_time):
    response = lambda_handlers.confirm_handler(
        _gateway_event(_click(), frozen_time, secret="wrong"), None, services=services
    )

    assert response["statusCode"] == 401
    assert json.loads(response["body"])["error"] == "invalid_signature"


def test_finalize_handler_processes_removals(services):
    event = {
        "Records": [
            {"eventName": "REMOVE", "dynamodb": {"OldImage": {"pk": {"S": "timestamp|2022-02-27"}, "hours": {"N": "6"}}}},
            {"eventName": "INSERT", "dynamodb": {"NewImage": {"pk": {"S": "timestamp|2022-02-28"}}}},
        ]
    }

    result = lambda_handlers.finalize_handler(event, None, services=services)

    assert result == {"succeeded": 1, "failed": 0, "not_found": 0, "skipped": 0}
    assert services.harvest.created == [
        {"user_id": 7, "project_id": 10, "task_id": 11, "spent_date": date(2022, 2, 27), "hours": Decimal("6")}
    ]


def test_finalize_handler_reraises_shared_lookup_failures(services):
    failing = Services(settings=services.settings, slack=services.slack, harvest=DummyHarvest(fail=True), store=services.store)
    event = {"Records": [{"eventName": "REMOVE", "dynamodb": {"OldImage": {"pk": {"S": "timestamp|2022-02-27"}, "hours": {"N": "6"}}}}]}

    with pytest.raises(UpstreamApiError):
        lambda_handlers.finalize_handler(event, None, services=failing)
