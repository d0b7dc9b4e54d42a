"""Tests for the Harvest API client."""

from datetime import date
from decimal import Decimal
import json
from pathlib import Path
import sys

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover
    sys.path.insert(0, str(ROOT))

from autotracker.errors import UpstreamApiError  # noqa: E402
from autotracker.harvest import HarvestClient  # noqa: E402


def _assignment(assignment_id, project_name, tasks):
    return {
        "id": assignment_id,
        "is_active": True,
        "project": {"id": assignment_id * 10, "name": project_name, "code": "S2"},
        "task_assignments": [
            {"id": index, "task": {"id": index * 100, "name": name}} for index, name in enumerate(tasks, start=1)
        ],
    }


def _client(handler):
    transport = httpx.MockTransport(handler)
    http = httpx.Client(base_url="https://api.harvestapp.com/v2", transport=transport)
    return HarvestClient(client=http)


def test_requires_credentials_or_client():
    with pytest.raises(ValueError):
        HarvestClient(account_id="1")


def test_default_headers_carry_credentials():
    client = HarvestClient(account_id="203529", token="secret-token")
    try:
        headers = client._client.headers
        assert headers["Authorization"] == "Bearer secret-token"
        assert headers["Harvest-Account-ID"] == "203529"
        assert headers["User-Agent"]
    finally:
        client.close()


def test_get_me():
    def handler(request):
        assert request.url.path == "/v2/users/me"
        return httpx.Response(200, json={"id": 42, "first_name": "Martin", "email": "mj@example.com"})

    me = _client(handler).get_me()

    assert me.id == 42
    assert me.first_name == "Martin"


def test_project_assignments_follow_pages():
    pages = {
        "1": {"project_assignments": [_assignment(1, "Internal", ["Admin"])], "next_page": 2},
        "2": {"project_assignments": [_assignment(2, "System2 Development Hours", ["Development"])], "next_page": None},
    }
    seen = []

    def handler(request):
        page = request.url.params["page"]
        seen.append(page)
        return httpx.Response(200, json=pages[page])

    assignments = _client(handler).list_project_assignments()

    assert seen == ["1", "2"]
    assert [item.project.name for item in assignments] == ["Internal", "System2 Development Hours"]
    assert assignments[1].task_assignments[0].task.name == "Development"


def test_create_time_entry_posts_expected_payload():
    captured = {}

    def handler(request):
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["json"] = json.loads(request.content)
        return httpx.Response(
            201,
            json={"id": 636709355, "spent_date": "2022-02-27", "hours": 6.0, "is_running": False},
        )

    entry = _client(handler).create_time_entry(
        user_id=42,
        project_id=20,
        task_id=100,
        spent_date=date(2022, 2, 27),
        hours=Decimal("6"),
    )

    assert captured["method"] == "POST"
    assert captured["path"] == "/v2/time_entries"
    assert captured["json"] == {
        "user_id": 42,
        "project_id": 20,
        "task_id": 100,
        "spent_date": "2022-02-27",
        "hours": 6.0,
    }
    assert entry.id == 636709355
    assert entry.hours == 6.0


def test_http_errors_raise_upstream_error():
    client = _client(lambda request: httpx.Response(429, json={"message": "slow down"}))

    with pytest.raises(UpstreamApiError) as err:
        client.get_me()

    assert err.value.status == 429
    assert err.value.service == "harvest"


def test_transport_errors_raise_upstream_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamApiError):
        _client(handler).list_project_assignments()


def test_unexpected_shape_raises_upstream_error():
    client = _client(lambda request: httpx.Response(200, json={"unexpected": True}))

    with pytest.raises(UpstreamApiError):
        client.get_me()
