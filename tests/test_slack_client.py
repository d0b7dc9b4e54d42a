"""Unit tests for the Slack WebClient wrapper."""

from pathlib import Path
import sys

import pytest
from slack_sdk.errors import SlackApiError
from slack_sdk.web import SlackResponse

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from autotracker.errors import RecipientNotFound, UpstreamApiError  # noqa: E402
from autotracker.slack_client import SlackClient  # noqa: E402


def _member(user_id, display_name):
    return {"id": user_id, "name": display_name.lower(), "profile": {"display_name": display_name}}


class DummyWebClient:
    def __init__(self, pages=None, error=None):
        self.calls = []
        self.pages = pages or []
        self.error = error

    def chat_postMessage(self, **kwargs):
        self.calls.append(("post", kwargs))
        if self.error is not None:
            raise self.error
        return {"ok": True, "channel": "D123", "ts": "1645904837.581049", "message": kwargs}

    def users_list(self, **kwargs):
        self.calls.append(("users_list", kwargs))
        if self.error is not None:
            raise self.error
        return self.pages.pop(0)


def _slack_error(error_code):
    response = SlackResponse(
        client=None,
        http_verb="POST",
        api_url="https://slack.com/api/chat.postMessage",
        req_args={},
        data={"ok": False, "error": error_code},
        headers={},
        status_code=200,
    )
    return SlackApiError(message=error_code, response=response)


def test_requires_token_or_client():
    with pytest.raises(ValueError):
        SlackClient()


def test_post_message_uses_underlying_client():
    dummy = DummyWebClient()
    client = SlackClient(client=dummy)

    response = client.post_message(channel="U123", text="hello", blocks=[{"type": "section"}])

    assert dummy.calls == [
        ("post", {"channel": "U123", "text": "hello", "blocks": [{"type": "section"}]}),
    ]
    assert response["ok"] is True
    assert client.client is dummy


def test_post_message_wraps_slack_errors():
    client = SlackClient(client=DummyWebClient(error=_slack_error("channel_not_found")))

    with pytest.raises(UpstreamApiError) as err:
        client.post_message(channel="U123", text="hello", blocks=[])

    assert err.value.service == "slack"
    assert "channel_not_found" in str(err.value)


def test_find_user_matches_display_name_case_insensitively():
    dummy = DummyWebClient(
        pages=[{"ok": True, "members": [_member("U1", "someone"), _member("U7XJ7HMEC", "MJ")]}],
    )
    client = SlackClient(client=dummy)

    member = client.find_user_by_display_name("mj")

    assert member["id"] == "U7XJ7HMEC"


def test_find_user_follows_pagination_cursor():
    dummy = DummyWebClient(
        pages=[
            {"ok": True, "members": [_member("U1", "someone")], "response_metadata": {"next_cursor": "abc"}},
            {"ok": True, "members": [_member("U2", "mj")], "response_metadata": {"next_cursor": ""}},
        ],
    )
    client = SlackClient(client=dummy)

    assert client.find_user_by_display_name("mj")["id"] == "U2"
    assert [call[1]["cursor"] for call in dummy.calls] == [None, "abc"]


def test_find_user_raises_when_absent():
    dummy = DummyWebClient(pages=[{"ok": True, "members": [_member("U1", "someone")]}])
    client = SlackClient(client=dummy)

    with pytest.raises(RecipientNotFound):
        client.find_user_by_display_name("mj")


def test_find_user_wraps_slack_errors():
    client = SlackClient(client=DummyWebClient(error=_slack_error("invalid_auth")))

    with pytest.raises(UpstreamApiError):
        client.find_user_by_display_name("mj")
