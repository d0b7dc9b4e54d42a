"""Pydantic models for the subset of Slack ``block_actions`` payloads we read."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class _SlackModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class ActionText(_SlackModel):
    type: str = "plain_text"
    text: str
    emoji: bool = False


class Action(_SlackModel):
    action_id: str | None = None
    block_id: str | None = None
    type: str = "button"
    text: ActionText
    value: str | None = None
    action_ts: str | None = None


class InteractionUser(_SlackModel):
    id: str
    username: str | None = None
    name: str | None = None
    team_id: str | None = None


class InteractionPayload(_SlackModel):
    type: str
    user: InteractionUser | None = None
    actions: List[Action] = Field(default_factory=list)
    response_url: str | None = None
    trigger_id: str | None = None
