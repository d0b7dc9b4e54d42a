"""Block Kit message builders for the daily hours prompt."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Sequence

from autotracker.actions import build_button_value

HOURS_ACTION_PREFIX = "hours_option_"
HOURS_BLOCK_ID = "hours_options"


def _hour_button(hours: int, prompt_date: date) -> Dict[str, Any]:
    return {
        "type": "button",
        "action_id": f"{HOURS_ACTION_PREFIX}{hours}",
        "text": {"type": "plain_text", "text": str(hours), "emoji": False},
        "value": build_button_value(prompt_date),
    }


def build_hours_prompt(*, text: str, options: Sequence[int], prompt_date: date) -> Dict[str, Any]:
    """Build the question message with one button per hour option."""

    if not options:
        raise ValueError("At least one hour option is required.")

    blocks: List[Dict[str, Any]] = [
        {
            "type": "section",
            "text": {"type": "plain_text", "text": text, "emoji": False},
        },
        {
            "type": "actions",
            "block_id": HOURS_BLOCK_ID,
            "elements": [_hour_button(hours, prompt_date) for hours in options],
        },
    ]

    return {"text": text, "blocks": blocks}
