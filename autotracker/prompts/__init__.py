"""Daily hours prompt: Block Kit builder and the scheduled initiator."""

from .initiator import PromptResult, send_hours_prompt
from .messages import HOURS_ACTION_PREFIX, HOURS_BLOCK_ID, build_hours_prompt

__all__ = [
    "HOURS_ACTION_PREFIX",
    "HOURS_BLOCK_ID",
    "PromptResult",
    "build_hours_prompt",
    "send_hours_prompt",
]
