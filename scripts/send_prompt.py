"""Post today's hours prompt. Intended for cron on weekday mornings.

Usage:
    python scripts/send_prompt.py
"""

from __future__ import annotations

from autotracker import build_services, configure_logging, get_settings
from autotracker.prompts import send_hours_prompt


def main() -> None:
    configure_logging()
    services = build_services(get_settings())
    result = send_hours_prompt(settings=services.settings, slack=services.slack, store=services.store)
    print(f"Prompt for {result.prompt_date.isoformat()} sent (record created: {result.created}).")


if __name__ == "__main__":
    main()
