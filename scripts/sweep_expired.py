"""Expire overdue pending records and submit their hours to Harvest.

Usage:
    python scripts/sweep_expired.py

Only meaningful with STORE_BACKEND=sql; DynamoDB expires items natively and
delivers removals through its stream.
"""

from __future__ import annotations

from datetime import UTC, datetime

from autotracker import build_services, configure_logging, get_settings
from autotracker.finalizer import finalize_expired


def main() -> None:
    configure_logging()
    services = build_services(get_settings())
    settings = services.settings
    events, report = finalize_expired(
        services.store,
        harvest=services.harvest,
        project_name=settings.harvest_project_name,
        task_name=settings.harvest_task_name,
        now=datetime.now(UTC),
        max_workers=settings.finalizer_max_workers,
    )
    print(f"Expired {len(events)} record(s): {report.as_dict()}")
    services.harvest.close()


if __name__ == "__main__":
    main()
