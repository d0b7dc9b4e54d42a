"""Utility script to reset the local pending-hours database.

Usage:
    python scripts/reset_local_db.py

Environment:
    Ensure DATABASE_URL (and other required settings) are available in
    the current shell before running this script.
"""

from __future__ import annotations

from autotracker.db import Base, get_engine
from autotracker.models import PendingHours  # noqa: F401  (registers the table)


def reset_database() -> None:
    engine = get_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    print("Local database reset.")


if __name__ == "__main__":
    reset_database()
