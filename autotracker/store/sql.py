"""SQLAlchemy-backed pending-hours store.

Relational databases have no native TTL or change stream. Expired rows are
read with :meth:`SqlPendingHoursStore.list_expired` and only deleted through
:meth:`SqlPendingHoursStore.delete_expired` once their hours have been
handled, so a failed submission leaves the row in place for the next sweep.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Generator, Sequence

import structlog
from sqlalchemy import delete, select, text, update
from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import Session, sessionmaker

from autotracker.db import Base
from autotracker.errors import StoreConditionFailed, StoreError, TransientStoreError
from autotracker.models import PendingHours

from .base import SORT_KEY, PendingHoursRecord, PendingHoursStore, RemovalEvent, date_key, expiry_timestamp


def classify_sql_error(exc: SQLAlchemyError) -> StoreError:
    """Map a SQLAlchemy exception onto the store error taxonomy."""

    if isinstance(exc, (OperationalError, DisconnectionError, PoolTimeoutError)):
        return TransientStoreError(f"Transient database error: {exc}")
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return TransientStoreError(f"Database connection lost: {exc}")
    return StoreError(f"Database error: {exc}")


def _to_record(row: PendingHours) -> PendingHoursRecord:
    return PendingHoursRecord(pk=row.pk, sk=row.sk, hours=Decimal(row.hours), ttl=int(row.ttl))


class SqlPendingHoursStore(PendingHoursStore):
    """Pending-hours store on top of any SQLAlchemy-supported database."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._log = structlog.get_logger().bind(store="sql")

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        """Run one transaction, translating SQLAlchemy failures into store errors."""

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise classify_sql_error(exc) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_schema(self) -> None:
        bind = self._session_factory.kw["bind"]
        Base.metadata.create_all(bind)

    def create_pending(self, day: date, *, hours: int | Decimal, now: datetime, ttl_hours: int) -> bool:
        key = date_key(day)
        try:
            with self._session() as session:
                existing = session.execute(
                    select(PendingHours.pk).where(PendingHours.pk == key, PendingHours.sk == SORT_KEY)
                ).scalar_one_or_none()
                if existing is not None:
                    self._log.info("record_exists", pk=key)
                    return False
                session.add(
                    PendingHours(pk=key, sk=SORT_KEY, hours=Decimal(hours), ttl=expiry_timestamp(now, ttl_hours))
                )
        except StoreError as exc:
            # A concurrent creator won the insert race; the record exists either way.
            if isinstance(exc.__cause__, IntegrityError):
                self._log.info("record_exists", pk=key, reason="insert_race")
                return False
            raise
        self._log.info("record_created", pk=key, hours=str(hours))
        return True

    def confirm_hours(self, day: date, hours: Decimal, *, now: datetime) -> None:
        key = date_key(day)
        with self._session() as session:
            stmt = (
                update(PendingHours)
                .where(
                    PendingHours.pk == key,
                    PendingHours.sk == SORT_KEY,
                    PendingHours.ttl > int(now.timestamp()),
                )
                .values(hours=hours)
            )
            result = session.execute(stmt)
            if result.rowcount != 1:
                raise StoreConditionFailed(f"No live record for {key}")

    def get(self, day: date) -> PendingHoursRecord | None:
        with self._session() as session:
            row = session.get(PendingHours, (date_key(day), SORT_KEY))
            return _to_record(row) if row is not None else None

    def list_expired(self, now: datetime) -> list[RemovalEvent]:
        cutoff = int(now.timestamp())
        with self._session() as session:
            rows = session.execute(select(PendingHours).where(PendingHours.ttl <= cutoff)).scalars().all()
            return [RemovalEvent(pk=row.pk, hours=Decimal(row.hours), ttl=int(row.ttl)) for row in rows]

    def delete_expired(self, events: Sequence[RemovalEvent]) -> int:
        removed = 0
        with self._session() as session:
            for event in events:
                result = session.execute(
                    delete(PendingHours).where(
                        PendingHours.pk == event.pk,
                        PendingHours.sk == SORT_KEY,
                        PendingHours.ttl == event.ttl,
                    )
                )
                removed += result.rowcount
        if removed:
            self._log.info("records_expired", count=removed)
        return removed

    def ping(self) -> None:
        with self._session() as session:
            session.execute(text("SELECT 1"))
