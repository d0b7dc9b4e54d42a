"""Submit confirmed hours of expired records to Harvest."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Sequence, Tuple

import structlog

from autotracker.background import join_all, run_async
from autotracker.errors import AssignmentNotFound, ProjectNotFound, TaskNotFound
from autotracker.harvest import HarvestClient, ProjectAssignment, TaskAssignment, TimeEntry
from autotracker.store import PendingHoursStore, RemovalEvent


@dataclass
class FinalizeReport:
    succeeded: List[Tuple[RemovalEvent, TimeEntry]] = field(default_factory=list)
    failed: List[Tuple[RemovalEvent, Exception]] = field(default_factory=list)
    skipped: List[RemovalEvent] = field(default_factory=list)

    @property
    def not_found(self) -> List[Tuple[RemovalEvent, Exception]]:
        return [item for item in self.failed if isinstance(item[1], AssignmentNotFound)]

    @property
    def settled(self) -> List[RemovalEvent]:
        """Events that a later run would not submit differently."""

        return (
            [event for event, _ in self.succeeded]
            + [event for event, _ in self.not_found]
            + list(self.skipped)
        )

    def as_dict(self) -> dict:
        return {
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "not_found": len(self.not_found),
            "skipped": len(self.skipped),
        }


def find_assignment(
    assignments: Sequence[ProjectAssignment], project_name: str, task_name: str
) -> Tuple[ProjectAssignment, TaskAssignment]:
    """Return the project and task assignment matching the names, ignoring case."""

    wanted_project = project_name.casefold()
    project = next(
        (item for item in assignments if item.project.name.casefold() == wanted_project),
        None,
    )
    if project is None:
        raise ProjectNotFound(f"No project assignment named {project_name!r}")

    wanted_task = task_name.casefold()
    task = next(
        (item for item in project.task_assignments if item.task.name.casefold() == wanted_task),
        None,
    )
    if task is None:
        raise TaskNotFound(f"Project {project.project.name!r} has no task named {task_name!r}")
    return project, task


def register_hours(
    harvest: HarvestClient,
    *,
    user_id: int,
    assignments: Sequence[ProjectAssignment],
    project_name: str,
    task_name: str,
    event: RemovalEvent,
) -> TimeEntry:
    spent_date = event.spent_date
    if spent_date is None:
        raise ValueError(f"Record key {event.pk!r} carries no date")

    project, task = find_assignment(assignments, project_name, task_name)
    return harvest.create_time_entry(
        user_id=user_id,
        project_id=project.project.id,
        task_id=task.task.id,
        spent_date=spent_date.date(),
        hours=event.hours,
    )


def finalize_removals(
    events: Sequence[RemovalEvent],
    *,
    harvest: HarvestClient,
    project_name: str,
    task_name: str,
    max_workers: int = 4,
) -> FinalizeReport:
    """Register every removal event independently and report the outcome of each.

    Profile and assignment lookups are shared by the batch; if they fail the
    error propagates so the whole batch is re-delivered. Per-item failures are
    collected in the report and never stop the other items.
    """

    log = structlog.get_logger()
    report = FinalizeReport()

    dated: List[RemovalEvent] = []
    for event in events:
        if event.spent_date is None:
            log.warning("finalize_item_skipped", pk=event.pk, reason="unparseable_date")
            report.skipped.append(event)
        else:
            dated.append(event)

    if not dated:
        log.info("finalize_nothing_to_do", skipped=len(report.skipped))
        return report

    me = harvest.get_me()
    assignments = harvest.list_project_assignments()

    with ThreadPoolExecutor(max_workers=min(max_workers, len(dated))) as executor:
        futures = [
            run_async(
                register_hours,
                harvest,
                user_id=me.id,
                assignments=assignments,
                project_name=project_name,
                task_name=task_name,
                event=event,
                executor=executor,
            )
            for event in dated
        ]
        join_all(futures)

    for event, future in zip(dated, futures):
        error = future.exception()
        if error is None:
            report.succeeded.append((event, future.result()))
            continue
        report.failed.append((event, error))
        log.warning(
            "finalize_item_failed",
            pk=event.pk,
            hours=str(event.hours),
            error=str(error),
            error_type=type(error).__name__,
            retryable=not isinstance(error, AssignmentNotFound),
        )

    log.info("finalize_completed", **report.as_dict())
    return report


def finalize_expired(
    store: PendingHoursStore,
    *,
    harvest: HarvestClient,
    project_name: str,
    task_name: str,
    now: datetime,
    max_workers: int = 4,
) -> Tuple[List[RemovalEvent], FinalizeReport]:
    """Submit the hours of every expired record, then delete the settled ones.

    Records are read before submission and deleted afterwards, so a failed
    shared lookup or a retryable per-item failure leaves them for the next run.
    """

    events = store.list_expired(now)
    report = finalize_removals(
        events,
        harvest=harvest,
        project_name=project_name,
        task_name=task_name,
        max_workers=max_workers,
    )
    settled = report.settled
    if settled:
        store.delete_expired(settled)
    retained = len(events) - len(settled)
    if retained:
        structlog.get_logger().warning("finalize_records_retained", count=retained)
    return events, report
