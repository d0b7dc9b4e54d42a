"""Pydantic models for the Harvest v2 resources we read and write."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class _HarvestModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Me(_HarvestModel):
    id: int
    first_name: str | None = None
    last_name: str | None = None


class Project(_HarvestModel):
    id: int
    name: str


class Task(_HarvestModel):
    id: int
    name: str


class TaskAssignment(_HarvestModel):
    id: int
    task: Task
    is_active: bool = True


class ProjectAssignment(_HarvestModel):
    id: int
    project: Project
    task_assignments: List[TaskAssignment] = Field(default_factory=list)
    is_active: bool = True


class ProjectAssignmentsPage(_HarvestModel):
    project_assignments: List[ProjectAssignment] = Field(default_factory=list)
    next_page: int | None = None


class TimeEntry(_HarvestModel):
    id: int
    spent_date: str
    hours: float
    is_running: bool = False
