"""Harvest time-tracking API client and models."""

from .client import HarvestClient
from .models import Me, Project, ProjectAssignment, Task, TaskAssignment, TimeEntry

__all__ = [
    "HarvestClient",
    "Me",
    "Project",
    "ProjectAssignment",
    "Task",
    "TaskAssignment",
    "TimeEntry",
]
