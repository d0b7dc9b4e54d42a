"""Synchronous Harvest v2 API client."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, List

import httpx
import structlog
from pydantic import ValidationError

from autotracker.errors import UpstreamApiError

from .models import Me, ProjectAssignment, ProjectAssignmentsPage, TimeEntry

USER_AGENT = "autotracker"
PER_PAGE = 100


class HarvestClient:
    """Wrap an ``httpx.Client`` preconfigured with Harvest credentials.

    One instance is built per process and shared by every invocation;
    call :meth:`close` on shutdown.
    """

    def __init__(
        self,
        *,
        account_id: str | None = None,
        token: str | None = None,
        base_url: str = "https://api.harvestapp.com/v2",
        timeout: float = 10,
        client: httpx.Client | None = None,
    ) -> None:
        if client is None and (not account_id or not token):
            raise ValueError("Either an instantiated client or account id and token must be provided.")

        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {token}",
                "Harvest-Account-ID": str(account_id),
                "User-Agent": USER_AGENT,
                "Accept": "application/json",
            },
        )
        self._log = structlog.get_logger().bind(service="harvest")

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            self._log.warning("harvest_request_failed", method=method, path=path, error=str(exc))
            raise UpstreamApiError(f"Harvest {method} {path} failed: {exc}", service="harvest") from exc

        if response.status_code >= 400:
            self._log.warning(
                "harvest_request_rejected",
                method=method,
                path=path,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise UpstreamApiError(
                f"Harvest {method} {path} returned {response.status_code}",
                service="harvest",
                status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamApiError(f"Harvest {method} {path} returned invalid JSON", service="harvest") from exc

    def get_me(self) -> Me:
        data = self._request("GET", "/users/me")
        try:
            return Me.model_validate(data)
        except ValidationError as exc:
            raise UpstreamApiError("Unexpected /users/me response", service="harvest") from exc

    def list_project_assignments(self) -> List[ProjectAssignment]:
        """Fetch every project assignment of the authenticated user, following pagination."""

        assignments: List[ProjectAssignment] = []
        page: int | None = 1
        while page is not None:
            data = self._request(
                "GET",
                "/users/me/project_assignments",
                params={"page": page, "per_page": PER_PAGE},
            )
            try:
                parsed = ProjectAssignmentsPage.model_validate(data)
            except ValidationError as exc:
                raise UpstreamApiError("Unexpected project_assignments response", service="harvest") from exc
            assignments.extend(parsed.project_assignments)
            page = parsed.next_page
        return assignments

    def create_time_entry(
        self,
        *,
        user_id: int,
        project_id: int,
        task_id: int,
        spent_date: date,
        hours: Decimal | float,
        notes: str | None = None,
    ) -> TimeEntry:
        payload: dict[str, Any] = {
            "user_id": user_id,
            "project_id": project_id,
            "task_id": task_id,
            "spent_date": spent_date.isoformat(),
            "hours": float(hours),
        }
        if notes:
            payload["notes"] = notes
        data = self._request("POST", "/time_entries", json=payload)
        try:
            entry = TimeEntry.model_validate(data)
        except ValidationError as exc:
            raise UpstreamApiError("Unexpected time_entries response", service="harvest") from exc
        self._log.info("time_entry_created", entry_id=entry.id, spent_date=entry.spent_date, hours=entry.hours)
        return entry
