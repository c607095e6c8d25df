"""Read/write ports the metrics engine consumes.

The engine only talks to a store through this protocol. ``SqliteStore`` in
``workspace_metrics.db.store`` is the production implementation; tests use
an in-memory fake.

Grouped queries return raw rows, the way a database driver hands them back:
``{"key": ..., "total": ...}`` for sums and ``{"key": ..., "count": ...}``
(plus ``"matched"`` when ``count_when`` is given) for counts. Values may be
numeric strings; ``workspace_metrics.core.aggregates`` folds them into maps.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Protocol

from workspace_metrics.db.models import (
    Cost,
    Expense,
    Notification,
    Project,
    Sprint,
    Task,
    User,
)

Row = dict[str, Any]


class WorkspaceStore(Protocol):
    async def find_projects(
        self, ids: Iterable[str] | None = None, status: str | None = None
    ) -> list[Project]: ...

    async def find_tasks(
        self, ids: Iterable[str] | None = None, project_id: str | None = None
    ) -> list[Task]: ...

    async def find_sprints(
        self, ids: Iterable[str] | None = None, status: str | None = None
    ) -> list[Sprint]: ...

    async def find_users(self, ids: Iterable[str] | None = None) -> list[User]: ...

    async def find_notifications(self, user_id: str, limit: int = 20) -> list[Notification]: ...

    async def find_costs(self, since: datetime | None = None) -> list[Cost]: ...

    async def find_expenses(self, since: datetime | None = None) -> list[Expense]: ...

    async def grouped_sum(self, table: str, group_key: str, column: str = "amount") -> list[Row]: ...

    async def grouped_count(
        self,
        table: str,
        group_key: str,
        keys: Iterable[str] | None = None,
        count_when: dict[str, Any] | None = None,
    ) -> list[Row]: ...

    async def update_sprint_counters(
        self, sprint_id: str, task_count: int, completed_task_count: int
    ) -> None: ...
