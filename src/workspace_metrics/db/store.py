"""Async SQLite store implementing the workspace read/write ports.

sqlite3 is blocking, so every call runs in a worker thread with
``asyncio.to_thread`` on a connection of its own. Independent calls issued
with ``asyncio.gather`` therefore overlap instead of queueing behind each
other.
"""

import asyncio
import logging
import sqlite3
from collections import defaultdict
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

from workspace_metrics.db.engine import connect
from workspace_metrics.db.models import (
    Cost,
    Expense,
    Notification,
    Project,
    Sprint,
    Task,
    User,
)
from workspace_metrics.db.rows import (
    format_dt,
    row_to_cost,
    row_to_expense,
    row_to_notification,
    row_to_project,
    row_to_sprint,
    row_to_task,
    row_to_user,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Tables and columns the grouped queries may touch. Names are interpolated
# into SQL, so nothing outside this map is accepted.
AGGREGATABLE = {
    "tasks": {"project_id", "sprint_id", "status", "priority", "created_by_id"},
    "comments": {"author_id", "task_id"},
    "budgets": {"project_id", "amount", "currency"},
    "costs": {"project_id", "task_id", "amount", "category", "currency"},
    "expenses": {"project_id", "amount", "currency"},
    "notifications": {"user_id", "project_id", "type"},
}


def _check_columns(table: str, *columns: str):
    allowed = AGGREGATABLE.get(table)
    if allowed is None:
        raise ValueError(f"Table not aggregatable: {table}")
    for column in columns:
        if column not in allowed:
            raise ValueError(f"Column not aggregatable: {table}.{column}")


def _placeholders(values: list) -> str:
    return ", ".join("?" for _ in values)


class SqliteStore:
    """Workspace store backed by a SQLite database file."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    async def _run(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        return await asyncio.to_thread(self._call, fn)

    def _call(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        conn = connect(self.db_path)
        try:
            return fn(conn)
        finally:
            conn.close()

    # ── Finds ─────────────────────────────────────────────────────────────────

    async def find_projects(
        self, ids: Iterable[str] | None = None, status: str | None = None
    ) -> list[Project]:
        ids = None if ids is None else list(ids)

        def query(db: sqlite3.Connection) -> list[Project]:
            sql = "SELECT * FROM projects WHERE 1 = 1"
            params: list = []
            if ids is not None:
                if not ids:
                    return []
                sql += f" AND id IN ({_placeholders(ids)})"
                params.extend(ids)
            if status:
                sql += " AND status = ?"
                params.append(status)
            sql += " ORDER BY created_at DESC"
            rows = db.execute(sql, params).fetchall()
            members = _load_links(
                db, "project_members", "project_id", "user_id", [r["id"] for r in rows]
            )
            return [row_to_project(r, members.get(r["id"])) for r in rows]

        return await self._run(query)

    async def find_tasks(
        self, ids: Iterable[str] | None = None, project_id: str | None = None
    ) -> list[Task]:
        ids = None if ids is None else list(ids)

        def query(db: sqlite3.Connection) -> list[Task]:
            sql = "SELECT * FROM tasks WHERE 1 = 1"
            params: list = []
            if ids is not None:
                if not ids:
                    return []
                sql += f" AND id IN ({_placeholders(ids)})"
                params.extend(ids)
            if project_id:
                sql += " AND project_id = ?"
                params.append(project_id)
            sql += " ORDER BY created_at ASC, id ASC"
            rows = db.execute(sql, params).fetchall()
            assignees = _load_links(
                db, "task_assignees", "task_id", "user_id", [r["id"] for r in rows]
            )
            return [row_to_task(r, assignees.get(r["id"])) for r in rows]

        return await self._run(query)

    async def find_sprints(
        self, ids: Iterable[str] | None = None, status: str | None = None
    ) -> list[Sprint]:
        ids = None if ids is None else list(ids)

        def query(db: sqlite3.Connection) -> list[Sprint]:
            sql = "SELECT * FROM sprints WHERE 1 = 1"
            params: list = []
            if ids is not None:
                if not ids:
                    return []
                sql += f" AND id IN ({_placeholders(ids)})"
                params.extend(ids)
            if status:
                sql += " AND status = ?"
                params.append(status)
            sql += " ORDER BY start_date ASC, id ASC"
            return [row_to_sprint(r) for r in db.execute(sql, params).fetchall()]

        return await self._run(query)

    async def find_users(self, ids: Iterable[str] | None = None) -> list[User]:
        ids = None if ids is None else list(ids)

        def query(db: sqlite3.Connection) -> list[User]:
            if ids is None:
                rows = db.execute("SELECT * FROM users ORDER BY name").fetchall()
            elif not ids:
                return []
            else:
                rows = db.execute(
                    f"SELECT * FROM users WHERE id IN ({_placeholders(ids)}) ORDER BY name",
                    ids,
                ).fetchall()
            return [row_to_user(r) for r in rows]

        return await self._run(query)

    async def find_notifications(self, user_id: str, limit: int = 20) -> list[Notification]:
        def query(db: sqlite3.Connection) -> list[Notification]:
            rows = db.execute(
                """SELECT * FROM notifications WHERE user_id = ?
                   ORDER BY created_at DESC, id DESC LIMIT ?""",
                (user_id, limit),
            ).fetchall()
            return [row_to_notification(r) for r in rows]

        return await self._run(query)

    async def find_costs(self, since: datetime | None = None) -> list[Cost]:
        def query(db: sqlite3.Connection) -> list[Cost]:
            if since is None:
                rows = db.execute("SELECT * FROM costs ORDER BY date").fetchall()
            else:
                rows = db.execute(
                    "SELECT * FROM costs WHERE julianday(date) >= julianday(?) ORDER BY date",
                    (format_dt(since),),
                ).fetchall()
            return [row_to_cost(r) for r in rows]

        return await self._run(query)

    async def find_expenses(self, since: datetime | None = None) -> list[Expense]:
        def query(db: sqlite3.Connection) -> list[Expense]:
            if since is None:
                rows = db.execute("SELECT * FROM expenses ORDER BY start_date").fetchall()
            else:
                rows = db.execute(
                    """SELECT * FROM expenses WHERE julianday(start_date) >= julianday(?)
                       ORDER BY start_date""",
                    (format_dt(since),),
                ).fetchall()
            return [row_to_expense(r) for r in rows]

        return await self._run(query)

    # ── Grouped aggregates ────────────────────────────────────────────────────

    async def grouped_sum(
        self, table: str, group_key: str, column: str = "amount"
    ) -> list[dict[str, Any]]:
        _check_columns(table, group_key, column)
        sql = (
            f'SELECT {group_key} AS "key", SUM({column}) AS "total" '
            f"FROM {table} GROUP BY {group_key}"
        )

        def query(db: sqlite3.Connection) -> list[dict[str, Any]]:
            return [dict(r) for r in db.execute(sql).fetchall()]

        return await self._run(query)

    async def grouped_count(
        self,
        table: str,
        group_key: str,
        keys: Iterable[str] | None = None,
        count_when: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        keys = None if keys is None else list(keys)
        conditions = list((count_when or {}).items())
        _check_columns(table, group_key, *(c for c, _ in conditions))

        select = f'SELECT {group_key} AS "key", COUNT(*) AS "count"'
        params: list = []
        if conditions:
            clause = " AND ".join(f"{c} = ?" for c, _ in conditions)
            select += f', SUM(CASE WHEN {clause} THEN 1 ELSE 0 END) AS "matched"'
            params.extend(v for _, v in conditions)
        sql = f"{select} FROM {table}"
        if keys is not None:
            sql += f" WHERE {group_key} IN ({_placeholders(keys)})"
            params.extend(keys)
        sql += f" GROUP BY {group_key}"

        def query(db: sqlite3.Connection) -> list[dict[str, Any]]:
            if keys is not None and not keys:
                return []
            return [dict(r) for r in db.execute(sql, params).fetchall()]

        return await self._run(query)

    # ── Writes ────────────────────────────────────────────────────────────────

    async def update_sprint_counters(
        self, sprint_id: str, task_count: int, completed_task_count: int
    ) -> None:
        def write(db: sqlite3.Connection):
            db.execute(
                """UPDATE sprints SET task_count = ?, completed_task_count = ?,
                       updated_at = datetime('now', 'localtime')
                   WHERE id = ?""",
                (task_count, completed_task_count, sprint_id),
            )
            db.commit()

        await self._run(write)
        logger.debug(
            "Sprint %s counters set to %d/%d", sprint_id, completed_task_count, task_count
        )


def _load_links(
    db: sqlite3.Connection,
    table: str,
    owner_column: str,
    value_column: str,
    owner_ids: list[str],
) -> dict[str, list[str]]:
    """Load a many-to-many link table for a batch of owners in one query."""
    if not owner_ids:
        return {}
    rows = db.execute(
        f"""SELECT {owner_column} AS owner, {value_column} AS value FROM {table}
            WHERE {owner_column} IN ({_placeholders(owner_ids)})
            ORDER BY {value_column}""",
        owner_ids,
    ).fetchall()
    links: dict[str, list[str]] = defaultdict(list)
    for row in rows:
        links[row["owner"]].append(row["value"])
    return links
