"""Shared fixtures: a temporary SQLite database and an in-memory fake store."""

import asyncio
import tempfile
from collections import Counter, defaultdict
from dataclasses import replace
from datetime import datetime
from pathlib import Path

import pytest

from workspace_metrics.db.engine import init_db
from workspace_metrics.db.store import SqliteStore

NOW = datetime(2026, 6, 15, 12, 0, 0)


class FakeStore:
    """In-memory WorkspaceStore that counts every call.

    Grouped queries return numeric strings, the way some drivers hand back
    SUM/COUNT results. Put a method name in ``fail`` to make it raise.
    """

    def __init__(
        self,
        projects=(),
        tasks=(),
        sprints=(),
        users=(),
        notifications=(),
        comments=(),
        budgets=(),
        costs=(),
        expenses=(),
    ):
        self.projects = list(projects)
        self.tasks = list(tasks)
        self.sprints = list(sprints)
        self.users = list(users)
        self.notifications = list(notifications)
        self.comments = list(comments)
        self.budgets = list(budgets)
        self.costs = list(costs)
        self.expenses = list(expenses)
        self.calls = Counter()
        self.call_args = defaultdict(list)
        self.updates = []
        self.fail = set()

    def _record(self, name, *args):
        self.calls[name] += 1
        self.call_args[name].append(args)
        if name in self.fail:
            raise ConnectionError(f"{name} unavailable")

    async def find_projects(self, ids=None, status=None):
        self._record("find_projects", ids, status)
        ids = None if ids is None else set(ids)
        return [
            p for p in self.projects
            if (ids is None or p.id in ids) and (status is None or p.status == status)
        ]

    async def find_tasks(self, ids=None, project_id=None):
        self._record("find_tasks", ids, project_id)
        ids = None if ids is None else set(ids)
        return [
            t for t in self.tasks
            if (ids is None or t.id in ids) and (project_id is None or t.project_id == project_id)
        ]

    async def find_sprints(self, ids=None, status=None):
        self._record("find_sprints", ids, status)
        ids = None if ids is None else set(ids)
        return [
            s for s in self.sprints
            if (ids is None or s.id in ids) and (status is None or s.status == status)
        ]

    async def find_users(self, ids=None):
        self._record("find_users", ids)
        ids = None if ids is None else set(ids)
        return [u for u in self.users if ids is None or u.id in ids]

    async def find_notifications(self, user_id, limit=20):
        self._record("find_notifications", user_id, limit)
        mine = [n for n in self.notifications if n.user_id == user_id]
        mine.sort(key=lambda n: n.created_at or datetime.min, reverse=True)
        return mine[:limit]

    async def find_costs(self, since=None):
        self._record("find_costs", since)
        return [c for c in self.costs if since is None or (c.date and c.date >= since)]

    async def find_expenses(self, since=None):
        self._record("find_expenses", since)
        return [
            e for e in self.expenses
            if since is None or (e.start_date and e.start_date >= since)
        ]

    def _table(self, table):
        return getattr(self, table)

    async def grouped_sum(self, table, group_key, column="amount"):
        self._record(f"grouped_sum:{table}", group_key, column)
        totals = defaultdict(float)
        for record in self._table(table):
            value = getattr(record, column)
            try:
                totals[getattr(record, group_key)] += float(value or 0)
            except (TypeError, ValueError):
                totals[getattr(record, group_key)] += 0
        return [{"key": k, "total": str(v)} for k, v in totals.items()]

    async def grouped_count(self, table, group_key, keys=None, count_when=None):
        self._record(f"grouped_count:{table}", group_key, keys, count_when)
        keys = None if keys is None else set(keys)
        groups = defaultdict(lambda: [0, 0])
        for record in self._table(table):
            key = getattr(record, group_key)
            if keys is not None and key not in keys:
                continue
            groups[key][0] += 1
            if count_when and all(getattr(record, c) == v for c, v in count_when.items()):
                groups[key][1] += 1
        rows = []
        for key, (count, matched) in groups.items():
            row = {"key": key, "count": str(count)}
            if count_when:
                row["matched"] = str(matched)
            rows.append(row)
        return rows

    async def update_sprint_counters(self, sprint_id, task_count, completed_task_count):
        self._record("update_sprint_counters", sprint_id, task_count, completed_task_count)
        self.updates.append((sprint_id, task_count, completed_task_count))
        self.sprints = [
            replace(s, task_count=task_count, completed_task_count=completed_task_count)
            if s.id == sprint_id else s
            for s in self.sprints
        ]


class GatedStore(FakeStore):
    """FakeStore whose gated calls all block until every one of them is in flight.

    Calls issued one after another never fill the gate and time out, so a
    test passes only when the gated reads overlap.
    """

    def __init__(self, gated, timeout=1.0, **kwargs):
        super().__init__(**kwargs)
        self.gated = set(gated)
        self.arrived = set()
        self.max_in_flight = 0
        self._in_flight = 0
        self._open = asyncio.Event()
        self._timeout = timeout

    async def _gate(self, name):
        if name not in self.gated or self._open.is_set():
            return
        self.arrived.add(name)
        self._in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self._in_flight)
        if self.arrived >= self.gated:
            self._open.set()
        try:
            await asyncio.wait_for(self._open.wait(), self._timeout)
        finally:
            self._in_flight -= 1

    async def find_projects(self, ids=None, status=None):
        await self._gate("find_projects")
        return await super().find_projects(ids, status)

    async def find_tasks(self, ids=None, project_id=None):
        await self._gate("find_tasks")
        return await super().find_tasks(ids, project_id)

    async def find_sprints(self, ids=None, status=None):
        await self._gate("find_sprints")
        return await super().find_sprints(ids, status)

    async def find_users(self, ids=None):
        await self._gate("find_users")
        return await super().find_users(ids)

    async def find_costs(self, since=None):
        await self._gate("find_costs")
        return await super().find_costs(since)

    async def find_expenses(self, since=None):
        await self._gate("find_expenses")
        return await super().find_expenses(since)

    async def grouped_sum(self, table, group_key, column="amount"):
        await self._gate(f"grouped_sum:{table}")
        return await super().grouped_sum(table, group_key, column)

    async def grouped_count(self, table, group_key, keys=None, count_when=None):
        await self._gate(f"grouped_count:{table}")
        return await super().grouped_count(table, group_key, keys, count_when)


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def db_path():
    """Path of a freshly initialized temporary database."""
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "test.db"
        init_db(path).close()
        yield path


@pytest.fixture
def db(db_path):
    conn = init_db(db_path)
    yield conn
    conn.close()


@pytest.fixture
def store(db_path):
    return SqliteStore(db_path)
