"""Tests for the dashboard JSON API."""

import os
import sqlite3
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from starlette.testclient import TestClient

from workspace_metrics.db import records
from workspace_metrics.db.engine import init_db
from workspace_metrics.db.store import SqliteStore
from workspace_metrics.web.app import create_app


@pytest.fixture
def web_env():
    """Set up a temp environment for web API testing."""
    with tempfile.TemporaryDirectory() as tmp:
        db_path = Path(tmp) / "test.db"
        env = {"WM_DB_PATH": str(db_path), "WM_CURRENCY": "eur"}
        old_env = {}
        for k, v in env.items():
            old_env[k] = os.environ.get(k)
            os.environ[k] = v

        # Seed data
        now = datetime.now()
        db = init_db(db_path)
        records.create_user(db, "ada", "Ada", status="online")
        records.create_project(db, "Demo Project", project_id="demo", member_ids=["ada"])
        records.create_sprint(db, "Sprint 1", "demo", sprint_id="sprint-1", status="active",
                              end_date=now + timedelta(days=7))
        records.create_task(db, "Setup database", "demo", sprint_id="sprint-1",
                            status="complete", assignee_ids=["ada"], created_by_id="ada")
        records.create_task(db, "Build API", "demo", sprint_id="sprint-1",
                            status="in-progress", priority="high")
        records.create_task(db, "Write tests", "demo", due_date=now - timedelta(days=1))
        records.create_budget(db, "Q2", 1000, project_id="demo")
        records.record_cost(db, "Hosting", 250, project_id="demo")
        records.notify(db, "ada", "Setup finished", type="task_completed",
                       project_id="demo", task_id="setup-database")
        db.close()

        app = create_app()
        client = TestClient(app)
        yield client

        for k, v in old_env.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v


class TestDashboardAPI:
    def test_dashboard(self, web_env):
        resp = web_env.get("/api/dashboard", params={"user_id": "ada"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["workspace_overview"]["total_projects"] == 1
        assert data["workspace_overview"]["active_sprints"] == 1
        assert data["sprints"][0]["task_count"] == 2
        assert data["sprints"][0]["completed_task_count"] == 1
        assert data["budget_cost_metrics"]["total_spent"] == 250
        assert data["projects"][0]["budget"]["currency"] == "EUR"
        assert data["user_activity"][0]["task_title"] == "Setup database"
        assert data["degraded"] == []

    def test_dashboard_default_user_has_no_activity(self, web_env):
        resp = web_env.get("/api/dashboard")
        assert resp.status_code == 200
        assert resp.json()["user_activity"] == []


class TestStatisticsAPI:
    def test_workspace_statistics(self, web_env):
        resp = web_env.get("/api/dashboard/statistics")
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_tasks"] == 3
        assert data["priority_analysis"]["high"] == 1
        assert len(data["burn_down_data"]) == 14

    def test_unknown_project_is_empty(self, web_env):
        resp = web_env.get("/api/dashboard/statistics", params={"project_id": "nope"})
        assert resp.status_code == 200
        assert resp.json()["total_tasks"] == 0


class TestOverviewAPI:
    def test_default_period(self, web_env):
        resp = web_env.get("/api/dashboard/overview")
        assert resp.status_code == 200
        months = resp.json()
        assert len(months) == 5
        assert months[-1]["is_highlighted"]
        assert months[-1]["total"] == 3

    def test_year(self, web_env):
        resp = web_env.get("/api/dashboard/overview", params={"period": "year"})
        assert len(resp.json()) == 12

    def test_bad_period(self, web_env):
        resp = web_env.get("/api/dashboard/overview", params={"period": "century"})
        assert resp.status_code == 400
        assert "century" in resp.json()["error"]


class TestSprintSyncAPI:
    def test_sync(self, web_env):
        resp = web_env.post("/api/sprints/sync")
        assert resp.status_code == 200
        data = resp.json()
        assert [s["id"] for s in data] == ["sprint-1"]
        assert data[0]["task_count"] == 2

    def test_get_not_allowed(self, web_env):
        resp = web_env.get("/api/sprints/sync")
        assert resp.status_code == 405

    def test_store_failure_is_503(self, web_env, monkeypatch):
        async def broken(self, ids=None, status=None):
            raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(SqliteStore, "find_sprints", broken)
        resp = web_env.post("/api/sprints/sync")

        assert resp.status_code == 503
        assert "Could not load sprints" in resp.json()["error"]
