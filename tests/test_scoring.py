"""Tests for the health score and productivity index."""

import random
from datetime import timedelta

from conftest import NOW
from workspace_metrics.core.scoring import (
    NEUTRAL_SCORE,
    health_score,
    health_trend,
    is_overdue,
    productivity_index,
)
from workspace_metrics.db.models import Project, Task


def _sample_tasks():
    return [
        Task(id="t1", title="done 1", status="complete"),
        Task(id="t2", title="done 2", status="complete"),
        Task(id="t3", title="late", status="todo", due_date=NOW - timedelta(days=2)),
        Task(id="t4", title="going", status="in-progress", due_date=NOW + timedelta(days=3)),
    ]


class TestHealthScore:
    def test_neutral_without_data(self):
        assert health_score([], [], NOW) == NEUTRAL_SCORE == 50

    def test_weighted_formula_rounds_half_up(self):
        projects = [
            Project(id="p1", name="One", status="active", progress=50),
            Project(id="p2", name="Two", status="archived", progress=100),
        ]
        # 50*0.4 + 50*0.3 + 75*0.2 - 25*0.1 = 47.5
        assert health_score(projects, _sample_tasks(), NOW) == 48

    def test_projects_without_tasks_use_neutral_completion(self):
        projects = [Project(id="p1", name="One", status="active", progress=0)]
        assert health_score(projects, [], NOW) == 50

    def test_tasks_without_projects_use_neutral_active_rate(self):
        tasks = [Task(id="t1", title="done", status="complete")]
        # 100*0.4 + 50*0.3
        assert health_score([], tasks, NOW) == 55

    def test_completed_task_past_due_is_not_overdue(self):
        task = Task(id="t", title="t", status="complete", due_date=NOW - timedelta(days=1))
        assert not is_overdue(task, NOW)

    def test_always_within_bounds(self):
        rng = random.Random(3)
        for _ in range(200):
            projects = [
                Project(
                    id=f"p{i}",
                    name="p",
                    status=rng.choice(["active", "on-hold", "archived"]),
                    progress=rng.randint(0, 100),
                )
                for i in range(rng.randint(0, 5))
            ]
            tasks = [
                Task(
                    id=f"t{i}",
                    title="t",
                    status=rng.choice(["todo", "in-progress", "complete", "backlog"]),
                    due_date=rng.choice([None, NOW + timedelta(days=rng.randint(-30, 30))]),
                )
                for i in range(rng.randint(0, 20))
            ]
            assert 0 <= health_score(projects, tasks, NOW) <= 100
            assert 0 <= productivity_index(tasks, NOW) <= 100


class TestHealthTrend:
    def test_thresholds(self):
        assert health_trend(70) == "up"
        assert health_trend(69) == "stable"
        assert health_trend(50) == "stable"
        assert health_trend(49) == "down"


class TestProductivityIndex:
    def test_neutral_without_tasks(self):
        assert productivity_index([], NOW) == 50

    def test_formula(self):
        # 50 + 25*0.5 + 25*0.2 - 25*0.4 = 57.5
        assert productivity_index(_sample_tasks(), NOW) == 58

    def test_clamped_at_zero(self):
        tasks = [
            Task(id=f"t{i}", title="late", status="todo", due_date=NOW - timedelta(days=1))
            for i in range(3)
        ]
        assert productivity_index(tasks, NOW) == 0

    def test_clamped_at_hundred(self):
        tasks = [
            Task(id=f"t{i}", title="early", status="complete", due_date=NOW + timedelta(days=1))
            for i in range(3)
        ]
        # 100 + 0 + 20 - 0
        assert productivity_index(tasks, NOW) == 100
