"""Tests for budget rollups and the cost trend."""

from datetime import datetime

import pytest

from conftest import NOW, FakeStore, GatedStore
from workspace_metrics.core.finance import (
    budget_cost_metrics,
    cost_trend,
    empty_budget_metrics,
    project_budgets,
)
from workspace_metrics.db.models import Budget, Cost, Expense, Project


class TestCostTrend:
    def test_six_months_oldest_first(self):
        trend = cost_trend([], [], NOW)
        assert [m["month"] for m in trend] == ["Jan", "Feb", "Mar", "Apr", "May", "Jun"]
        assert all(m["cost"] == m["expense"] == m["total"] == 0 for m in trend)

    def test_crosses_year_boundary(self):
        trend = cost_trend([], [], datetime(2026, 2, 10))
        assert [m["month"] for m in trend] == ["Sep", "Oct", "Nov", "Dec", "Jan", "Feb"]

    def test_buckets_by_month(self):
        costs = [
            Cost(amount="100.5", date=datetime(2026, 6, 2)),
            Cost(amount=50, date=datetime(2026, 6, 30, 23, 59)),
            Cost(amount="abc", date=datetime(2026, 5, 1)),
            Cost(amount=999, date=datetime(2025, 12, 31)),
            Cost(amount=999, date=None),
        ]
        expenses = [
            Expense(amount=20, start_date=datetime(2026, 3, 15)),
            Expense(amount="5", start_date=datetime(2026, 6, 1)),
        ]
        trend = {m["month"]: m for m in cost_trend(costs, expenses, NOW)}

        assert trend["Jun"]["cost"] == 150.5
        assert trend["Jun"]["expense"] == 5
        assert trend["Mar"]["expense"] == 20
        assert trend["May"]["cost"] == 0
        for month in trend.values():
            assert month["total"] == month["cost"] + month["expense"]

    def test_empty_metrics_keep_trend_shape(self):
        metrics = empty_budget_metrics(NOW)
        assert metrics["total_budget"] == 0
        assert metrics["project_budgets"] == []
        assert len(metrics["cost_trend"]) == 6


class TestProjectBudgets:
    def test_skips_projects_without_money(self):
        projects = [Project(id="p1", name="Funded"), Project(id="p2", name="Idle")]
        rows = project_budgets(projects, {"p1": 1000.0}, {"p1": 150.0}, {"p1": 50.0})

        assert rows == [{
            "project_id": "p1",
            "project_name": "Funded",
            "budget": 1000.0,
            "spent": 200.0,
            "remaining": 800.0,
            "utilization": 20.0,
        }]

    def test_spend_without_budget_has_zero_utilization(self):
        rows = project_budgets([Project(id="p1", name="X")], {}, {"p1": 10.0}, {})
        assert rows[0]["utilization"] == 0
        assert rows[0]["remaining"] == -10.0


class TestBudgetCostMetrics:
    @pytest.mark.asyncio
    async def test_totals_include_unattributed_records(self):
        store = FakeStore(
            budgets=[
                Budget(amount="1000", project_id="p1"),
                Budget(amount=500, project_id=None),
            ],
            costs=[
                Cost(amount=200, project_id="p1", date=datetime(2026, 6, 1)),
                Cost(amount="100", project_id=None, date=datetime(2026, 5, 1)),
            ],
            expenses=[Expense(amount=50, project_id="p1", start_date=datetime(2026, 4, 1))],
        )
        projects = [Project(id="p1", name="Apollo"), Project(id="p2", name="Zeus")]

        metrics = await budget_cost_metrics(store, projects, NOW)

        assert metrics["total_budget"] == 1500
        assert metrics["total_spent"] == 350
        assert metrics["remaining_budget"] == 1150
        assert metrics["budget_utilization"] == 23.3
        assert [row["project_id"] for row in metrics["project_budgets"]] == ["p1"]
        assert metrics["project_budgets"][0]["spent"] == 250
        assert len(metrics["cost_trend"]) == 6

    @pytest.mark.asyncio
    async def test_uses_grouped_sums_not_scans(self):
        store = FakeStore()
        await budget_cost_metrics(store, [Project(id=f"p{i}", name="p") for i in range(50)], NOW)

        assert store.calls["grouped_sum:budgets"] == 1
        assert store.calls["grouped_sum:costs"] == 1
        assert store.calls["grouped_sum:expenses"] == 1
        assert store.calls["find_costs"] == 1
        assert store.calls["find_expenses"] == 1
        assert store.call_args["find_costs"][0] == (datetime(2026, 1, 1),)

    @pytest.mark.asyncio
    async def test_no_budget_gives_zero_utilization(self):
        store = FakeStore(costs=[Cost(amount=10, date=datetime(2026, 6, 1))])
        metrics = await budget_cost_metrics(store, [], NOW)
        assert metrics["budget_utilization"] == 0
        assert metrics["remaining_budget"] == -10


class TestConcurrentBudgetReads:
    @pytest.mark.asyncio
    async def test_sums_and_trend_reads_overlap(self):
        gated = {"grouped_sum:budgets", "grouped_sum:costs", "grouped_sum:expenses",
                 "find_costs", "find_expenses"}
        store = GatedStore(
            gated,
            budgets=[Budget(amount=100, project_id="p1")],
            costs=[Cost(amount=40, project_id="p1", date=datetime(2026, 6, 1))],
        )

        metrics = await budget_cost_metrics(store, [Project(id="p1", name="Apollo")], NOW)

        assert store.arrived == gated
        assert store.max_in_flight == len(gated)
        assert metrics["total_spent"] == 40
        assert metrics["cost_trend"][-1]["cost"] == 40
