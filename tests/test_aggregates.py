"""Tests for grouped rollups and numeric coercion."""

from decimal import Decimal

import pytest

from conftest import FakeStore
from workspace_metrics.core import aggregates
from workspace_metrics.db.models import Budget, Task


class TestToNumber:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, 0.0),
            (True, 0.0),
            ("", 0.0),
            ("abc", 0.0),
            (" 12.5 ", 12.5),
            (Decimal("3.25"), 3.25),
            (7, 7.0),
            (float("nan"), 0.0),
            (float("inf"), 0.0),
            ("-4", -4.0),
            (object(), 0.0),
        ],
    )
    def test_coercion(self, value, expected):
        assert aggregates.to_number(value) == expected

    def test_to_count_truncates(self):
        assert aggregates.to_count("3") == 3
        assert aggregates.to_count(None) == 0


class TestRoundHalfUp:
    def test_half_rounds_up(self):
        assert aggregates.round_half_up(2.5) == 3
        assert aggregates.round_half_up(47.5) == 48

    def test_returns_int_without_digits(self):
        assert isinstance(aggregates.round_half_up(1.2), int)

    def test_one_decimal(self):
        assert aggregates.round_half_up(66.66666, 1) == 66.7
        assert aggregates.round_half_up(12.25, 1) == 12.3


class TestFolding:
    def test_sum_rows_parses_strings_and_keeps_null_key(self):
        rows = [
            {"key": "p1", "total": "100.5"},
            {"key": None, "total": 20},
            {"key": "p1", "total": "bad"},
        ]
        assert aggregates.sum_rows(rows) == {"p1": 100.5, None: 20.0}

    def test_count_rows_missing_field_is_zero(self):
        rows = [{"key": "s1", "count": "3"}, {"key": "s2", "count": 2, "matched": "1"}]
        counts = aggregates.count_rows(rows, ("count", "matched"))
        assert counts == {"s1": {"count": 3, "matched": 0}, "s2": {"count": 2, "matched": 1}}

    def test_count_by_with_list_key(self):
        tasks = [
            Task(id="t1", title="a", assignee_ids=["u1", "u2"]),
            Task(id="t2", title="b", assignee_ids=["u1"]),
            Task(id="t3", title="c"),
        ]
        assert aggregates.count_by(tasks, lambda t: t.assignee_ids) == {"u1": 2, "u2": 1}

    def test_sum_by(self):
        tasks = [
            Task(id="t1", title="a", project_id="p1", estimated_cost="10"),
            Task(id="t2", title="b", project_id="p1", estimated_cost=None),
            Task(id="t3", title="c", project_id="p2", estimated_cost=2.5),
        ]
        totals = aggregates.sum_by(tasks, lambda t: t.project_id, lambda t: t.estimated_cost)
        assert totals == {"p1": 10.0, "p2": 2.5}


class TestStoreAggregates:
    @pytest.mark.asyncio
    async def test_grouped_sum_is_one_store_call(self):
        store = FakeStore(budgets=[
            Budget(amount="1000", project_id="p1"),
            Budget(amount=500, project_id="p1"),
            Budget(amount="abc", project_id="p2"),
            Budget(amount=250, project_id=None),
        ])
        totals = await aggregates.grouped_sum(store, "budgets", "project_id")

        assert totals == {"p1": 1500.0, "p2": 0.0, None: 250.0}
        assert store.calls["grouped_sum:budgets"] == 1

    @pytest.mark.asyncio
    async def test_grouped_count_with_condition(self):
        store = FakeStore(tasks=[
            Task(id="t1", title="a", sprint_id="s1", status="complete"),
            Task(id="t2", title="b", sprint_id="s1", status="todo"),
            Task(id="t3", title="c", sprint_id="s2", status="todo"),
        ])
        counts = await aggregates.grouped_count(
            store, "tasks", "sprint_id", keys=["s1", "s2"], count_when={"status": "complete"}
        )

        assert counts == {
            "s1": {"count": 2, "matched": 1},
            "s2": {"count": 1, "matched": 0},
        }
        assert counts.get("s3") is None
