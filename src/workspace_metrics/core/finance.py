"""Budget, spend and cost-trend rollups."""

import asyncio
from datetime import datetime

from workspace_metrics.core.aggregates import grouped_sum, round_half_up, to_number
from workspace_metrics.core.periods import trailing_months
from workspace_metrics.core.ports import WorkspaceStore
from workspace_metrics.db.models import Cost, Expense, Project

TREND_MONTHS = 6


def _utilization(spent: float, budget: float) -> float:
    return round_half_up(spent / budget * 100, 1) if budget > 0 else 0


def cost_trend(costs: list[Cost], expenses: list[Expense], now: datetime | None = None) -> list[dict]:
    """Monthly cost and expense totals for the trailing six months, oldest first.

    Months without records are present with zeros. Records outside the
    window or without a date are ignored.
    """
    now = now or datetime.now()
    windows = trailing_months(now, TREND_MONTHS)
    buckets = {(w.start.year, w.start.month): [0.0, 0.0] for w in windows}

    for cost in costs:
        if cost.date and (bucket := buckets.get((cost.date.year, cost.date.month))):
            bucket[0] += to_number(cost.amount)
    for expense in expenses:
        if expense.start_date and (
            bucket := buckets.get((expense.start_date.year, expense.start_date.month))
        ):
            bucket[1] += to_number(expense.amount)

    trend = []
    for window in windows:
        cost_total, expense_total = buckets[(window.start.year, window.start.month)]
        trend.append({
            "month": window.label,
            "cost": cost_total,
            "expense": expense_total,
            "total": cost_total + expense_total,
        })
    return trend


def empty_budget_metrics(now: datetime | None = None) -> dict:
    return {
        "total_budget": 0,
        "total_spent": 0,
        "remaining_budget": 0,
        "budget_utilization": 0,
        "project_budgets": [],
        "cost_trend": cost_trend([], [], now),
    }


def project_budgets(
    projects: list[Project],
    budgets: dict,
    costs: dict,
    expenses: dict,
) -> list[dict]:
    """Per-project budget/spend rows, only for projects with any money on them."""
    rows = []
    for project in projects:
        budget = budgets.get(project.id, 0)
        spent = costs.get(project.id, 0) + expenses.get(project.id, 0)
        if budget == 0 and spent == 0:
            continue
        rows.append({
            "project_id": project.id,
            "project_name": project.name or "Unknown",
            "budget": budget,
            "spent": spent,
            "remaining": budget - spent,
            "utilization": _utilization(spent, budget),
        })
    return rows


async def budget_cost_metrics(
    store: WorkspaceStore, projects: list[Project], now: datetime | None = None
) -> dict:
    """Workspace-wide and per-project budget figures plus the cost trend.

    Three grouped sums (budgets, costs, expenses by project) and two bounded
    reads for the trend, all issued concurrently. Unattributed records (no
    project) count toward the workspace totals only.
    """
    now = now or datetime.now()
    since = trailing_months(now, TREND_MONTHS)[0].start

    budget_sums, cost_sums, expense_sums, recent_costs, recent_expenses = await asyncio.gather(
        grouped_sum(store, "budgets", "project_id"),
        grouped_sum(store, "costs", "project_id"),
        grouped_sum(store, "expenses", "project_id"),
        store.find_costs(since=since),
        store.find_expenses(since=since),
    )

    total_budget = sum(budget_sums.values())
    total_spent = sum(cost_sums.values()) + sum(expense_sums.values())

    return {
        "total_budget": total_budget,
        "total_spent": total_spent,
        "remaining_budget": total_budget - total_spent,
        "budget_utilization": _utilization(total_spent, total_budget),
        "project_budgets": project_budgets(projects, budget_sums, cost_sums, expense_sums),
        "cost_trend": cost_trend(recent_costs, recent_expenses, now),
    }
