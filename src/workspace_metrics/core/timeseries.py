"""Monthly task-completion overview."""

import logging
from datetime import datetime

from workspace_metrics.core.periods import MonthWindow, trailing_months
from workspace_metrics.db.models import Project, Task

logger = logging.getLogger(__name__)

PERIOD_MONTHS = {"week": 1, "month": 5, "year": 12}


def months_for_period(period: str) -> int:
    try:
        return PERIOD_MONTHS[period]
    except KeyError:
        raise ValueError(
            f"Unknown period {period!r}; expected one of {', '.join(PERIOD_MONTHS)}"
        ) from None


def _current_counts(project_tasks: list[Task], standalone: list[Task]) -> tuple[int, int]:
    tasks = project_tasks + standalone
    return len(tasks), sum(1 for t in tasks if t.status == "complete")


def _past_counts(
    window: MonthWindow, project_tasks: list[Task], standalone: list[Task]
) -> tuple[int, int]:
    total = completed = 0
    for task in project_tasks:
        if window.contains(task.created_at):
            total += 1
            if task.status == "complete":
                completed += 1
        elif task.status == "complete" and window.contains(task.updated_at):
            total += 1
            completed += 1
    for task in standalone:
        if window.contains(task.created_at or task.updated_at):
            total += 1
            if task.status == "complete":
                completed += 1
    return total, completed


def build_overview(
    projects: list[Project],
    tasks: list[Task],
    period: str = "month",
    now: datetime | None = None,
) -> list[dict]:
    """One entry per calendar month ending at the current month, oldest first.

    The current month shows live counts of every task in a known project
    plus standalone tasks. Past months count tasks created in the month and
    tasks completed (by ``updated_at``) in it. When projects exist but no
    task is counted for the current month, its total is forced to 1 and the
    entry is flagged ``is_placeholder``.
    """
    now = now or datetime.now()
    count = months_for_period(period)

    project_ids = {p.id for p in projects}
    project_tasks = [t for t in tasks if t.project_id and t.project_id in project_ids]
    standalone = [t for t in tasks if not t.project_id]

    months = []
    for window in trailing_months(now, count):
        is_projected = window.start > now
        is_current = window.contains(now)
        is_placeholder = False
        total = completed = 0

        if is_current:
            total, completed = _current_counts(project_tasks, standalone)
            if total == 0 and projects:
                total = 1
                is_placeholder = True
        elif not is_projected:
            total, completed = _past_counts(window, project_tasks, standalone)

        months.append({
            "month": window.label,
            "total": total,
            "completed": completed,
            "is_projected": is_projected,
            "is_highlighted": is_current,
            "is_placeholder": is_placeholder,
        })
    return months


def monthly_overview(
    projects: list[Project],
    tasks: list[Task],
    period: str = "month",
    now: datetime | None = None,
) -> list[dict]:
    """``build_overview`` as a best-effort feed: failures yield ``[]``."""
    months_for_period(period)
    try:
        return build_overview(projects, tasks, period, now)
    except Exception:
        logger.exception("Monthly overview failed for period %s", period)
        return []
