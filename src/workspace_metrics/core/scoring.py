"""Workspace health score and productivity index.

Both are pure functions of a project/task snapshot and ``now``, rounded
half-up and clamped to [0, 100]. With no data at all each returns the
neutral 50.
"""

from datetime import datetime

from workspace_metrics.core.aggregates import round_half_up
from workspace_metrics.db.models import Project, Task

NEUTRAL_SCORE = 50


def is_complete(task: Task) -> bool:
    return task.status == "complete"


def is_overdue(task: Task, now: datetime) -> bool:
    return task.due_date is not None and task.due_date < now and not is_complete(task)


def _clamp(score: float) -> int:
    return max(0, min(100, round_half_up(score)))


def health_score(projects: list[Project], tasks: list[Task], now: datetime | None = None) -> int:
    """40% completion + 30% active projects + 20% progress - 10% overdue."""
    now = now or datetime.now()
    if not tasks and not projects:
        return NEUTRAL_SCORE

    total_tasks = len(tasks)
    if total_tasks:
        completion_rate = sum(1 for t in tasks if is_complete(t)) / total_tasks * 100
        overdue_rate = sum(1 for t in tasks if is_overdue(t, now)) / total_tasks * 100
    else:
        completion_rate = NEUTRAL_SCORE
        overdue_rate = 0

    total_projects = len(projects)
    if total_projects:
        active_rate = sum(1 for p in projects if p.status == "active") / total_projects * 100
        avg_progress = sum(p.progress or 0 for p in projects) / total_projects
    else:
        active_rate = NEUTRAL_SCORE
        avg_progress = 0

    score = (
        completion_rate * 0.4
        + active_rate * 0.3
        + avg_progress * 0.2
        - overdue_rate * 0.1
    )
    return _clamp(score)


def health_trend(score: int) -> str:
    if score >= 70:
        return "up"
    if score < 50:
        return "down"
    return "stable"


def productivity_index(tasks: list[Task], now: datetime | None = None) -> int:
    """completion + 0.5 in-progress + 0.2 on-time - 0.4 overdue (all as % of tasks)."""
    now = now or datetime.now()
    if not tasks:
        return NEUTRAL_SCORE

    total = len(tasks)
    completed = sum(1 for t in tasks if is_complete(t))
    in_progress = sum(1 for t in tasks if t.status == "in-progress")
    overdue = sum(1 for t in tasks if is_overdue(t, now))
    on_time = sum(
        1
        for t in tasks
        if t.due_date is not None
        and t.due_date >= now
        and t.status in ("complete", "in-progress")
    )

    score = (
        completed / total * 100
        + in_progress / total * 100 * 0.5
        + on_time / total * 100 * 0.2
        - overdue / total * 100 * 0.4
    )
    return _clamp(score)
