"""Task statistics, burn-down, insights and the deadline timeline."""

from datetime import datetime, timedelta

from workspace_metrics.core.aggregates import count_by, round_half_up
from workspace_metrics.core.projections import deadline_view, task_view
from workspace_metrics.core.scoring import is_complete, is_overdue, productivity_index
from workspace_metrics.db.models import Project, Sprint, Task

BURN_DOWN_DAYS = 14
STATUSES = ("todo", "in-progress", "complete", "backlog")
PRIORITIES = ("low", "medium", "high", "urgent")


def burn_down(tasks: list[Task], now: datetime | None = None, days: int = BURN_DOWN_DAYS) -> list[dict]:
    """Open-task count per day over the trailing window, with an ideal line.

    ``remaining`` for a day counts tasks not complete that already existed on
    that day (tasks without a creation date always count). ``ideal`` decays
    linearly from the total task count.
    """
    now = now or datetime.now()
    total = len(tasks)
    open_tasks = [t for t in tasks if not is_complete(t)]

    data = []
    for i in range(days):
        day = now - timedelta(days=days - i)
        remaining = sum(1 for t in open_tasks if t.created_at is None or t.created_at <= day)
        ideal = max(0.0, total - total / days * i)
        data.append({
            "date": day.isoformat(),
            "remaining": remaining,
            "ideal": round_half_up(ideal),
        })
    return data


def project_statistics(tasks: list[Task], now: datetime | None = None) -> dict:
    now = now or datetime.now()
    by_status = count_by(tasks, lambda t: t.status)
    by_priority = count_by(tasks, lambda t: t.priority)

    total = len(tasks)
    completed = by_status.get("complete", 0)
    in_progress = by_status.get("in-progress", 0)
    progress = round_half_up((completed + in_progress * 0.5) / total * 100) if total else 0

    return {
        "total_tasks": total,
        "completed_tasks": completed,
        "in_progress_tasks": in_progress,
        "todo_tasks": by_status.get("todo", 0),
        "progress_percentage": max(0, min(100, progress)),
        "burn_down_data": burn_down(tasks, now),
        "task_distribution": {s: by_status.get(s, 0) for s in STATUSES},
        "priority_analysis": {p: by_priority.get(p, 0) for p in PRIORITIES},
    }


def task_insights(tasks: list[Task], now: datetime | None = None) -> dict:
    now = now or datetime.now()
    next_week = now + timedelta(days=7)

    overdue = [t for t in tasks if is_overdue(t, now)][:10]
    due_this_week = [
        t
        for t in tasks
        if t.due_date is not None and now <= t.due_date <= next_week and not is_complete(t)
    ][:10]
    recently_completed = sorted(
        (t for t in tasks if is_complete(t)),
        key=lambda t: t.updated_at or datetime.min,
        reverse=True,
    )[:5]

    return {
        "overdue_tasks": [task_view(t) for t in overdue],
        "tasks_due_this_week": [task_view(t) for t in due_this_week],
        "recently_completed": [task_view(t) for t in recently_completed],
        "productivity_index": productivity_index(tasks, now),
    }


def timeline_snapshot(
    projects: list[Project],
    tasks: list[Task],
    sprints: list[Sprint],
    now: datetime | None = None,
) -> dict:
    """Upcoming sprint ends and task due dates (max 10), plus urgent todos."""
    now = now or datetime.now()
    names = {p.id: p.name for p in projects}

    deadlines = [
        deadline_view(s.id, s.name, s.end_date, "sprint", s.project_id,
                      names.get(s.project_id, "Unknown"))
        for s in sprints
        if s.end_date is not None and s.end_date > now
    ]
    upcoming_tasks = [t for t in tasks if t.due_date is not None and t.due_date > now][:5]
    deadlines.extend(
        deadline_view(t.id, t.title, t.due_date, "task", t.project_id or "",
                      names.get(t.project_id, "Unknown"), task_id=t.id)
        for t in upcoming_tasks
    )
    deadlines.sort(key=lambda d: d["date"])

    blocked = [t for t in tasks if t.status == "todo" and t.priority == "urgent"][:5]
    return {
        "upcoming_deadlines": deadlines[:10],
        "blocked_tasks": [task_view(t) for t in blocked],
    }
