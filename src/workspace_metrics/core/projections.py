"""Display shapes for workspace entities.

Pure mappings from model dataclasses to JSON-safe dicts. The metrics
modules hand entities to these functions at the edge; nothing here
queries or aggregates.
"""

from datetime import datetime

from workspace_metrics.core.aggregates import to_number
from workspace_metrics.db.models import Project, Sprint, Task, User

DEFAULT_PROJECT_COLOR = "#6366f1"
DEFAULT_PROJECT_ICON = "folder"


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def task_view(task: Task) -> dict:
    return {
        "id": task.id,
        "title": task.title or "",
        "description": task.description or "",
        "status": task.status or "todo",
        "priority": task.priority or "medium",
        "project_id": task.project_id,
        "sprint_id": task.sprint_id,
        "assignees": list(task.assignee_ids),
        "due_date": iso(task.due_date),
        "start_date": iso(task.start_date),
        "estimated_cost": to_number(task.estimated_cost),
        "created_at": iso(task.created_at),
        "updated_at": iso(task.updated_at),
    }


def budget_view(budget_row: dict | None, currency: str = "USD") -> dict:
    """Budget block of a project card from its rollup row (if any)."""
    if not budget_row:
        return {"total": 0, "currency": currency, "spent": 0, "remaining": 0}
    return {
        "total": budget_row["budget"],
        "currency": currency,
        "spent": budget_row["spent"],
        "remaining": budget_row["remaining"],
    }


def project_view(
    project: Project,
    task_count: int = 0,
    completed_task_count: int = 0,
    budget_row: dict | None = None,
    currency: str = "USD",
) -> dict:
    return {
        "id": project.id,
        "name": project.name or "",
        "description": project.description or "",
        "status": project.status or "active",
        "progress": project.progress or 0,
        "task_count": task_count,
        "completed_task_count": completed_task_count,
        "team_member_ids": list(project.member_ids),
        "color": project.color or DEFAULT_PROJECT_COLOR,
        "icon": project.icon or DEFAULT_PROJECT_ICON,
        "budget": budget_view(budget_row, currency),
        "start_date": iso(project.start_date),
        "end_date": iso(project.end_date),
        "created_at": iso(project.created_at),
        "updated_at": iso(project.updated_at),
    }


def sprint_view(sprint: Sprint) -> dict:
    return {
        "id": sprint.id,
        "name": sprint.name or "",
        "project_id": sprint.project_id,
        "start_date": iso(sprint.start_date),
        "end_date": iso(sprint.end_date),
        "status": sprint.status or "active",
        "goal": sprint.goal or "",
        "task_count": sprint.task_count or 0,
        "completed_task_count": sprint.completed_task_count or 0,
    }


def member_view(user: User, task_count: int = 0) -> dict:
    # Presence "online" is shown as an active member.
    status = "active" if user.status == "online" else (user.status or "inactive")
    return {
        "id": user.id,
        "name": user.name or "Unknown",
        "email": user.email or "",
        "avatar": user.avatar,
        "role": user.role or "member",
        "status": status,
        "task_count": task_count,
    }


def deadline_view(
    id: str,
    title: str,
    date: datetime,
    kind: str,
    project_id: str | None,
    project_name: str,
    task_id: str | None = None,
) -> dict:
    view = {
        "id": id,
        "title": title,
        "date": iso(date),
        "type": kind,
        "project_id": project_id,
        "project_name": project_name,
    }
    if task_id:
        view["task_id"] = task_id
    return view
