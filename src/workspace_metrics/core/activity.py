"""Activity feed and per-user contribution scores."""

import asyncio

from workspace_metrics.core.aggregates import count_by
from workspace_metrics.core.ports import WorkspaceStore
from workspace_metrics.core.projections import iso
from workspace_metrics.db.models import Notification, Task, User

ACTIVITY_KINDS = {
    "task": "task_created",
    "task_created": "task_created",
    "task_completed": "task_completed",
    "comment": "comment_added",
    "project": "project_created",
}
DEFAULT_ACTIVITY_KIND = "task_updated"

UNKNOWN_PROJECT = "Unknown Project"
UNKNOWN_TASK = "Unknown Task"
UNKNOWN_USER = "Unknown User"

POINTS_PER_COMPLETED = 5
POINTS_PER_CREATED = 3
POINTS_PER_COMMENT = 1


def activity_kind(notification_type: str | None) -> str:
    return ACTIVITY_KINDS.get(notification_type or "", DEFAULT_ACTIVITY_KIND)


def _distinct(values) -> list[str]:
    return list(dict.fromkeys(v for v in values if v))


async def _none() -> list:
    return []


async def activity_feed(store: WorkspaceStore, user_id: str, limit: int = 20) -> list[dict]:
    """The user's latest notifications, newest first, with names resolved.

    Referenced projects, tasks and the user are fetched with one batched
    lookup each, issued together. References that no longer resolve get
    placeholder labels.
    """
    notifications = await store.find_notifications(user_id, limit=limit)
    if not notifications:
        return []

    project_ids = _distinct(n.project_id for n in notifications)
    task_ids = _distinct(n.task_id for n in notifications)
    user_ids = _distinct(n.user_id for n in notifications)

    projects, tasks, users = await asyncio.gather(
        store.find_projects(ids=project_ids) if project_ids else _none(),
        store.find_tasks(ids=task_ids) if task_ids else _none(),
        store.find_users(ids=user_ids) if user_ids else _none(),
    )
    project_names = {p.id: p.name for p in projects}
    task_titles = {t.id: t.title for t in tasks}
    users_by_id = {u.id: u for u in users}

    return [
        _activity_entry(n, project_names, task_titles, users_by_id.get(n.user_id))
        for n in notifications
    ]


def _activity_entry(
    notification: Notification,
    project_names: dict[str, str],
    task_titles: dict[str, str],
    user: User | None,
) -> dict:
    entry = {
        "id": notification.id,
        "user_id": notification.user_id,
        "user_name": (user.name if user else None) or UNKNOWN_USER,
        "user_avatar": user.avatar if user else None,
        "type": activity_kind(notification.type),
        "description": notification.message or "",
        "project_id": notification.project_id,
        "project_name": None,
        "task_id": notification.task_id,
        "task_title": None,
        "created_at": iso(notification.created_at),
        "updated_at": iso(notification.updated_at),
    }
    if notification.project_id:
        entry["project_name"] = project_names.get(notification.project_id) or UNKNOWN_PROJECT
    if notification.task_id:
        entry["task_title"] = task_titles.get(notification.task_id) or UNKNOWN_TASK
    return entry


def contribution_points(completed: int, created: int, comments: int) -> int:
    return (
        completed * POINTS_PER_COMPLETED
        + created * POINTS_PER_CREATED
        + comments * POINTS_PER_COMMENT
    )


def user_contributions(
    tasks: list[Task], users: list[User], comment_counts: dict[str, int]
) -> list[dict]:
    """Completed, created and commented counts per user, with total points.

    ``comment_counts`` is the per-author aggregate; comments are never
    scanned here.
    """
    completed_by = count_by(
        (t for t in tasks if t.status == "complete"), lambda t: list(set(t.assignee_ids))
    )
    created_by = count_by(tasks, lambda t: t.created_by_id)

    contributions = []
    for user in users:
        completed = completed_by.get(user.id, 0)
        created = created_by.get(user.id, 0)
        comments = comment_counts.get(user.id, 0)
        contributions.append({
            "user_id": user.id,
            "user_name": user.name or "Unknown",
            "user_avatar": user.avatar,
            "tasks_completed": completed,
            "tasks_created": created,
            "comments_added": comments,
            "total_points": contribution_points(completed, created, comments),
        })
    return contributions
