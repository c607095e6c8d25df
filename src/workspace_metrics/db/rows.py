"""Conversion between SQLite rows and model dataclasses."""

import sqlite3
from datetime import datetime

from workspace_metrics.db.models import (
    Budget,
    Comment,
    Cost,
    Expense,
    Notification,
    Project,
    Sprint,
    Task,
    User,
)


def parse_dt(val: str | datetime | None) -> datetime | None:
    """Parse a stored timestamp into a naive local datetime.

    Malformed values are treated as missing.
    """
    if val is None or val == "":
        return None
    if isinstance(val, datetime):
        dt = val
    else:
        try:
            dt = datetime.fromisoformat(str(val).replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def format_dt(val: datetime | None) -> str | None:
    if val is None:
        return None
    return val.isoformat(sep=" ", timespec="seconds")


def row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        email=row["email"] or "",
        avatar=row["avatar"],
        role=row["role"] or "member",
        status=row["status"] or "offline",
        created_at=parse_dt(row["created_at"]),
        updated_at=parse_dt(row["updated_at"]),
    )


def row_to_project(row: sqlite3.Row, member_ids: list[str] | None = None) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        description=row["description"] or "",
        status=row["status"],
        progress=row["progress"] or 0,
        color=row["color"],
        icon=row["icon"],
        owner_id=row["owner_id"],
        start_date=parse_dt(row["start_date"]),
        end_date=parse_dt(row["end_date"]),
        member_ids=member_ids or [],
        created_at=parse_dt(row["created_at"]),
        updated_at=parse_dt(row["updated_at"]),
    )


def row_to_sprint(row: sqlite3.Row) -> Sprint:
    return Sprint(
        id=row["id"],
        name=row["name"],
        project_id=row["project_id"],
        start_date=parse_dt(row["start_date"]),
        end_date=parse_dt(row["end_date"]),
        status=row["status"],
        goal=row["goal"] or "",
        task_count=row["task_count"] or 0,
        completed_task_count=row["completed_task_count"] or 0,
        created_at=parse_dt(row["created_at"]),
        updated_at=parse_dt(row["updated_at"]),
    )


def row_to_task(row: sqlite3.Row, assignee_ids: list[str] | None = None) -> Task:
    return Task(
        id=row["id"],
        title=row["title"],
        description=row["description"] or "",
        status=row["status"],
        priority=row["priority"] or "medium",
        project_id=row["project_id"],
        sprint_id=row["sprint_id"],
        created_by_id=row["created_by_id"],
        due_date=parse_dt(row["due_date"]),
        start_date=parse_dt(row["start_date"]),
        estimated_cost=row["estimated_cost"],
        assignee_ids=assignee_ids or [],
        created_at=parse_dt(row["created_at"]),
        updated_at=parse_dt(row["updated_at"]),
    )


def row_to_comment(row: sqlite3.Row) -> Comment:
    return Comment(
        id=row["id"],
        task_id=row["task_id"],
        author_id=row["author_id"],
        text=row["text"],
        created_at=parse_dt(row["created_at"]),
    )


def row_to_budget(row: sqlite3.Row) -> Budget:
    return Budget(
        id=row["id"],
        name=row["name"],
        amount=row["amount"],
        currency=row["currency"],
        project_id=row["project_id"],
        start_date=parse_dt(row["start_date"]),
        end_date=parse_dt(row["end_date"]),
    )


def row_to_cost(row: sqlite3.Row) -> Cost:
    return Cost(
        id=row["id"],
        name=row["name"],
        amount=row["amount"],
        currency=row["currency"],
        category=row["category"],
        project_id=row["project_id"],
        task_id=row["task_id"],
        date=parse_dt(row["date"]),
    )


def row_to_expense(row: sqlite3.Row) -> Expense:
    return Expense(
        id=row["id"],
        name=row["name"],
        amount=row["amount"],
        currency=row["currency"],
        project_id=row["project_id"],
        start_date=parse_dt(row["start_date"]),
    )


def row_to_notification(row: sqlite3.Row) -> Notification:
    return Notification(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"] or "",
        message=row["message"] or "",
        type=row["type"] or "info",
        read=bool(row["read"]),
        project_id=row["project_id"],
        task_id=row["task_id"],
        created_at=parse_dt(row["created_at"]),
        updated_at=parse_dt(row["updated_at"]),
    )
