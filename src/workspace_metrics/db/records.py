"""Write helpers for seeding workspace records."""

import re
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
from workspace_metrics.db.rows import (
    format_dt,
    row_to_budget,
    row_to_comment,
    row_to_cost,
    row_to_expense,
    row_to_notification,
    row_to_project,
    row_to_sprint,
    row_to_task,
    row_to_user,
)


def slugify(title: str) -> str:
    """Convert a title to a URL-friendly slug."""
    slug = title.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")[:60]


def _unique_id(db: sqlite3.Connection, table: str, base_slug: str) -> str:
    """Generate a unique ID from a slug, appending a number if needed."""
    candidate = base_slug
    i = 2
    while db.execute(f"SELECT 1 FROM {table} WHERE id = ?", (candidate,)).fetchone():
        candidate = f"{base_slug}-{i}"
        i += 1
    return candidate


def _now() -> str:
    return format_dt(datetime.now())


# ── Users & Projects ──────────────────────────────────────────────────────────


def create_user(
    db: sqlite3.Connection,
    user_id: str,
    name: str,
    email: str = "",
    avatar: str | None = None,
    role: str = "member",
    status: str = "offline",
) -> User:
    """Create a new user."""
    db.execute(
        """INSERT INTO users (id, name, email, avatar, role, status)
           VALUES (?, ?, ?, ?, ?, ?)""",
        (user_id, name, email, avatar, role, status),
    )
    db.commit()
    return row_to_user(db.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone())


def create_project(
    db: sqlite3.Connection,
    name: str,
    project_id: str | None = None,
    status: str = "active",
    progress: int = 0,
    description: str = "",
    owner_id: str | None = None,
    member_ids: list[str] | None = None,
    color: str | None = None,
    icon: str | None = None,
) -> Project:
    """Create a new project with optional members."""
    project_id = project_id or _unique_id(db, "projects", slugify(name))
    progress = max(0, min(100, progress))
    db.execute(
        """INSERT INTO projects (id, name, description, status, progress, color, icon, owner_id)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (project_id, name, description, status, progress, color, icon, owner_id),
    )
    for user_id in member_ids or []:
        db.execute(
            "INSERT INTO project_members (project_id, user_id) VALUES (?, ?)",
            (project_id, user_id),
        )
    db.commit()
    row = db.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
    return row_to_project(row, list(member_ids or []))


def create_sprint(
    db: sqlite3.Connection,
    name: str,
    project_id: str | None = None,
    sprint_id: str | None = None,
    status: str = "planned",
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    goal: str = "",
    task_count: int = 0,
    completed_task_count: int = 0,
) -> Sprint:
    """Create a sprint. Counters are stored as given; they may be stale."""
    sprint_id = sprint_id or _unique_id(db, "sprints", slugify(name))
    db.execute(
        """INSERT INTO sprints (id, name, project_id, start_date, end_date, status, goal,
                                task_count, completed_task_count)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            sprint_id, name, project_id, format_dt(start_date), format_dt(end_date),
            status, goal, task_count, completed_task_count,
        ),
    )
    db.commit()
    return row_to_sprint(db.execute("SELECT * FROM sprints WHERE id = ?", (sprint_id,)).fetchone())


# ── Tasks ─────────────────────────────────────────────────────────────────────


def create_task(
    db: sqlite3.Connection,
    title: str,
    project_id: str | None = None,
    task_id: str | None = None,
    status: str = "todo",
    priority: str = "medium",
    sprint_id: str | None = None,
    created_by_id: str | None = None,
    assignee_ids: list[str] | None = None,
    due_date: datetime | None = None,
    estimated_cost: float | None = None,
    created_at: datetime | None = None,
    updated_at: datetime | None = None,
    description: str = "",
) -> Task:
    """Create a new task. Timestamps default to now."""
    task_id = task_id or _unique_id(db, "tasks", slugify(title))
    created = format_dt(created_at) if created_at else _now()
    updated = format_dt(updated_at) if updated_at else created

    db.execute(
        """INSERT INTO tasks (id, title, description, status, priority, project_id, sprint_id,
                              created_by_id, due_date, estimated_cost, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            task_id, title, description, status, priority, project_id, sprint_id,
            created_by_id, format_dt(due_date), estimated_cost, created, updated,
        ),
    )
    for user_id in assignee_ids or []:
        db.execute(
            "INSERT INTO task_assignees (task_id, user_id) VALUES (?, ?)",
            (task_id, user_id),
        )
    db.commit()
    return get_task(db, task_id)


def get_task(db: sqlite3.Connection, task_id: str) -> Task | None:
    """Get a task by ID with its assignees."""
    row = db.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
    if not row:
        return None
    assignees = db.execute(
        "SELECT user_id FROM task_assignees WHERE task_id = ? ORDER BY user_id",
        (task_id,),
    ).fetchall()
    return row_to_task(row, [a["user_id"] for a in assignees])


def update_task_status(
    db: sqlite3.Connection,
    task_id: str,
    status: str,
    updated_at: datetime | None = None,
) -> Task | None:
    """Update a task's status. Sprint counters are left to the synchronizer."""
    if not get_task(db, task_id):
        return None
    db.execute(
        "UPDATE tasks SET status = ?, updated_at = ? WHERE id = ?",
        (status, format_dt(updated_at) if updated_at else _now(), task_id),
    )
    db.commit()
    return get_task(db, task_id)


def add_comment(db: sqlite3.Connection, task_id: str, author_id: str, text: str) -> Comment:
    cur = db.execute(
        "INSERT INTO comments (task_id, author_id, text) VALUES (?, ?, ?)",
        (task_id, author_id, text),
    )
    db.commit()
    return row_to_comment(db.execute("SELECT * FROM comments WHERE id = ?", (cur.lastrowid,)).fetchone())


# ── Money ─────────────────────────────────────────────────────────────────────


def create_budget(
    db: sqlite3.Connection,
    name: str,
    amount,
    project_id: str | None = None,
    currency: str = "USD",
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> Budget:
    """Create a budget."""
    cur = db.execute(
        """INSERT INTO budgets (name, amount, currency, project_id, start_date, end_date)
           VALUES (?, ?, ?, ?, ?, ?)""",
        (name, amount, currency, project_id, format_dt(start_date or datetime.now()), format_dt(end_date)),
    )
    db.commit()
    return row_to_budget(db.execute("SELECT * FROM budgets WHERE id = ?", (cur.lastrowid,)).fetchone())


def record_cost(
    db: sqlite3.Connection,
    name: str,
    amount,
    date: datetime | None = None,
    project_id: str | None = None,
    task_id: str | None = None,
    category: str = "other",
    currency: str = "USD",
) -> Cost:
    """Record a cost incurred on a given date."""
    cur = db.execute(
        """INSERT INTO costs (name, amount, currency, category, project_id, task_id, date)
           VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (name, amount, currency, category, project_id, task_id, format_dt(date or datetime.now())),
    )
    db.commit()
    return row_to_cost(db.execute("SELECT * FROM costs WHERE id = ?", (cur.lastrowid,)).fetchone())


def record_expense(
    db: sqlite3.Connection,
    name: str,
    amount,
    start_date: datetime | None = None,
    project_id: str | None = None,
    currency: str = "USD",
) -> Expense:
    """Record an expense starting on a given date."""
    cur = db.execute(
        """INSERT INTO expenses (name, amount, currency, project_id, start_date)
           VALUES (?, ?, ?, ?, ?)""",
        (name, amount, currency, project_id, format_dt(start_date or datetime.now())),
    )
    db.commit()
    return row_to_expense(db.execute("SELECT * FROM expenses WHERE id = ?", (cur.lastrowid,)).fetchone())


# ── Notifications ─────────────────────────────────────────────────────────────


def notify(
    db: sqlite3.Connection,
    user_id: str,
    message: str,
    type: str = "info",
    title: str = "",
    project_id: str | None = None,
    task_id: str | None = None,
    created_at: datetime | None = None,
) -> Notification:
    """Create a notification for a user."""
    created = format_dt(created_at) if created_at else _now()
    cur = db.execute(
        """INSERT INTO notifications (user_id, title, message, type, project_id, task_id,
                                      created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (user_id, title, message, type, project_id, task_id, created, created),
    )
    db.commit()
    row = db.execute("SELECT * FROM notifications WHERE id = ?", (cur.lastrowid,)).fetchone()
    return row_to_notification(row)
