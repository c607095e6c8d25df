"""CLI entry point for workspace metrics."""

import asyncio
import json
import logging
import sqlite3
import sys
from contextlib import contextmanager

import click

from workspace_metrics.config import get_config
from workspace_metrics.core.dashboard import (
    DashboardUnavailable,
    compute_dashboard,
    compute_monthly_overview,
    compute_project_statistics,
    compute_sprint_sync,
)
from workspace_metrics.core.statistics import PRIORITIES, STATUSES
from workspace_metrics.db import records
from workspace_metrics.db.engine import get_db, init_db
from workspace_metrics.db.store import SqliteStore


def _get_store() -> SqliteStore:
    config = get_config()
    init_db(config.db_path).close()
    return SqliteStore(config.db_path)


DATE = click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%d %H:%M:%S"])


@contextmanager
def _writing():
    """Open the database for a write command. Constraint violations exit 1."""
    config = get_config()
    with get_db(config.db_path) as db:
        try:
            yield db
        except sqlite3.IntegrityError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)


def _run(coro):
    try:
        return asyncio.run(coro)
    except DashboardUnavailable as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log engine activity to stderr")
def main(verbose):
    """wm - Workspace Metrics CLI"""
    config = get_config()
    level = logging.INFO if verbose else getattr(logging, config.log_level, logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@main.command("init")
def init_command():
    """Create the database and its tables."""
    config = get_config()
    with get_db(config.db_path):
        click.echo(f"Database ready: {config.db_path}")


# ── Dashboard Commands ───────────────────────────────────────────────────────


@main.command("dashboard")
@click.option("--user", "user_id", default="default-user-id", help="User whose activity to show")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
def dashboard_command(user_id, json_output):
    """Show the workspace dashboard."""
    config = get_config()
    result = _run(
        compute_dashboard(
            _get_store(),
            user_id,
            activity_limit=config.activity_limit,
            currency=config.currency,
        )
    )

    if json_output:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    overview = result.workspace_overview
    trend_icons = {"up": "↑", "down": "↓", "stable": "→"}
    click.echo("Workspace")
    click.echo(f"  Projects: {overview['total_projects']}")
    click.echo(f"  Active sprints: {overview['active_sprints']}")
    click.echo(f"  Team members: {overview['team_members']}")
    click.echo(
        f"  Health: {overview['health_score']} "
        f"{trend_icons.get(overview['health_trend'], '?')} ({overview['health_trend']})"
    )
    click.echo(f"  Productivity: {result.task_insights['productivity_index']}")

    money = result.budget_cost_metrics
    click.echo("Budget")
    click.echo(f"  Total: {money['total_budget']:.2f}  Spent: {money['total_spent']:.2f}  "
               f"Remaining: {money['remaining_budget']:.2f} ({money['budget_utilization']}%)")
    for row in money["project_budgets"]:
        click.echo(f"    {row['project_name']}: {row['spent']:.2f} / {row['budget']:.2f}")

    if result.sprints:
        click.echo("Sprints")
        for sprint in result.sprints:
            click.echo(
                f"  {sprint['name']}: {sprint['completed_task_count']}/{sprint['task_count']} done"
            )

    if result.user_activity:
        click.echo("Recent activity")
        for entry in result.user_activity[:5]:
            click.echo(f"  [{entry['type']}] {entry['description']}")

    if result.degraded:
        click.echo(f"Unavailable sections: {', '.join(result.degraded)}", err=True)


@main.command("stats")
@click.option("--project", default=None, help="Project ID (default: whole workspace)")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
def stats_command(project, json_output):
    """Show task statistics."""
    stats = _run(compute_project_statistics(_get_store(), project))

    if json_output:
        click.echo(json.dumps(stats, indent=2))
        return

    click.echo(f"Tasks: {stats['total_tasks']} ({stats['progress_percentage']}% progress)")
    for status, count in stats["task_distribution"].items():
        click.echo(f"  {status}: {count}")
    click.echo("Priorities:")
    for priority, count in stats["priority_analysis"].items():
        click.echo(f"  {priority}: {count}")


@main.command("overview")
@click.option("--user", "user_id", default="default-user-id")
@click.option(
    "--period",
    type=click.Choice(["week", "month", "year"]),
    default="month",
    help="Number of months to show: 1, 5 or 12",
)
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
def overview_command(user_id, period, json_output):
    """Show monthly task totals."""
    months = _run(compute_monthly_overview(_get_store(), user_id, period))

    if json_output:
        click.echo(json.dumps(months, indent=2))
        return

    if not months:
        click.echo("No overview data.")
        return

    for m in months:
        marker = "*" if m["is_highlighted"] else " "
        click.echo(f" {marker} {m['month']}: {m['completed']}/{m['total']} completed")


# ── Sprint Commands ──────────────────────────────────────────────────────────


@main.group("sprints")
def sprints_group():
    """Sprint maintenance."""
    pass


@sprints_group.command("sync")
@click.option("--status", default=None, help="Only sprints with this status")
def sprints_sync(status):
    """Reconcile cached sprint task counters."""
    sprints = _run(compute_sprint_sync(_get_store(), status))
    if not sprints:
        click.echo("No sprints found.")
        return
    for sprint in sprints:
        click.echo(
            f"  {sprint.id}: {sprint.completed_task_count}/{sprint.task_count} tasks complete"
        )


@sprints_group.command("add")
@click.argument("name")
@click.option("--project", default=None, help="Project ID")
@click.option("--id", "sprint_id", default=None, help="Sprint ID (default: slug of the name)")
@click.option(
    "--status", type=click.Choice(["planned", "active", "completed"]), default="planned"
)
@click.option("--start", type=DATE, default=None, help="Start date (YYYY-MM-DD)")
@click.option("--end", type=DATE, default=None, help="End date (YYYY-MM-DD)")
@click.option("--goal", default="", help="Sprint goal")
def sprints_add(name, project, sprint_id, status, start, end, goal):
    """Create a sprint."""
    with _writing() as db:
        sprint = records.create_sprint(
            db, name, project, sprint_id=sprint_id, status=status,
            start_date=start, end_date=end, goal=goal,
        )
        click.echo(f"Created sprint: {sprint.id} ({sprint.status})")


# ── Record Commands ──────────────────────────────────────────────────────────


@main.group("user")
def user_group():
    """Manage users."""
    pass


@user_group.command("add")
@click.argument("user_id")
@click.argument("name")
@click.option("--email", default="", help="Email address")
@click.option("--role", default="member", help="Role in the workspace")
@click.option("--status", default="offline", help="Presence (online, offline, ...)")
def user_add(user_id, name, email, role, status):
    """Create a user."""
    with _writing() as db:
        user = records.create_user(db, user_id, name, email=email, role=role, status=status)
        click.echo(f"Created user: {user.id} ({user.name})")


@main.group("project")
def project_group():
    """Manage projects."""
    pass


@project_group.command("add")
@click.argument("name")
@click.option("--id", "project_id", default=None, help="Project ID (default: slug of the name)")
@click.option(
    "--status", type=click.Choice(["active", "on-hold", "archived"]), default="active"
)
@click.option("--progress", type=click.IntRange(0, 100), default=0, help="Progress 0-100")
@click.option("--description", "-d", default="", help="Project description")
@click.option("--member", "members", multiple=True, help="Member user ID (repeatable)")
def project_add(name, project_id, status, progress, description, members):
    """Create a project."""
    with _writing() as db:
        project = records.create_project(
            db, name, project_id=project_id, status=status, progress=progress,
            description=description, member_ids=list(members),
        )
        click.echo(f"Created project: {project.id} ({project.name})")
        if project.member_ids:
            click.echo(f"  Members: {', '.join(project.member_ids)}")


@main.group("task")
def task_group():
    """Manage tasks."""
    pass


@task_group.command("add")
@click.argument("title")
@click.option("--project", default=None, help="Project ID (omit for a standalone task)")
@click.option("--sprint", default=None, help="Sprint ID")
@click.option("--status", type=click.Choice(STATUSES), default="todo")
@click.option("--priority", "-p", type=click.Choice(PRIORITIES), default="medium")
@click.option("--assignee", "assignees", multiple=True, help="Assignee user ID (repeatable)")
@click.option("--created-by", default=None, help="Creator user ID")
@click.option("--due", type=DATE, default=None, help="Due date (YYYY-MM-DD)")
@click.option("--description", "-d", default="", help="Task description")
def task_add(title, project, sprint, status, priority, assignees, created_by, due, description):
    """Create a task. Sprint counters are fixed by `wm sprints sync`."""
    with _writing() as db:
        task = records.create_task(
            db, title, project, status=status, priority=priority, sprint_id=sprint,
            created_by_id=created_by, assignee_ids=list(assignees), due_date=due,
            description=description,
        )
        click.echo(f"Created task: {task.id}")
        click.echo(f"  Status: {task.status}  Priority: {task.priority}")


@task_group.command("status")
@click.argument("task_id")
@click.argument("status", type=click.Choice(STATUSES))
def task_status(task_id, status):
    """Change a task's status."""
    with _writing() as db:
        task = records.update_task_status(db, task_id, status)
        if not task:
            click.echo(f"Task not found: {task_id}", err=True)
            sys.exit(1)
        click.echo(f"Task {task.id}: {task.status}")


@task_group.command("comment")
@click.argument("task_id")
@click.argument("text")
@click.option("--author", required=True, help="Author user ID")
def task_comment(task_id, text, author):
    """Comment on a task."""
    with _writing() as db:
        if not records.get_task(db, task_id):
            click.echo(f"Task not found: {task_id}", err=True)
            sys.exit(1)
        records.add_comment(db, task_id, author, text)
        click.echo(f"Comment added to {task_id}")


@main.group("budget")
def budget_group():
    """Manage budgets."""
    pass


@budget_group.command("add")
@click.argument("name")
@click.argument("amount", type=float)
@click.option("--project", default=None, help="Project ID (omit for a workspace-wide budget)")
def budget_add(name, amount, project):
    """Create a budget."""
    with _writing() as db:
        budget = records.create_budget(
            db, name, amount, project_id=project, currency=get_config().currency
        )
        click.echo(f"Created budget: {budget.name} {budget.amount} {budget.currency}")


@main.group("cost")
def cost_group():
    """Record costs."""
    pass


@cost_group.command("add")
@click.argument("name")
@click.argument("amount", type=float)
@click.option("--project", default=None, help="Project ID")
@click.option("--task", default=None, help="Task ID")
@click.option("--category", default="other", help="Cost category")
@click.option("--date", type=DATE, default=None, help="Date incurred (default: now)")
def cost_add(name, amount, project, task, category, date):
    """Record a cost."""
    with _writing() as db:
        cost = records.record_cost(
            db, name, amount, date=date, project_id=project, task_id=task,
            category=category, currency=get_config().currency,
        )
        click.echo(f"Recorded cost: {cost.name} {cost.amount} on {cost.date:%Y-%m-%d}")


@main.group("expense")
def expense_group():
    """Record expenses."""
    pass


@expense_group.command("add")
@click.argument("name")
@click.argument("amount", type=float)
@click.option("--project", default=None, help="Project ID")
@click.option("--date", type=DATE, default=None, help="Start date (default: now)")
def expense_add(name, amount, project, date):
    """Record an expense."""
    with _writing() as db:
        expense = records.record_expense(
            db, name, amount, start_date=date, project_id=project,
            currency=get_config().currency,
        )
        click.echo(f"Recorded expense: {expense.name} {expense.amount}")


@main.command("notify")
@click.argument("user_id")
@click.argument("message")
@click.option("--type", "kind", default="info", help="task, task_completed, comment, project, ...")
@click.option("--project", default=None, help="Related project ID")
@click.option("--task", default=None, help="Related task ID")
def notify_command(user_id, message, kind, project, task):
    """Add a notification to a user's activity feed."""
    with _writing() as db:
        notification = records.notify(
            db, user_id, message, type=kind, project_id=project, task_id=task
        )
        click.echo(f"Notification {notification.id} sent to {user_id}")


# ── Server Commands ──────────────────────────────────────────────────────────


@main.command("ui")
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to listen on")
def ui_command(host, port):
    """Serve the dashboard JSON API."""
    from workspace_metrics.web.app import run_server

    config = get_config()
    host = host or config.host
    port = port or config.port
    click.echo(f"Serving dashboard API at http://{host}:{port}/api/dashboard")
    run_server(host=host, port=port)


@main.group("mcp")
def mcp_group():
    """MCP server commands."""
    pass


@mcp_group.command("serve")
def mcp_serve():
    """Start the MCP server (stdio transport)."""
    from workspace_metrics.mcp.server import mcp
    from workspace_metrics.mcp import prompts  # noqa: F401 - registers prompts

    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
