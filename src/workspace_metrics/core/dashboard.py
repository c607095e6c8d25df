"""Composite dashboard assembly.

``compute_dashboard`` fans out to the store, reconciles sprint counters,
and runs every metric section independently: one failing section is
logged and replaced by its default, and its name is listed in
``CompositeResult.degraded``. Only the project/task reads that everything
depends on are fatal; they raise ``DashboardUnavailable``.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime

from workspace_metrics.core.activity import activity_feed, user_contributions
from workspace_metrics.core.aggregates import count_by, grouped_count
from workspace_metrics.core.finance import budget_cost_metrics, empty_budget_metrics
from workspace_metrics.core.ports import WorkspaceStore
from workspace_metrics.core.projections import member_view, project_view, sprint_view
from workspace_metrics.core.results import SectionResult, capture, run_section
from workspace_metrics.core.scoring import (
    NEUTRAL_SCORE,
    health_score,
    health_trend,
    is_complete,
)
from workspace_metrics.core.sprints import reconcile_sprints, sync_sprint_counters
from workspace_metrics.core.statistics import (
    project_statistics,
    task_insights,
    timeline_snapshot,
)
from workspace_metrics.core.timeseries import monthly_overview, months_for_period
from workspace_metrics.db.models import Project, Sprint, Task, User

logger = logging.getLogger(__name__)


class DashboardUnavailable(Exception):
    """Raised when the reads every dashboard section depends on fail."""


@dataclass
class CompositeResult:
    workspace_overview: dict
    project_statistics: dict
    task_insights: dict
    timeline_snapshot: dict
    user_activity: list[dict]
    user_contributions: list[dict]
    budget_cost_metrics: dict
    projects: list[dict]
    sprints: list[dict]
    team_members: list[dict]
    degraded: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


async def _load_projects_and_tasks(
    store: WorkspaceStore, project_id: str | None = None
) -> tuple[list[Project], list[Task]]:
    try:
        projects, tasks = await asyncio.gather(
            store.find_projects(), store.find_tasks(project_id=project_id)
        )
    except Exception as e:
        raise DashboardUnavailable(f"Could not load projects and tasks: {e}") from e
    return projects, tasks


async def _comment_counts(store: WorkspaceStore) -> dict[str, int]:
    counts = await grouped_count(store, "comments", "author_id")
    return {author: c["count"] for author, c in counts.items() if author}


def _workspace_overview(
    projects: list[Project],
    tasks: list[Task],
    sprints: list[Sprint],
    users: list[User],
    now: datetime,
) -> dict:
    score = health_score(projects, tasks, now)
    return {
        "total_projects": len(projects),
        "active_sprints": len(sprints),
        "team_members": len(users),
        "health_score": score,
        "health_trend": health_trend(score),
    }


def _project_views(
    projects: list[Project], tasks: list[Task], budget_rows: list[dict], currency: str
) -> list[dict]:
    totals = count_by(tasks, lambda t: t.project_id)
    completed = count_by((t for t in tasks if is_complete(t)), lambda t: t.project_id)
    budgets = {row["project_id"]: row for row in budget_rows}
    return [
        project_view(
            p,
            task_count=totals.get(p.id, 0),
            completed_task_count=completed.get(p.id, 0),
            budget_row=budgets.get(p.id),
            currency=currency,
        )
        for p in projects
    ]


def _member_views(users: list[User], tasks: list[Task]) -> list[dict]:
    assigned = count_by(tasks, lambda t: list(set(t.assignee_ids)))
    return [member_view(u, assigned.get(u.id, 0)) for u in users]


async def compute_dashboard(
    store: WorkspaceStore,
    user_id: str,
    now: datetime | None = None,
    activity_limit: int = 20,
    currency: str = "USD",
) -> CompositeResult:
    """Assemble the full workspace dashboard for ``user_id``."""
    now = now or datetime.now()

    (projects, tasks), comments, active_sprints, team = await asyncio.gather(
        _load_projects_and_tasks(store),
        run_section("comment_counts", _comment_counts(store), {}),
        run_section("sprints", store.find_sprints(status="active"), []),
        run_section("team_members", store.find_users(), []),
    )
    sprints = await sync_sprint_counters(store, active_sprints.value)
    users = team.value

    activity, budgets = await asyncio.gather(
        run_section("user_activity", activity_feed(store, user_id, activity_limit), []),
        run_section(
            "budget_cost_metrics",
            budget_cost_metrics(store, projects, now),
            empty_budget_metrics(now),
        ),
    )

    overview = capture(
        "workspace_overview",
        _workspace_overview, projects, tasks, sprints, users, now,
        default={
            "total_projects": len(projects),
            "active_sprints": len(sprints),
            "team_members": len(users),
            "health_score": NEUTRAL_SCORE,
            "health_trend": health_trend(NEUTRAL_SCORE),
        },
    )
    statistics = capture(
        "project_statistics", project_statistics, tasks, now,
        default=project_statistics([], now),
    )
    insights = capture(
        "task_insights", task_insights, tasks, now,
        default={
            "overdue_tasks": [],
            "tasks_due_this_week": [],
            "recently_completed": [],
            "productivity_index": NEUTRAL_SCORE,
        },
    )
    timeline = capture(
        "timeline_snapshot", timeline_snapshot, projects, tasks, sprints, now,
        default={"upcoming_deadlines": [], "blocked_tasks": []},
    )
    contributions = capture(
        "user_contributions", user_contributions, tasks, users, comments.value, default=[]
    )
    project_cards = capture(
        "projects", _project_views, projects, tasks, budgets.value["project_budgets"], currency,
        default=[],
    )
    sprint_cards = capture("sprint_cards", lambda: [sprint_view(s) for s in sprints], default=[])
    member_cards = capture("member_cards", _member_views, users, tasks, default=[])

    sections: list[SectionResult] = [
        comments, active_sprints, team, activity, budgets, overview, statistics,
        insights, timeline, contributions, project_cards, sprint_cards, member_cards,
    ]
    degraded = [s.name for s in sections if not s.ok]
    if degraded:
        logger.warning("Dashboard for %s degraded: %s", user_id, ", ".join(degraded))

    return CompositeResult(
        workspace_overview=overview.value,
        project_statistics=statistics.value,
        task_insights=insights.value,
        timeline_snapshot=timeline.value,
        user_activity=activity.value,
        user_contributions=contributions.value,
        budget_cost_metrics=budgets.value,
        projects=project_cards.value,
        sprints=sprint_cards.value,
        team_members=member_cards.value,
        degraded=degraded,
    )


async def compute_project_statistics(
    store: WorkspaceStore, project_id: str | None = None, now: datetime | None = None
) -> dict:
    """Task statistics for one project, or for the whole workspace."""
    try:
        tasks = await store.find_tasks(project_id=project_id)
    except Exception as e:
        raise DashboardUnavailable(f"Could not load tasks: {e}") from e
    return project_statistics(tasks, now)


async def compute_monthly_overview(
    store: WorkspaceStore,
    user_id: str,
    period: str = "month",
    now: datetime | None = None,
) -> list[dict]:
    """Monthly task overview. Read failures give ``[]`` rather than an error."""
    months_for_period(period)
    try:
        projects, tasks = await asyncio.gather(store.find_projects(), store.find_tasks())
    except Exception:
        logger.exception("Monthly overview for %s could not load data", user_id)
        return []
    return monthly_overview(projects, tasks, period, now)


async def compute_sprint_sync(store: WorkspaceStore, status: str | None = None) -> list[Sprint]:
    """Reconcile counters for all sprints (or those with ``status``)."""
    try:
        return await reconcile_sprints(store, status=status)
    except Exception as e:
        raise DashboardUnavailable(f"Could not load sprints: {e}") from e
