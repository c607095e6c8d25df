"""MCP server exposing the workspace metrics engine."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from mcp.server.fastmcp import Context, FastMCP

from workspace_metrics.config import Config, get_config
from workspace_metrics.core.dashboard import (
    DashboardUnavailable,
    compute_dashboard,
    compute_monthly_overview,
    compute_project_statistics,
    compute_sprint_sync,
)
from workspace_metrics.core.projections import sprint_view
from workspace_metrics.db.engine import init_db
from workspace_metrics.db.store import SqliteStore


@dataclass
class AppContext:
    store: SqliteStore
    config: Config


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Make sure the database exists, then hand tools a store."""
    config = get_config()
    init_db(config.db_path).close()
    yield AppContext(store=SqliteStore(config.db_path), config=config)


mcp = FastMCP("workspace-metrics", lifespan=app_lifespan)


def _ctx(ctx: Context) -> AppContext:
    """Extract AppContext from MCP Context."""
    return ctx.request_context.lifespan_context


# ── Dashboard Tools ───────────────────────────────────────────────────────────


@mcp.tool()
async def get_dashboard(ctx: Context, user_id: str = "default-user-id") -> dict:
    """Get the full workspace dashboard: health, productivity, budgets, sprints and activity."""
    app = _ctx(ctx)
    try:
        result = await compute_dashboard(
            app.store,
            user_id,
            activity_limit=app.config.activity_limit,
            currency=app.config.currency,
        )
    except DashboardUnavailable as e:
        return {"error": str(e)}
    return result.to_dict()


@mcp.tool()
async def get_project_statistics(ctx: Context, project_id: str | None = None) -> dict:
    """Get task counts, progress, priority mix and a 14-day burn-down for a project (or all)."""
    app = _ctx(ctx)
    try:
        return await compute_project_statistics(app.store, project_id)
    except DashboardUnavailable as e:
        return {"error": str(e)}


@mcp.tool()
async def get_monthly_overview(
    ctx: Context, user_id: str = "default-user-id", period: str = "month"
) -> dict:
    """Get monthly task totals. Period: week (1 month), month (5 months) or year (12 months)."""
    app = _ctx(ctx)
    try:
        months = await compute_monthly_overview(app.store, user_id, period)
    except ValueError as e:
        return {"error": str(e)}
    return {"period": period, "months": months}


@mcp.tool()
async def sync_sprints(ctx: Context, status: str | None = None) -> dict:
    """Recount tasks per sprint and fix stale sprint counters. Optionally filter by status."""
    app = _ctx(ctx)
    try:
        sprints = await compute_sprint_sync(app.store, status)
    except DashboardUnavailable as e:
        return {"error": str(e)}
    return {"sprints": [sprint_view(s) for s in sprints]}
