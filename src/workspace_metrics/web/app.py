"""JSON API over the workspace metrics engine."""

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from workspace_metrics.config import get_config
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

DEFAULT_USER = "default-user-id"


def _get_store() -> SqliteStore:
    config = get_config()
    return SqliteStore(config.db_path)


def _unavailable(e: Exception) -> JSONResponse:
    return JSONResponse({"error": str(e)}, status_code=503)


# ── Handlers ──────────────────────────────────────────────────────────────────


async def api_dashboard(request: Request):
    config = get_config()
    user_id = request.query_params.get("user_id", DEFAULT_USER)
    try:
        result = await compute_dashboard(
            _get_store(),
            user_id,
            activity_limit=config.activity_limit,
            currency=config.currency,
        )
    except DashboardUnavailable as e:
        return _unavailable(e)
    return JSONResponse(result.to_dict())


async def api_project_statistics(request: Request):
    project_id = request.query_params.get("project_id")
    try:
        stats = await compute_project_statistics(_get_store(), project_id)
    except DashboardUnavailable as e:
        return _unavailable(e)
    return JSONResponse(stats)


async def api_monthly_overview(request: Request):
    user_id = request.query_params.get("user_id", DEFAULT_USER)
    period = request.query_params.get("period", "month")
    try:
        months = await compute_monthly_overview(_get_store(), user_id, period)
    except ValueError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    return JSONResponse(months)


async def api_sync_sprints(request: Request):
    status = request.query_params.get("status")
    try:
        sprints = await compute_sprint_sync(_get_store(), status)
    except DashboardUnavailable as e:
        return _unavailable(e)
    return JSONResponse([sprint_view(s) for s in sprints])


# ── App ───────────────────────────────────────────────────────────────────────


def create_app() -> Starlette:
    init_db(get_config().db_path).close()
    routes = [
        Route("/api/dashboard", api_dashboard),
        Route("/api/dashboard/statistics", api_project_statistics),
        Route("/api/dashboard/overview", api_monthly_overview),
        Route("/api/sprints/sync", api_sync_sprints, methods=["POST"]),
    ]
    return Starlette(routes=routes)


def run_server(host: str = "127.0.0.1", port: int = 8787):
    app = create_app()
    uvicorn.run(app, host=host, port=port)
