"""MCP prompt templates for common workflows."""

from workspace_metrics.mcp.server import mcp


@mcp.prompt()
def workspace_health_report(user_id: str = "default-user-id") -> str:
    """Generate a prompt for a workspace health report."""
    return (
        f"Please write a health report for the workspace as seen by '{user_id}'.\n\n"
        f"Use the get_dashboard tool, then provide:\n"
        f"1. The health score and its trend, and what drives it\n"
        f"2. Overdue tasks and tasks due this week\n"
        f"3. Budget utilization, and any project spending past its budget\n"
        f"4. Active sprints and how far along they are\n"
        f"5. Any sections reported as degraded"
    )


@mcp.prompt()
def monthly_review(period: str = "month") -> str:
    """Generate a prompt to review task throughput over time."""
    return (
        f"Please review task throughput for the '{period}' period.\n\n"
        f"Use get_monthly_overview with period='{period}' and get_project_statistics, then:\n"
        f"1. Describe how created and completed task counts moved month to month\n"
        f"2. Compare the burn-down against the ideal line\n"
        f"3. Point out months with unusually low completion"
    )
