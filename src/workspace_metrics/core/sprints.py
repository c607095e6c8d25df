"""Keep cached sprint task counters in step with the tasks table.

``Sprint.task_count`` and ``Sprint.completed_task_count`` are denormalized
caches. They are recomputed on read from a single grouped count over tasks
and written back only for sprints whose stored values drifted. Writes set
absolute values, so two concurrent reconciliations converge on the same
row contents.
"""

import asyncio
import logging
from dataclasses import replace

from workspace_metrics.core.aggregates import grouped_count
from workspace_metrics.core.ports import WorkspaceStore
from workspace_metrics.db.models import Sprint

logger = logging.getLogger(__name__)

COMPLETE = "complete"


async def sync_sprint_counters(store: WorkspaceStore, sprints: list[Sprint]) -> list[Sprint]:
    """Return ``sprints`` with true counters, persisting the drifted ones.

    Costs one aggregate query plus one write per drifted sprint. If the
    aggregate query fails the sprints are returned as they were.
    """
    if not sprints:
        return []

    sprint_ids = [s.id for s in sprints]
    try:
        counts = await grouped_count(
            store, "tasks", "sprint_id", keys=sprint_ids, count_when={"status": COMPLETE}
        )
    except Exception:
        logger.warning(
            "Sprint counter aggregate failed for %d sprints; using stored counters",
            len(sprints),
            exc_info=True,
        )
        return list(sprints)

    synced = []
    drifted = []
    for sprint in sprints:
        stats = counts.get(sprint.id, {"count": 0, "matched": 0})
        task_count, completed = stats["count"], stats["matched"]
        if sprint.task_count != task_count or sprint.completed_task_count != completed:
            sprint = replace(sprint, task_count=task_count, completed_task_count=completed)
            drifted.append(sprint)
        synced.append(sprint)

    if drifted:
        results = await asyncio.gather(
            *(
                store.update_sprint_counters(s.id, s.task_count, s.completed_task_count)
                for s in drifted
            ),
            return_exceptions=True,
        )
        for sprint, result in zip(drifted, results):
            if isinstance(result, Exception):
                logger.warning("Could not persist counters for sprint %s: %s", sprint.id, result)
        logger.info("Reconciled counters for %d of %d sprints", len(drifted), len(sprints))

    return synced


async def reconcile_sprints(store: WorkspaceStore, status: str | None = None) -> list[Sprint]:
    """Load sprints (optionally by status) and reconcile their counters."""
    sprints = await store.find_sprints(status=status)
    return await sync_sprint_counters(store, sprints)
