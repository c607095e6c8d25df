"""Grouped rollups: sums and counts keyed by a foreign key.

Every metric that needs "total per project" or "count per sprint" goes
through here so that it costs one aggregate query, not one query per
parent record. Absent keys are never an error; callers read maps with
``.get(key, 0)``.
"""

import math
from collections import defaultdict
from collections.abc import Callable, Iterable
from decimal import Decimal
from typing import Any

from workspace_metrics.core.ports import Row, WorkspaceStore


def to_number(value: Any) -> float:
    """Coerce a stored amount to a float. Anything unparseable counts as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def to_count(value: Any) -> int:
    return int(to_number(value))


def round_half_up(value: float, digits: int = 0) -> float:
    """Round .5 upwards. The builtin ``round`` rounds half to even."""
    factor = 10 ** digits
    rounded = math.floor(value * factor + 0.5) / factor
    return int(rounded) if digits == 0 else rounded


def sum_rows(rows: Iterable[Row], value: str = "total", key: str = "key") -> dict[Any, float]:
    """Fold raw ``{key, total}`` rows into a map. Repeated keys accumulate."""
    totals: dict[Any, float] = defaultdict(float)
    for row in rows:
        totals[row.get(key)] += to_number(row.get(value))
    return dict(totals)


def count_rows(
    rows: Iterable[Row], fields: tuple[str, ...] = ("count",), key: str = "key"
) -> dict[Any, dict[str, int]]:
    """Fold raw count rows into ``{key: {field: n}}``. Missing fields are 0."""
    counts: dict[Any, dict[str, int]] = {}
    for row in rows:
        entry = counts.setdefault(row.get(key), {f: 0 for f in fields})
        for f in fields:
            entry[f] += to_count(row.get(f))
    return counts


def count_by(records: Iterable, key: Callable[[Any], Any]) -> dict[Any, int]:
    """Count records per key. ``key`` may return a list to count a record
    under several keys (e.g. every assignee of a task)."""
    counts: dict[Any, int] = defaultdict(int)
    for record in records:
        k = key(record)
        if isinstance(k, (list, tuple, set, frozenset)):
            for item in k:
                counts[item] += 1
        else:
            counts[k] += 1
    return dict(counts)


def sum_by(
    records: Iterable, key: Callable[[Any], Any], value: Callable[[Any], Any]
) -> dict[Any, float]:
    totals: dict[Any, float] = defaultdict(float)
    for record in records:
        totals[key(record)] += to_number(value(record))
    return dict(totals)


async def grouped_sum(
    store: WorkspaceStore, table: str, group_key: str, column: str = "amount"
) -> dict[Any, float]:
    """One server-side ``SUM(column) GROUP BY group_key`` folded into a map."""
    return sum_rows(await store.grouped_sum(table, group_key, column))


async def grouped_count(
    store: WorkspaceStore,
    table: str,
    group_key: str,
    keys: Iterable[str] | None = None,
    count_when: dict[str, Any] | None = None,
) -> dict[Any, dict[str, int]]:
    """One server-side ``COUNT(*) GROUP BY group_key``.

    With ``count_when`` each entry also carries ``matched``: the number of
    rows in the group satisfying every ``column == value`` condition.
    """
    rows = await store.grouped_count(table, group_key, keys=keys, count_when=count_when)
    fields = ("count", "matched") if count_when else ("count",)
    return count_rows(rows, fields)
