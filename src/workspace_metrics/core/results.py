"""Per-section outcomes for best-effort composition.

A dashboard is assembled from independent sections. Each one is run
through ``run_section`` (awaitables) or ``capture`` (plain calls), which
never raise: a failure is logged and turned into a ``SectionResult``
carrying the section's default value and the error text.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SectionResult(Generic[T]):
    name: str
    value: T
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_section(name: str, awaitable: Awaitable[T], default: T) -> SectionResult[T]:
    try:
        return SectionResult(name, await awaitable)
    except Exception as e:
        logger.exception("Dashboard section %r failed; using default", name)
        return SectionResult(name, default, error=str(e) or type(e).__name__)


def capture(name: str, fn: Callable[..., T], *args: Any, default: T) -> SectionResult[T]:
    try:
        return SectionResult(name, fn(*args))
    except Exception as e:
        logger.exception("Dashboard section %r failed; using default", name)
        return SectionResult(name, default, error=str(e) or type(e).__name__)
