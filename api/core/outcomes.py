from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Generic, Hashable, List, Optional, Tuple, TypeVar

from providers.errors import ExternalApiError

T = TypeVar("T")


@dataclass(slots=True)
class Outcome(Generic[T]):
    """Result of one per-item provider call: either a value or the error it raised."""

    key: Hashable
    value: Optional[T] = None
    error: Optional[ExternalApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def capture(key: Hashable, call: Awaitable[T]) -> Outcome[T]:
    try:
        return Outcome(key=key, value=await call)
    except ExternalApiError as exc:
        return Outcome(key=key, error=exc)


def partition(
    outcomes: List[Outcome[T]], logger: logging.Logger, what: str
) -> Tuple[List[Outcome[T]], List[Outcome[T]]]:
    successes: List[Outcome[T]] = []
    failures: List[Outcome[T]] = []
    for outcome in outcomes:
        (successes if outcome.ok else failures).append(outcome)
    for failure in failures:
        logger.warning(
            "Failed to fetch %s for %s (%s): %s",
            what,
            failure.key,
            type(failure.error).__name__,
            failure.error,
        )
    return successes, failures
