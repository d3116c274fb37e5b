"""
Parallel execution helpers for the itinerary pipeline.

This module implements the tolerant join used by the context stage: every
branch is mapped to a value (its result or a documented fallback) before the
join, so a single failing branch can never fail the join as a whole.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from itinerary_pipeline.utils.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass
class TolerantBranch(Generic[T]):
    """A named unit of concurrent work with a fallback for failures."""

    name: str
    operation: Callable[[], Awaitable[T] | T]
    fallback: Callable[[Exception], T]


@dataclass
class BranchOutcome(Generic[T]):
    """Value produced by one branch of a tolerant join."""

    name: str
    value: T
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


async def run_branch(branch: TolerantBranch[T]) -> BranchOutcome[T]:
    """
    Execute one branch, converting any exception into its fallback value.

    Synchronous operations are supported so cheap derivations can share the
    same join as I/O-bound lookups. Cancellation is never swallowed.

    Args:
        branch: The branch to execute

    Returns:
        The branch outcome
    """
    try:
        result = branch.operation()
        if inspect.isawaitable(result):
            result = await result
        return BranchOutcome(name=branch.name, value=result)
    except Exception as e:
        logger.warning(f"Branch '{branch.name}' failed, using fallback: {e!s}")
        return BranchOutcome(
            name=branch.name, value=branch.fallback(e), error=str(e)
        )


async def gather_tolerant(
    branches: Sequence[TolerantBranch[Any]],
) -> list[BranchOutcome[Any]]:
    """
    Run branches concurrently and join their outcomes in input order.

    Args:
        branches: Branches to execute

    Returns:
        One outcome per branch, in the same order as ``branches``
    """
    if not branches:
        return []

    logger.debug(f"Executing {len(branches)} branches in parallel")
    outcomes = await asyncio.gather(*(run_branch(branch) for branch in branches))

    failed = [outcome.name for outcome in outcomes if not outcome.succeeded]
    if failed:
        logger.info(
            f"Tolerant join finished with {len(failed)} fallback(s): {', '.join(failed)}"
        )
    return list(outcomes)
