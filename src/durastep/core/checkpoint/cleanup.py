"""Best-effort execution of registered compensation actions.

All actions in a batch are dispatched concurrently. A missing runner is
logged as a warning and skipped; a failing runner is logged as an error and
contained to that action. execute_all() itself never raises for either case,
so recovery and sweep passes always run to completion.
"""

import asyncio
import inspect
from collections.abc import Iterable

from durastep.contracts import CleanupAction, CleanupOutcome, CleanupRegistry, CleanupStatus
from durastep.core.logging import get_logger

logger = get_logger(__name__)


async def execute_cleanup(registry: CleanupRegistry, action: CleanupAction) -> CleanupOutcome:
    """Run one compensation action and report how it went."""
    runner = registry.get(action.type)
    if runner is None:
        logger.warning(
            "no cleanup runner registered",
            action_type=action.type,
            action_id=action.id,
        )
        return CleanupOutcome(action.id, action.type, CleanupStatus.SKIPPED)

    try:
        result = runner(action.params)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error(
            "cleanup failed",
            action_type=action.type,
            action_id=action.id,
            exc_info=True,
        )
        return CleanupOutcome(action.id, action.type, CleanupStatus.FAILED, error=f"{type(e).__name__}: {e}")

    logger.info("cleanup executed", action_type=action.type, action_id=action.id)
    return CleanupOutcome(action.id, action.type, CleanupStatus.EXECUTED)


async def execute_all(registry: CleanupRegistry, actions: Iterable[CleanupAction]) -> tuple[CleanupOutcome, ...]:
    """Fan out every action concurrently; outcomes are returned in input order."""
    outcomes = await asyncio.gather(*(execute_cleanup(registry, action) for action in actions))
    return tuple(outcomes)
