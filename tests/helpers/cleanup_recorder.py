"""Cleanup runner test double."""

from collections.abc import Awaitable, Callable
from typing import Any


class CleanupRecorder:
    """Records every cleanup runner invocation as (action_type, params)."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def runner(self, action_type: str) -> Callable[[dict[str, Any]], Awaitable[None]]:
        async def run(params: dict[str, Any]) -> None:
            self.calls.append((action_type, params))

        return run

    def of_type(self, action_type: str) -> list[dict[str, Any]]:
        return [params for t, params in self.calls if t == action_type]
