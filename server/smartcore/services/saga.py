"""Multi-step provisioning with compensating actions."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Compensation = Callable[[], Awaitable[None]]


class ProvisioningSaga:
    """Runs remote writes in order and undoes the completed ones if a later write fails.

    Compensations run newest first. A failing compensation is logged and the
    remaining ones still run; the caller re-raises the original error.
    """

    def __init__(self, name: str):
        self.name = name
        self.completed_steps: list[str] = []
        self._compensations: list[tuple[str, Compensation]] = []

    def on_rollback(self, label: str, action: Compensation) -> None:
        self._compensations.append((label, action))

    async def step(
        self,
        label: str,
        action: Callable[[], Awaitable[T]],
        compensate: Optional[Callable[[T], Awaitable[None]]] = None,
    ) -> T:
        logger.info("[%s] %s", self.name, label)
        result = await action()
        self.completed_steps.append(label)
        if compensate is not None:
            self.on_rollback(f"undo {label}", lambda: compensate(result))
        return result

    async def rollback(self) -> list[str]:
        """Run compensations in reverse order; returns the labels that failed."""
        failed: list[str] = []
        while self._compensations:
            label, action = self._compensations.pop()
            try:
                await action()
                logger.info("[%s] %s", self.name, label)
            except Exception:
                logger.exception("[%s] Compensation failed: %s", self.name, label)
                failed.append(label)
        return failed
