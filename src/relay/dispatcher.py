"""Fire-and-forget scheduling of relay pipeline runs."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.relay.models import RelayMessage, RelayOutcome
    from src.relay.pipeline import RelayPipeline

logger = logging.getLogger(__name__)


class RelayDispatcher:
    """Spawns one task per inbound text and never awaits it on the request path.

    Tasks are held until they finish so the event loop cannot garbage
    collect them mid-flight, and every failure that escapes the pipeline is
    logged from the done-callback.
    """

    def __init__(self, pipeline: RelayPipeline) -> None:
        self._pipeline = pipeline
        self._tasks: set[asyncio.Task[RelayOutcome]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, message: RelayMessage) -> asyncio.Task[RelayOutcome]:
        task = asyncio.create_task(
            self._pipeline.relay(message),
            name=f"relay:{message.destination}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[RelayOutcome]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("relay task %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "relay task %s failed", task.get_name(),
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def drain(self, timeout: float = 30.0) -> None:
        """Wait for in-flight relays, cancelling whatever outlives ``timeout``."""
        if not self._tasks:
            return
        tasks = set(self._tasks)
        logger.info("waiting for %d in-flight relay(s)", len(tasks))
        _, still_pending = await asyncio.wait(tasks, timeout=timeout)
        for task in still_pending:
            task.cancel()
        if still_pending:
            logger.warning("cancelled %d relay(s) still pending at shutdown", len(still_pending))
            await asyncio.gather(*still_pending, return_exceptions=True)
