"""Debounced autosave for assessments being edited.

Each edit restarts a per-assessment timer. When an assessment has been
quiet for ``delay_seconds`` its buffered draft is flushed to the database.

Usage in lifespan:
    app.state.autosave = AutosaveScheduler(flush=flush_callback)
    yield
    await app.state.autosave.shutdown()
"""

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from src.core.config import settings

logger = structlog.get_logger()

# Async callable that writes one buffered assessment to the database
FlushCallback = Callable[[int], Awaitable[None]]


class AutosaveScheduler:
    """Per-assessment debounce timers on the running event loop.

    A failing flush is logged and swallowed so the timer task ends cleanly;
    the draft stays buffered and the next edit or save retries it.
    """

    def __init__(
        self,
        flush: FlushCallback,
        delay_seconds: float | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            flush: Callback invoked with the assessment id when its timer fires
            delay_seconds: Quiet period before flushing. Defaults to
                settings.autosave_delay_seconds.
        """
        self._flush = flush
        self.delay_seconds = (
            settings.autosave_delay_seconds if delay_seconds is None else delay_seconds
        )
        self._timers: dict[int, asyncio.Task[None]] = {}

    @property
    def pending_ids(self) -> list[int]:
        return list(self._timers)

    def is_pending(self, assessment_id: int) -> bool:
        return assessment_id in self._timers

    def schedule(self, assessment_id: int) -> None:
        """Start or restart the timer for an assessment."""
        self.cancel(assessment_id)
        self._timers[assessment_id] = asyncio.create_task(
            self._run(assessment_id),
            name=f"autosave-{assessment_id}",
        )

    def cancel(self, assessment_id: int) -> bool:
        """Stop a pending timer without flushing.

        Returns:
            True if a timer was pending
        """
        timer = self._timers.pop(assessment_id, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    async def flush_now(self, assessment_id: int) -> None:
        """Cancel the timer and flush immediately."""
        self.cancel(assessment_id)
        await self._flush_safely(assessment_id)

    async def shutdown(self) -> None:
        """Flush every assessment that still has a pending timer."""
        pending = self.pending_ids
        for assessment_id in pending:
            self.cancel(assessment_id)
        for assessment_id in pending:
            await self._flush_safely(assessment_id)
        if pending:
            logger.info("autosave_shutdown_flushed", count=len(pending))

    async def _run(self, assessment_id: int) -> None:
        await asyncio.sleep(self.delay_seconds)
        # Unregister before flushing so an edit during the flush starts a new timer
        if self._timers.get(assessment_id) is asyncio.current_task():
            del self._timers[assessment_id]
        await self._flush_safely(assessment_id)

    async def _flush_safely(self, assessment_id: int) -> None:
        try:
            await self._flush(assessment_id)
        except Exception as e:
            logger.exception(
                "autosave_failed",
                assessment_id=assessment_id,
                error=str(e),
            )
