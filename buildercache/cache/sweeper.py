"""Optional background task that purges expired state on an interval."""

import asyncio
import contextlib
import logging
import math
from typing import Protocol

from buildercache.errors import CacheConfigError

logger = logging.getLogger(__name__)


class Sweepable(Protocol):
    def cleanup(self) -> int: ...


class ExpirySweeper:
    """Periodically calls ``target.cleanup()`` from an asyncio task.

    Used for caches and for the rate limiter. Lazy expiry on read is already
    correct on its own; the sweeper only keeps memory bounded for keys that
    are never touched again. It is off unless a host explicitly starts it.

    Args:
        target: Object exposing ``cleanup() -> int``.
        interval: Seconds between sweeps.
        label: Name used in task names and log lines; defaults to
            ``target.name`` when present.

    Raises:
        CacheConfigError: If *interval* is not a positive finite number.
    """

    def __init__(self, target: Sweepable, interval: float, *, label: str | None = None) -> None:
        if not math.isfinite(interval) or interval <= 0:
            raise CacheConfigError(f"Sweep interval must be positive, got {interval}")
        self.target = target
        self.interval = interval
        self.label = label or getattr(target, "name", type(target).__name__)
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the sweep loop. Requires a running event loop; idempotent."""
        if self.running:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name=f"sweeper:{self.label}")
        logger.info("Started expiry sweeper for '%s' every %.1fs", self.label, self.interval)

    def cancel(self) -> None:
        """Request cancellation without waiting for the task to finish."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to exit."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Stopped expiry sweeper for '%s'", self.label)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                removed = self.target.cleanup()
            except Exception:
                logger.exception("Expiry sweep failed for '%s'", self.label)
            else:
                if removed:
                    logger.debug("Sweep of '%s' removed %d expired record(s)", self.label, removed)
