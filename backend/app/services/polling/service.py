"""Polling synchronizer: periodic invalidation in place of a push feed.

While at least one consumer is subscribed to a poll key, a single timer task
invalidates that key's dataset entries on every tick. The next read of each
entry then takes the refetch path. The poller never fetches anything itself.

States per poll key:
- idle: no subscribers, no timer
- polling: one timer task shared by every subscriber
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Sequence

from app.services.cache import CacheService

logger = logging.getLogger(__name__)


@dataclass
class _PollGroup:
    """Timer and subscriber bookkeeping for one poll key."""
    keys: set[str] = field(default_factory=set)
    subscribers: int = 0
    task: asyncio.Task | None = None
    ticks: int = 0


class Subscription:
    """Handle returned by ``PollingSynchronizer.subscribe``.

    Unsubscribing is idempotent. The handle also works as a context manager.
    """

    def __init__(self, poller: "PollingSynchronizer", poll_key: str) -> None:
        self._poller = poller
        self.poll_key = poll_key
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._poller._release(self.poll_key)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


class PollingSynchronizer:
    """Invalidates subscribed cache keys on a fixed interval.

    Attributes:
        _cache: Cache whose entries get invalidated.
        _interval: Seconds between ticks.
        _groups: Poll key to timer/subscriber state.
    """

    def __init__(self, cache: CacheService, interval: float = 15.0) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._cache = cache
        self._interval = interval
        self._groups: dict[str, _PollGroup] = {}

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def active_timers(self) -> int:
        return sum(1 for g in self._groups.values() if g.task is not None and not g.task.done())

    def is_polling(self, poll_key: str) -> bool:
        group = self._groups.get(poll_key)
        return group is not None and group.task is not None and not group.task.done()

    def subscriber_count(self, poll_key: str) -> int:
        group = self._groups.get(poll_key)
        return group.subscribers if group else 0

    def ticks(self, poll_key: str) -> int:
        group = self._groups.get(poll_key)
        return group.ticks if group else 0

    def subscribe(self, poll_key: str, keys: Sequence[str]) -> Subscription:
        """Register a consumer and start the timer if it is the first one.

        Must be called from a running event loop.

        Args:
            poll_key: Groups subscribers that share one timer (e.g. a user id).
            keys: Dataset keys invalidated on every tick.

        Returns:
            A subscription handle; call ``unsubscribe()`` when done.
        """
        group = self._groups.setdefault(poll_key, _PollGroup())
        group.keys.update(keys)
        group.subscribers += 1
        if group.task is None or group.task.done():
            group.task = asyncio.get_running_loop().create_task(
                self._run(poll_key, group), name=f"poll:{poll_key}"
            )
            logger.info(f"[POLL] {poll_key}: polling every {self._interval}s")
        return Subscription(self, poll_key)

    def _release(self, poll_key: str) -> None:
        group = self._groups.get(poll_key)
        if group is None:
            return
        group.subscribers -= 1
        if group.subscribers <= 0:
            if group.task is not None:
                group.task.cancel()
            del self._groups[poll_key]
            logger.info(f"[POLL] {poll_key}: idle")

    async def _run(self, poll_key: str, group: _PollGroup) -> None:
        while True:
            await asyncio.sleep(self._interval)
            for key in sorted(group.keys):
                self._cache.invalidate(key)
            group.ticks += 1
            logger.debug(f"[POLL] {poll_key}: tick {group.ticks}, invalidated {len(group.keys)} keys")

    async def close(self) -> None:
        """Cancel every timer and forget all subscribers."""
        tasks = [g.task for g in self._groups.values() if g.task is not None]
        self._groups.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
