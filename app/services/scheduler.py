from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from threading import RLock
from typing import Callable, List, Optional

from app.clock import TimeController

logger = logging.getLogger(__name__)


@dataclass(order=True)
class ScheduledTask:
    due_at: datetime
    seq: int
    key: str = field(compare=False)
    callback: Callable[[], None] = field(compare=False, repr=False)
    cancelled: bool = field(default=False, compare=False)


class DeferredTaskScheduler:
    """Cancellable fire-and-forget tasks driven by the injected clock.

    Nothing fires on its own: ``run_due`` executes every task whose due time
    has been reached, in due order, so tests move virtual time and call it.
    """

    def __init__(self, time: TimeController):
        self._time = time
        self._seq = itertools.count(1)
        self._heap: List[ScheduledTask] = []
        self._by_key: dict[str, ScheduledTask] = {}
        self._lock = RLock()

    def schedule(
        self, key: str, delay_seconds: float, callback: Callable[[], None]
    ) -> ScheduledTask:
        with self._lock:
            self.cancel(key)
            task = ScheduledTask(
                due_at=self._time.now() + timedelta(seconds=delay_seconds),
                seq=next(self._seq),
                key=key,
                callback=callback,
            )
            heapq.heappush(self._heap, task)
            self._by_key[key] = task
            logger.debug("Scheduled task %s at %s", key, task.due_at.isoformat())
            return task

    def cancel(self, key: str) -> bool:
        with self._lock:
            task = self._by_key.pop(key, None)
            if task is None:
                return False
            task.cancelled = True
            return True

    def cancel_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in self._by_key if k.startswith(prefix)]
            for key in keys:
                self.cancel(key)
            if keys:
                logger.info("Cancelled %d scheduled tasks for %s", len(keys), prefix)
            return len(keys)

    def _pop_due(self, now: datetime) -> Optional[ScheduledTask]:
        with self._lock:
            while self._heap and self._heap[0].cancelled:
                heapq.heappop(self._heap)
            if not self._heap or self._heap[0].due_at > now:
                return None
            task = heapq.heappop(self._heap)
            self._by_key.pop(task.key, None)
            return task

    def run_due(self, now: Optional[datetime] = None) -> List[str]:
        now = now or self._time.now()
        ran: List[str] = []
        while True:
            task = self._pop_due(now)
            if task is None:
                break
            try:
                task.callback()
            except Exception as e:
                logger.exception("Scheduled task %s failed: %s", task.key, e)
            ran.append(task.key)
        return ran

    def next_due(self) -> Optional[datetime]:
        with self._lock:
            live = [t.due_at for t in self._heap if not t.cancelled]
            return min(live) if live else None

    def pending(self) -> List[str]:
        with self._lock:
            return sorted(self._by_key)
