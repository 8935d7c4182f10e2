from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from app.clock import RandomSource, TimeController
from app.config import Settings
from app.models.lifecycle import LifecycleState, TimingPolicy
from app.services.scheduler import DeferredTaskScheduler
from app.services.store import EntityStore, StateRepository
from app.services.sweeper import DeadlineSweeper, SweepResult

logger = logging.getLogger(__name__)


class LifecycleEngine:
    """One engine per process (or per test): owns the store and its seams.

    Business operations in ``app.services`` take the engine as their first
    argument, the way request handlers take a database session.
    """

    def __init__(
        self,
        time: Optional[TimeController] = None,
        rng: Optional[RandomSource] = None,
        policy: Optional[TimingPolicy] = None,
        repository: Optional[StateRepository] = None,
        feed_limit: int = 50,
        auto_reply_enabled: bool = True,
        auto_reply_window: tuple[float, float] = (2.0, 4.0),
        currency: str = "LKR",
    ):
        self.time = time or TimeController()
        self.rng = rng or RandomSource()
        self.feed_limit = feed_limit
        self.auto_reply_enabled = auto_reply_enabled
        self.auto_reply_window = auto_reply_window
        self.currency = currency
        self.store = EntityStore(
            LifecycleState(config=policy or TimingPolicy()), repository
        )
        self.scheduler = DeferredTaskScheduler(self.time)
        self.sweeper = DeadlineSweeper(self)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        time: Optional[TimeController] = None,
        rng: Optional[RandomSource] = None,
    ) -> "LifecycleEngine":
        policy = TimingPolicy(
            lawyer_approval_hours=settings.lawyer_approval_hours,
            client_payment_minutes=settings.client_payment_minutes,
            case_payment_days=settings.case_payment_days,
        )
        return cls(
            time=time,
            rng=rng or RandomSource(settings.random_seed),
            policy=policy,
            feed_limit=settings.notification_feed_limit,
            auto_reply_enabled=settings.auto_reply_enabled,
            auto_reply_window=(
                settings.auto_reply_min_seconds,
                settings.auto_reply_max_seconds,
            ),
            currency=settings.currency,
        )

    def now(self) -> datetime:
        return self.time.now()

    def snapshot(self) -> LifecycleState:
        return self.store.snapshot()

    def format_amount(self, amount: int) -> str:
        return f"{self.currency} {amount:,}"

    def tick(self) -> SweepResult:
        """Run due scheduled tasks, then sweep deadlines, at one instant."""
        now = self.now()
        ran = self.scheduler.run_due(now)
        if ran:
            logger.debug("Ran %d scheduled tasks", len(ran))
        return self.sweeper.sweep(now)

    def seconds_until_next_task(self) -> Optional[float]:
        due = self.scheduler.next_due()
        if due is None:
            return None
        return max(0.0, (due - self.now()).total_seconds())
