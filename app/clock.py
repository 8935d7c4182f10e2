from __future__ import annotations

import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass
class TimeController:
    """Injectable time source.

    Reads wall-clock time until frozen; once frozen, time only moves through
    ``advance`` / ``jump_to`` so deadlines can be crossed deterministically.
    """

    tz: timezone = timezone.utc
    _frozen_now: Optional[datetime] = None

    def now(self) -> datetime:
        if self._frozen_now is not None:
            return self._frozen_now
        return datetime.now(self.tz)

    def freeze_at(self, dt: datetime) -> None:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=self.tz)
        self._frozen_now = dt.astimezone(self.tz)

    def jump_to(self, dt: datetime) -> None:
        self.freeze_at(dt)

    def advance(self, delta: timedelta) -> None:
        if self._frozen_now is None:
            # Freeze at current real time first
            self._frozen_now = datetime.now(self.tz)
        self._frozen_now = self._frozen_now + delta


@dataclass
class RandomSource:
    """Injectable randomness: reply delays, reply texts and entity ids."""

    seed: Optional[int] = None
    _rng: random.Random = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._rng = random.Random(self.seed)

    def uniform(self, low: float, high: float) -> float:
        return self._rng.uniform(low, high)

    def choice(self, items: Sequence[T]) -> T:
        return self._rng.choice(items)

    def new_id(self, prefix: str) -> str:
        return f"{prefix}-{uuid.UUID(int=self._rng.getrandbits(128), version=4).hex}"
