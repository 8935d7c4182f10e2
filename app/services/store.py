from __future__ import annotations

import logging
from contextlib import contextmanager
from threading import RLock
from typing import Callable, Iterator, Protocol, Sequence

from app.models.lifecycle import LifecycleState
from app.services.actions import Action
from app.services.reducer import apply

logger = logging.getLogger(__name__)

CommitListener = Callable[[LifecycleState, Sequence[Action]], None]


class StateRepository(Protocol):
    """Persistence seam; the engine only ever ships the in-memory version."""

    def load(self) -> LifecycleState | None: ...

    def save(self, state: LifecycleState) -> None: ...


class InMemoryStateRepository:
    def __init__(self, initial: LifecycleState | None = None):
        self._state = initial

    def load(self) -> LifecycleState | None:
        return self._state

    def save(self, state: LifecycleState) -> None:
        self._state = state


class Transaction:
    def __init__(self, state: LifecycleState):
        self.state = state
        self.actions: list[Action] = []

    def dispatch(self, *actions: Action) -> LifecycleState:
        for action in actions:
            self.state = apply(self.state, action)
            self.actions.append(action)
        return self.state


class EntityStore:
    """Single-writer owner of the lifecycle state.

    Every mutation runs inside ``transaction()``: callers read the current
    state, stage actions, and the staged state replaces the live one in a
    single swap when the block exits cleanly. An exception discards
    everything staged.
    """

    def __init__(
        self,
        initial: LifecycleState | None = None,
        repository: StateRepository | None = None,
    ):
        self._repository = repository or InMemoryStateRepository()
        self._state = self._repository.load() or initial or LifecycleState()
        self._lock = RLock()
        self._listeners: list[CommitListener] = []

    def snapshot(self) -> LifecycleState:
        return self._state

    def subscribe(self, listener: CommitListener) -> None:
        self._listeners.append(listener)

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        with self._lock:
            txn = Transaction(self._state)
            yield txn
            if not txn.actions:
                return
            self._state = txn.state
            self._repository.save(txn.state)
            logger.debug("Committed %d actions", len(txn.actions))
            for listener in self._listeners:
                listener(txn.state, tuple(txn.actions))

    def dispatch(self, *actions: Action) -> LifecycleState:
        with self.transaction() as txn:
            txn.dispatch(*actions)
        return self._state
