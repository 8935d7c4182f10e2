from datetime import datetime, timezone

import pytest

from app.models.lifecycle import LifecycleState, Notification, NotificationType
from app.services.actions import NotificationAdded
from app.services.store import EntityStore, InMemoryStateRepository

NOW = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def _notification_added(notification_id):
    return NotificationAdded(
        notification=Notification(
            id=notification_id,
            timestamp=NOW,
            type=NotificationType.info,
            title="Title",
            message="Message",
        )
    )


class TestEntityStore:
    def test_transaction_commits_on_exit(self) -> None:
        store = EntityStore()
        with store.transaction() as txn:
            txn.dispatch(_notification_added("n-1"))
            assert store.snapshot().notifications == ()
        assert [n.id for n in store.snapshot().notifications] == ["n-1"]

    def test_exception_discards_staged_actions(self) -> None:
        store = EntityStore()
        before = store.snapshot()
        with pytest.raises(RuntimeError):
            with store.transaction() as txn:
                txn.dispatch(_notification_added("n-1"))
                raise RuntimeError("boom")
        assert store.snapshot() is before

    def test_listeners_receive_committed_actions(self) -> None:
        store = EntityStore()
        seen = []
        store.subscribe(lambda state, actions: seen.append((state, actions)))
        store.dispatch(_notification_added("n-1"), _notification_added("n-2"))
        assert len(seen) == 1
        state, actions = seen[0]
        assert len(actions) == 2
        assert state is store.snapshot()

    def test_empty_transaction_does_not_notify(self) -> None:
        store = EntityStore()
        seen = []
        store.subscribe(lambda state, actions: seen.append(actions))
        with store.transaction():
            pass
        assert seen == []

    def test_repository_receives_saved_state(self) -> None:
        repository = InMemoryStateRepository()
        store = EntityStore(repository=repository)
        store.dispatch(_notification_added("n-1"))
        assert repository.load() is store.snapshot()

    def test_loads_from_repository(self) -> None:
        saved = LifecycleState(initialized=True)
        store = EntityStore(repository=InMemoryStateRepository(saved))
        assert store.snapshot() is saved
