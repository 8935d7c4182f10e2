from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, List

from app.errors import NotFoundError
from app.models.lifecycle import Notification, NotificationType
from app.services.actions import (
    NotificationAdded,
    NotificationDismissed,
    NotificationsCleared,
)
from app.services.auth import Actor
from app.services.common import apply_ordering, apply_pagination, coerce_enum
from app.services.event import EventType
from app.services.response import ListResponseMixin

if TYPE_CHECKING:
    from app.services.engine import LifecycleEngine

logger = logging.getLogger(__name__)


def short_id(entity_id: str) -> str:
    return entity_id[-6:]


def notification_added(
    engine: LifecycleEngine,
    kind: NotificationType,
    title: str,
    message: str,
    *,
    event: EventType | None = None,
    actor: Actor | None = None,
    appointment_id: str | None = None,
    case_id: str | None = None,
    payment_id: str | None = None,
    timestamp: datetime | None = None,
) -> NotificationAdded:
    """Build the feed action; id and timestamp come from the engine seams."""
    notification = Notification(
        id=engine.rng.new_id("notif"),
        timestamp=timestamp or engine.now(),
        type=kind,
        title=title,
        message=message,
        event=event.value if event else None,
        actor_id=actor.id if actor else None,
        appointment_id=appointment_id,
        case_id=case_id,
        payment_id=payment_id,
    )
    return NotificationAdded(notification=notification, limit=engine.feed_limit)


class Notifications(ListResponseMixin):
    @staticmethod
    def get(engine: LifecycleEngine, notification_id: str) -> Notification:
        for notification in engine.snapshot().notifications:
            if notification.id == notification_id:
                return notification
        raise NotFoundError("Notification", notification_id)

    @staticmethod
    def list(
        engine: LifecycleEngine,
        type: str | None,
        appointment_id: str | None,
        case_id: str | None,
        payment_id: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> List[Notification]:
        items = list(engine.snapshot().notifications)
        if type is not None:
            wanted = coerce_enum(NotificationType, type)
            items = [n for n in items if n.type == wanted]
        if appointment_id is not None:
            items = [n for n in items if n.appointment_id == appointment_id]
        if case_id is not None:
            items = [n for n in items if n.case_id == case_id]
        if payment_id is not None:
            items = [n for n in items if n.payment_id == payment_id]
        items = apply_ordering(items, order_by, order_dir, {"timestamp"})
        return apply_pagination(items, limit, offset)

    @staticmethod
    def dismiss(engine: LifecycleEngine, notification_id: str, actor: Actor) -> None:
        with engine.store.transaction() as txn:
            if not any(n.id == notification_id for n in txn.state.notifications):
                raise NotFoundError("Notification", notification_id)
            txn.dispatch(NotificationDismissed(notification_id=notification_id))
        logger.info("Dismissed notification %s by %s", notification_id, actor.id)

    @staticmethod
    def clear(engine: LifecycleEngine, actor: Actor) -> int:
        with engine.store.transaction() as txn:
            count = len(txn.state.notifications)
            if count:
                txn.dispatch(NotificationsCleared())
        logger.info("Cleared %d notifications by %s", count, actor.id)
        return count


notifications = Notifications()
