"""Pure ``(state, action) -> state`` transition function.

Only the collection an action addresses is replaced; every other collection
is carried over by reference. Actions addressing an unknown id return the
state unchanged. Preconditions belong to the business operations, not here.
"""

from __future__ import annotations

from typing import Callable, Iterable, TypeVar

from app.models.lifecycle import LifecycleState
from app.services.actions import (
    Action,
    AppointmentCreated,
    AppointmentStatusChanged,
    CaseAdded,
    CaseStatusChanged,
    CaseUpdated,
    ConfigUpdated,
    DocumentAddedToCase,
    DocumentRemovedFromCase,
    MessageAddedToCase,
    NotificationAdded,
    NotificationDismissed,
    NotificationsCleared,
    PaymentAdded,
    PaymentStatusChanged,
    StateSeeded,
)

E = TypeVar("E")


def _replace_one(
    items: tuple[E, ...], entity_id: str, update: Callable[[E], E]
) -> tuple[E, ...] | None:
    for index, item in enumerate(items):
        if item.id == entity_id:
            return items[:index] + (update(item),) + items[index + 1 :]
    return None


def _update_collection(
    state: LifecycleState, name: str, entity_id: str, update: Callable
) -> LifecycleState:
    replaced = _replace_one(getattr(state, name), entity_id, update)
    if replaced is None:
        return state
    return state.model_copy(update={name: replaced})


def _state_seeded(state: LifecycleState, action: StateSeeded) -> LifecycleState:
    return state.model_copy(
        update={
            "appointments": tuple(action.appointments),
            "cases": tuple(action.cases),
            "payments": tuple(action.payments),
            "initialized": True,
        }
    )


def _appointment_created(
    state: LifecycleState, action: AppointmentCreated
) -> LifecycleState:
    return state.model_copy(
        update={"appointments": (action.appointment,) + state.appointments}
    )


def _appointment_status_changed(
    state: LifecycleState, action: AppointmentStatusChanged
) -> LifecycleState:
    return _update_collection(
        state,
        "appointments",
        action.appointment_id,
        lambda a: a.model_copy(update={**action.changes, "status": action.status}),
    )


def _payment_added(state: LifecycleState, action: PaymentAdded) -> LifecycleState:
    return state.model_copy(update={"payments": (action.payment,) + state.payments})


def _payment_status_changed(
    state: LifecycleState, action: PaymentStatusChanged
) -> LifecycleState:
    return _update_collection(
        state,
        "payments",
        action.payment_id,
        lambda p: p.model_copy(update={**action.changes, "status": action.status}),
    )


def _case_added(state: LifecycleState, action: CaseAdded) -> LifecycleState:
    return state.model_copy(update={"cases": (action.case,) + state.cases})


def _case_status_changed(
    state: LifecycleState, action: CaseStatusChanged
) -> LifecycleState:
    return _update_collection(
        state,
        "cases",
        action.case_id,
        lambda c: c.model_copy(update={**action.changes, "status": action.status}),
    )


def _case_updated(state: LifecycleState, action: CaseUpdated) -> LifecycleState:
    return _update_collection(
        state,
        "cases",
        action.case_id,
        lambda c: c.model_copy(update=dict(action.changes)),
    )


def _document_added(
    state: LifecycleState, action: DocumentAddedToCase
) -> LifecycleState:
    return _update_collection(
        state,
        "cases",
        action.case_id,
        lambda c: c.model_copy(update={"documents": c.documents + (action.document,)}),
    )


def _document_removed(
    state: LifecycleState, action: DocumentRemovedFromCase
) -> LifecycleState:
    return _update_collection(
        state,
        "cases",
        action.case_id,
        lambda c: c.model_copy(
            update={
                "documents": tuple(
                    d for d in c.documents if d.id != action.document_id
                )
            }
        ),
    )


def _message_added(state: LifecycleState, action: MessageAddedToCase) -> LifecycleState:
    return _update_collection(
        state,
        "cases",
        action.case_id,
        lambda c: c.model_copy(update={"messages": c.messages + (action.message,)}),
    )


def _notification_added(
    state: LifecycleState, action: NotificationAdded
) -> LifecycleState:
    feed = ((action.notification,) + state.notifications)[: max(0, action.limit)]
    return state.model_copy(update={"notifications": feed})


def _notification_dismissed(
    state: LifecycleState, action: NotificationDismissed
) -> LifecycleState:
    feed = tuple(n for n in state.notifications if n.id != action.notification_id)
    if len(feed) == len(state.notifications):
        return state
    return state.model_copy(update={"notifications": feed})


def _notifications_cleared(
    state: LifecycleState, action: NotificationsCleared
) -> LifecycleState:
    return state.model_copy(update={"notifications": ()})


def _config_updated(state: LifecycleState, action: ConfigUpdated) -> LifecycleState:
    return state.model_copy(
        update={"config": state.config.model_copy(update=dict(action.patch))}
    )


_HANDLERS: dict[type, Callable[[LifecycleState, Action], LifecycleState]] = {
    StateSeeded: _state_seeded,
    AppointmentCreated: _appointment_created,
    AppointmentStatusChanged: _appointment_status_changed,
    PaymentAdded: _payment_added,
    PaymentStatusChanged: _payment_status_changed,
    CaseAdded: _case_added,
    CaseStatusChanged: _case_status_changed,
    CaseUpdated: _case_updated,
    DocumentAddedToCase: _document_added,
    DocumentRemovedFromCase: _document_removed,
    MessageAddedToCase: _message_added,
    NotificationAdded: _notification_added,
    NotificationDismissed: _notification_dismissed,
    NotificationsCleared: _notifications_cleared,
    ConfigUpdated: _config_updated,
}


def apply(state: LifecycleState, action: Action) -> LifecycleState:
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unsupported action: {type(action).__name__}")
    return handler(state, action)


def apply_all(state: LifecycleState, actions: Iterable[Action]) -> LifecycleState:
    for action in actions:
        state = apply(state, action)
    return state
