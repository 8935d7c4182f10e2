from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, List

from app.errors import DeadlineAlreadyPassedError, InvalidTransitionError, NotFoundError
from app.models.lifecycle import (
    APPOINTMENT_TRANSITIONS,
    Appointment,
    AppointmentStatus,
    LifecycleState,
    NotificationType,
    Payment,
    PaymentStatus,
    PaymentType,
    can_transition,
)
from app.schemas.lifecycle import AppointmentCreate
from app.services.actions import (
    AppointmentCreated,
    AppointmentStatusChanged,
    PaymentAdded,
)
from app.services.auth import Actor, require_party
from app.services.common import apply_ordering, apply_pagination, coerce_enum
from app.services.event import EventType, publish_event
from app.services.notification import notification_added, short_id
from app.services.response import ListResponseMixin

if TYPE_CHECKING:
    from app.services.engine import LifecycleEngine

logger = logging.getLogger(__name__)


def _load(state: LifecycleState, appointment_id: str) -> Appointment:
    appointment = state.appointment(appointment_id)
    if appointment is None:
        raise NotFoundError("Appointment", appointment_id)
    return appointment


def _ensure_transition(appointment: Appointment, target: AppointmentStatus) -> None:
    if not can_transition(APPOINTMENT_TRANSITIONS, appointment.status, target):
        raise InvalidTransitionError(
            "appointment", appointment.id, appointment.status, target
        )


def _ensure_window_open(appointment: Appointment, now: datetime) -> None:
    deadline = appointment.active_deadline
    if deadline is not None and now >= deadline:
        raise DeadlineAlreadyPassedError("appointment", appointment.id, deadline)


class Appointments(ListResponseMixin):
    @staticmethod
    def book(
        engine: LifecycleEngine, payload: AppointmentCreate, actor: Actor
    ) -> Appointment:
        require_party(actor, "book this appointment", client_id=payload.client_id)
        with engine.store.transaction() as txn:
            now = engine.now()
            hours = txn.state.config.lawyer_approval_hours
            appointment = Appointment(
                id=engine.rng.new_id("apt"),
                **payload.model_dump(),
                status=AppointmentStatus.pending_approval,
                created_at=now,
                approval_deadline=now + timedelta(hours=hours),
            )
            txn.dispatch(
                AppointmentCreated(appointment=appointment),
                notification_added(
                    engine,
                    NotificationType.info,
                    "Appointment Booked",
                    "Your appointment request has been sent to "
                    f"{appointment.lawyer_name}. "
                    f"They have {hours}h to respond.",
                    event=EventType.appointment_booked,
                    actor=actor,
                    appointment_id=appointment.id,
                ),
            )
        publish_event(
            EventType.appointment_booked, "appointment", appointment.id, actor.id
        )
        logger.info(
            "Booked appointment %s for client %s with lawyer %s",
            appointment.id,
            appointment.client_id,
            appointment.lawyer_id,
        )
        return appointment

    @staticmethod
    def get(engine: LifecycleEngine, appointment_id: str) -> Appointment:
        return _load(engine.snapshot(), appointment_id)

    @staticmethod
    def list(
        engine: LifecycleEngine,
        client_id: str | None,
        lawyer_id: str | None,
        status: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> List[Appointment]:
        items = list(engine.snapshot().appointments)
        if client_id is not None:
            items = [a for a in items if a.client_id == client_id]
        if lawyer_id is not None:
            items = [a for a in items if a.lawyer_id == lawyer_id]
        if status is not None:
            wanted = coerce_enum(AppointmentStatus, status)
            items = [a for a in items if a.status == wanted]
        items = apply_ordering(
            items,
            order_by,
            order_dir,
            {"created_at", "approval_deadline", "payment_deadline", "scheduled_for"},
        )
        return apply_pagination(items, limit, offset)

    @staticmethod
    def approve(
        engine: LifecycleEngine, appointment_id: str, actor: Actor
    ) -> Appointment:
        with engine.store.transaction() as txn:
            now = engine.now()
            appointment = _load(txn.state, appointment_id)
            require_party(
                actor, "approve this appointment", lawyer_id=appointment.lawyer_id
            )
            _ensure_transition(appointment, AppointmentStatus.approved_awaiting_payment)
            _ensure_window_open(appointment, now)

            minutes = txn.state.config.client_payment_minutes
            payment_deadline = now + timedelta(minutes=minutes)
            payment = Payment(
                id=engine.rng.new_id("pay"),
                appointment_id=appointment.id,
                client_id=appointment.client_id,
                lawyer_id=appointment.lawyer_id,
                amount=appointment.consultation_fee,
                type=PaymentType.consultation_fee,
                status=PaymentStatus.pending,
                created_at=now,
                deadline=payment_deadline,
                description=(
                    "Consultation fee for appointment with "
                    f"{appointment.lawyer_name}"
                ),
            )
            state = txn.dispatch(
                AppointmentStatusChanged(
                    appointment_id=appointment.id,
                    status=AppointmentStatus.approved_awaiting_payment,
                    changes={
                        "approval_deadline": None,
                        "payment_deadline": payment_deadline,
                        "approved_at": now,
                    },
                ),
                PaymentAdded(payment=payment),
                notification_added(
                    engine,
                    NotificationType.success,
                    "Appointment Approved",
                    f"Appointment #{short_id(appointment.id)} approved. "
                    f"Client has {minutes} minutes to complete payment.",
                    event=EventType.appointment_approved,
                    actor=actor,
                    appointment_id=appointment.id,
                    payment_id=payment.id,
                ),
            )
        publish_event(
            EventType.appointment_approved, "appointment", appointment.id, actor.id
        )
        logger.info(
            "Approved appointment %s, payment %s due", appointment.id, payment.id
        )
        return state.appointment(appointment.id)

    @staticmethod
    def decline(
        engine: LifecycleEngine, appointment_id: str, actor: Actor, reason: str = ""
    ) -> Appointment:
        with engine.store.transaction() as txn:
            now = engine.now()
            appointment = _load(txn.state, appointment_id)
            require_party(
                actor, "decline this appointment", lawyer_id=appointment.lawyer_id
            )
            _ensure_transition(appointment, AppointmentStatus.declined)
            _ensure_window_open(appointment, now)
            suffix = f" Reason: {reason}" if reason else ""
            state = txn.dispatch(
                AppointmentStatusChanged(
                    appointment_id=appointment.id,
                    status=AppointmentStatus.declined,
                    changes={
                        "approval_deadline": None,
                        "payment_deadline": None,
                        "declined_at": now,
                        "decline_reason": reason or None,
                    },
                ),
                notification_added(
                    engine,
                    NotificationType.warning,
                    "Appointment Declined",
                    f"Appointment #{short_id(appointment.id)} was declined.{suffix}",
                    event=EventType.appointment_declined,
                    actor=actor,
                    appointment_id=appointment.id,
                ),
            )
        publish_event(
            EventType.appointment_declined, "appointment", appointment.id, actor.id
        )
        logger.info("Declined appointment %s", appointment.id)
        return state.appointment(appointment.id)

    @staticmethod
    def complete(
        engine: LifecycleEngine, appointment_id: str, actor: Actor
    ) -> Appointment:
        with engine.store.transaction() as txn:
            appointment = _load(txn.state, appointment_id)
            require_party(
                actor, "complete this consultation", lawyer_id=appointment.lawyer_id
            )
            _ensure_transition(appointment, AppointmentStatus.completed)
            state = txn.dispatch(
                AppointmentStatusChanged(
                    appointment_id=appointment.id,
                    status=AppointmentStatus.completed,
                    changes={"completed_at": engine.now()},
                ),
                notification_added(
                    engine,
                    NotificationType.success,
                    "Consultation Completed",
                    f"Appointment #{short_id(appointment.id)} marked as completed.",
                    event=EventType.appointment_completed,
                    actor=actor,
                    appointment_id=appointment.id,
                ),
            )
        publish_event(
            EventType.appointment_completed, "appointment", appointment.id, actor.id
        )
        logger.info("Completed appointment %s", appointment.id)
        return state.appointment(appointment.id)

    @staticmethod
    def cancel(
        engine: LifecycleEngine, appointment_id: str, actor: Actor, reason: str = ""
    ) -> Appointment:
        with engine.store.transaction() as txn:
            appointment = _load(txn.state, appointment_id)
            require_party(
                actor,
                "cancel this appointment",
                client_id=appointment.client_id,
                lawyer_id=appointment.lawyer_id,
            )
            _ensure_transition(appointment, AppointmentStatus.cancelled)
            state = txn.dispatch(
                AppointmentStatusChanged(
                    appointment_id=appointment.id,
                    status=AppointmentStatus.cancelled,
                    changes={
                        "cancelled_at": engine.now(),
                        "cancel_reason": reason or None,
                    },
                ),
                notification_added(
                    engine,
                    NotificationType.info,
                    "Appointment Cancelled",
                    f"Appointment #{short_id(appointment.id)} has been cancelled.",
                    event=EventType.appointment_cancelled,
                    actor=actor,
                    appointment_id=appointment.id,
                ),
            )
        publish_event(
            EventType.appointment_cancelled, "appointment", appointment.id, actor.id
        )
        logger.info("Cancelled appointment %s by %s", appointment.id, actor.id)
        return state.appointment(appointment.id)


appointments = Appointments()
