"""Administrative operations: status overrides, refunds, policy changes.

Overrides bypass the transition graph but still go through the store, so
the deadline index sees the new deadline (or its absence) like any other
commit.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Mapping

from app.errors import (
    ConfigOutOfRangeError,
    InvalidRequestError,
    InvalidTransitionError,
    NotFoundError,
)
from app.models.lifecycle import (
    CASE_TERMINAL,
    PAYMENT_TRANSITIONS,
    POLICY_BOUNDS,
    Appointment,
    AppointmentStatus,
    Case,
    CaseStatus,
    LifecycleState,
    NotificationType,
    Payment,
    PaymentStatus,
    PaymentType,
    TimingPolicy,
    can_transition,
)
from app.services.actions import (
    AppointmentStatusChanged,
    CaseStatusChanged,
    ConfigUpdated,
    PaymentAdded,
    PaymentStatusChanged,
)
from app.services.auth import Actor, require_admin
from app.services.common import coerce_enum
from app.services.event import EventType, publish_event
from app.services.notification import notification_added, short_id
from app.services.sweeper import SweepResult

if TYPE_CHECKING:
    from app.services.engine import LifecycleEngine

logger = logging.getLogger(__name__)


def _appointment_override_changes(
    target: AppointmentStatus, policy: TimingPolicy, now: datetime, actor: Actor
) -> dict:
    changes: dict = {
        "approval_deadline": None,
        "payment_deadline": None,
        "overridden_at": now,
        "overridden_by": actor.id,
    }
    if target == AppointmentStatus.pending_approval:
        changes["approval_deadline"] = now + timedelta(
            hours=policy.lawyer_approval_hours
        )
    elif target == AppointmentStatus.approved_awaiting_payment:
        changes["payment_deadline"] = now + timedelta(
            minutes=policy.client_payment_minutes
        )
    elif target == AppointmentStatus.expired:
        changes["expired_at"] = now
    elif target == AppointmentStatus.completed:
        changes["completed_at"] = now
    elif target == AppointmentStatus.cancelled:
        changes["cancelled_at"] = now
    elif target == AppointmentStatus.declined:
        changes["declined_at"] = now
    return changes


def _case_override_changes(
    target: CaseStatus, policy: TimingPolicy, now: datetime, actor: Actor
) -> dict:
    changes: dict = {
        "next_payment_deadline": None,
        "overridden_at": now,
        "overridden_by": actor.id,
    }
    if target == CaseStatus.payment_pending:
        changes["next_payment_deadline"] = now + timedelta(
            hours=policy.case_payment_days * 24
        )
    elif target == CaseStatus.overdue:
        changes["overdue_at"] = now
    elif target == CaseStatus.closed:
        changes["closed_at"] = now
        changes["progress"] = 100
    elif target == CaseStatus.terminated:
        changes["terminated_at"] = now
    return changes


def _follow_override(payment: Payment | None, deadline, now: datetime) -> list:
    """Keep a pending payment in step with its entity after an override.

    The payment takes the new deadline when the entity waits on it and
    expires otherwise.
    """
    if payment is None:
        return []
    if deadline is not None:
        return [
            PaymentStatusChanged(
                payment_id=payment.id,
                status=PaymentStatus.pending,
                changes={"deadline": deadline},
            )
        ]
    return [
        PaymentStatusChanged(
            payment_id=payment.id,
            status=PaymentStatus.expired,
            changes={"expired_at": now},
        )
    ]


def _latest_unpaid_case_payment(
    state: LifecycleState, case_id: str
) -> Payment | None:
    issued = [
        p
        for p in state.payments
        if p.case_id == case_id and p.status != PaymentStatus.success
    ]
    if not issued:
        return None
    return max(issued, key=lambda p: p.created_at)


def override_appointment_status(
    engine: LifecycleEngine, appointment_id: str, status, actor: Actor
) -> Appointment:
    """Force an appointment into ``status``.

    Entering a waiting state starts a fresh waiting period from the current
    policy. A pending consultation payment follows the new payment deadline,
    or one is issued when none exists. Any other state clears both deadlines
    and expires a pending payment.
    """
    require_admin(actor, "override appointment status")
    target = coerce_enum(AppointmentStatus, status)
    with engine.store.transaction() as txn:
        now = engine.now()
        appointment = txn.state.appointment(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        if appointment.status == target:
            raise InvalidTransitionError(
                "appointment", appointment.id, appointment.status, target
            )
        changes = _appointment_override_changes(target, txn.state.config, now, actor)
        payment_deadline = changes["payment_deadline"]
        payment = txn.state.pending_payment_for(appointment_id=appointment.id)
        actions = [
            AppointmentStatusChanged(
                appointment_id=appointment.id, status=target, changes=changes
            ),
            *_follow_override(payment, payment_deadline, now),
        ]
        if payment is None and payment_deadline is not None:
            actions.append(
                PaymentAdded(
                    payment=Payment(
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
                )
            )
        txn.dispatch(*actions)
        state = txn.dispatch(
            notification_added(
                engine,
                NotificationType.warning,
                "Status Override",
                f"Appointment #{short_id(appointment.id)} status changed from "
                f"{appointment.status.value} to {target.value} by admin.",
                event=EventType.admin_override,
                actor=actor,
                appointment_id=appointment.id,
            )
        )
    publish_event(EventType.admin_override, "appointment", appointment.id, actor.id)
    logger.warning(
        "Admin %s overrode appointment %s: %s -> %s",
        actor.id,
        appointment.id,
        appointment.status.value,
        target.value,
    )
    return state.appointment(appointment.id)


def override_case_status(
    engine: LifecycleEngine, case_id: str, status, actor: Actor
) -> Case:
    require_admin(actor, "override case status")
    target = coerce_enum(CaseStatus, status)
    with engine.store.transaction() as txn:
        now = engine.now()
        case = txn.state.case(case_id)
        if case is None:
            raise NotFoundError("Case", case_id)
        if case.status == target:
            raise InvalidTransitionError("case", case.id, case.status, target)
        changes = _case_override_changes(target, txn.state.config, now, actor)
        payment_deadline = changes["next_payment_deadline"]
        payment = txn.state.pending_payment_for(case_id=case.id)
        actions = [
            CaseStatusChanged(case_id=case.id, status=target, changes=changes),
            *_follow_override(payment, payment_deadline, now),
        ]
        if payment is None and payment_deadline is not None:
            # Reissue the last unpaid request.
            previous = _latest_unpaid_case_payment(txn.state, case.id)
            if previous is None:
                raise InvalidRequestError(
                    "Case has no payment request to reissue",
                    {"case_id": case.id},
                )
            actions.append(
                PaymentAdded(
                    payment=previous.model_copy(
                        update={
                            "id": engine.rng.new_id("pay"),
                            "status": PaymentStatus.pending,
                            "created_at": now,
                            "deadline": payment_deadline,
                            "paid_at": None,
                            "expired_at": None,
                            "refunded_at": None,
                        }
                    )
                )
            )
        txn.dispatch(*actions)
        state = txn.dispatch(
            notification_added(
                engine,
                NotificationType.warning,
                "Status Override",
                f"Case #{short_id(case.id)} status changed from "
                f"{case.status.value} to {target.value} by admin.",
                event=EventType.admin_override,
                actor=actor,
                case_id=case.id,
            )
        )
    if target in CASE_TERMINAL:
        engine.scheduler.cancel_prefix(f"auto-reply:{case.id}:")
    publish_event(EventType.admin_override, "case", case.id, actor.id)
    logger.warning(
        "Admin %s overrode case %s: %s -> %s",
        actor.id,
        case.id,
        case.status.value,
        target.value,
    )
    return state.case(case.id)


def refund_payment(engine: LifecycleEngine, payment_id: str, actor: Actor) -> Payment:
    require_admin(actor, "refund payments")
    with engine.store.transaction() as txn:
        payment = txn.state.payment(payment_id)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        if not can_transition(
            PAYMENT_TRANSITIONS, payment.status, PaymentStatus.refunded
        ):
            raise InvalidTransitionError(
                "payment", payment.id, payment.status, PaymentStatus.refunded
            )
        state = txn.dispatch(
            PaymentStatusChanged(
                payment_id=payment.id,
                status=PaymentStatus.refunded,
                changes={"refunded_at": engine.now()},
            ),
            notification_added(
                engine,
                NotificationType.info,
                "Payment Refunded",
                f"Payment of {engine.format_amount(payment.amount)} was refunded.",
                event=EventType.payment_refunded,
                actor=actor,
                appointment_id=payment.appointment_id,
                case_id=payment.case_id,
                payment_id=payment.id,
            ),
        )
    publish_event(EventType.payment_refunded, "payment", payment.id, actor.id)
    logger.info("Refunded payment %s", payment.id)
    return state.payment(payment.id)


def update_config(
    engine: LifecycleEngine, patch: Mapping[str, Any], actor: Actor
) -> TimingPolicy:
    """Merge ``patch`` into the timing policy.

    Only deadlines computed after the change use the new values.
    """
    require_admin(actor, "update the timing policy")
    values = {k: v for k, v in patch.items() if v is not None}
    unknown = sorted(set(values) - set(POLICY_BOUNDS))
    if unknown:
        raise InvalidRequestError("Unknown config fields", {"fields": unknown})
    for name, value in values.items():
        low, high = POLICY_BOUNDS[name]
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidRequestError(f"{name} must be an integer", {"field": name})
        if not low <= value <= high:
            raise ConfigOutOfRangeError(name, value, low, high)
    with engine.store.transaction() as txn:
        state = txn.dispatch(
            ConfigUpdated(patch=values),
            notification_added(
                engine,
                NotificationType.info,
                "Config Updated",
                "System time windows have been updated.",
                event=EventType.config_updated,
                actor=actor,
            ),
        )
    publish_event(EventType.config_updated, "config", None, actor.id)
    logger.info("Timing policy updated by %s: %s", actor.id, values)
    return state.config


def run_sweep(engine: LifecycleEngine, actor: Actor) -> SweepResult:
    require_admin(actor, "run the deadline sweep")
    return engine.sweeper.sweep()
