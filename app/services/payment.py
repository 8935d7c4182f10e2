from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List

from app.errors import (
    DeadlineAlreadyPassedError,
    InvalidTransitionError,
    NotFoundError,
)
from app.models.lifecycle import (
    PAYMENT_TRANSITIONS,
    AppointmentStatus,
    CaseStatus,
    LifecycleState,
    NotificationType,
    Payment,
    PaymentStatus,
    PaymentType,
    can_transition,
)
from app.services.actions import (
    AppointmentStatusChanged,
    CaseStatusChanged,
    PaymentStatusChanged,
)
from app.services.auth import Actor, require_party
from app.services.common import apply_ordering, apply_pagination, coerce_enum
from app.services.event import EventType, publish_event
from app.services.notification import notification_added
from app.services.response import ListResponseMixin

if TYPE_CHECKING:
    from app.services.engine import LifecycleEngine

logger = logging.getLogger(__name__)


def _load(state: LifecycleState, payment_id: str) -> Payment:
    payment = state.payment(payment_id)
    if payment is None:
        raise NotFoundError("Payment", payment_id)
    return payment


class Payments(ListResponseMixin):
    @staticmethod
    def get(engine: LifecycleEngine, payment_id: str) -> Payment:
        return _load(engine.snapshot(), payment_id)

    @staticmethod
    def list(
        engine: LifecycleEngine,
        client_id: str | None,
        lawyer_id: str | None,
        appointment_id: str | None,
        case_id: str | None,
        status: str | None,
        type: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> List[Payment]:
        items = list(engine.snapshot().payments)
        if client_id is not None:
            items = [p for p in items if p.client_id == client_id]
        if lawyer_id is not None:
            items = [p for p in items if p.lawyer_id == lawyer_id]
        if appointment_id is not None:
            items = [p for p in items if p.appointment_id == appointment_id]
        if case_id is not None:
            items = [p for p in items if p.case_id == case_id]
        if status is not None:
            wanted = coerce_enum(PaymentStatus, status)
            items = [p for p in items if p.status == wanted]
        if type is not None:
            wanted = coerce_enum(PaymentType, type)
            items = [p for p in items if p.type == wanted]
        items = apply_ordering(
            items, order_by, order_dir, {"created_at", "deadline", "amount", "paid_at"}
        )
        return apply_pagination(items, limit, offset)

    @staticmethod
    def confirm(engine: LifecycleEngine, payment_id: str, actor: Actor) -> Payment:
        """Mark a pending payment paid and cascade to its appointment or case.

        Confirming a payment that already succeeded returns it unchanged.
        """
        with engine.store.transaction() as txn:
            now = engine.now()
            payment = _load(txn.state, payment_id)
            require_party(actor, "pay this payment", client_id=payment.client_id)
            if payment.status == PaymentStatus.success:
                logger.info("Payment %s already confirmed; ignoring", payment.id)
                return payment
            if not can_transition(
                PAYMENT_TRANSITIONS, payment.status, PaymentStatus.success
            ):
                raise InvalidTransitionError(
                    "payment", payment.id, payment.status, PaymentStatus.success
                )
            if payment.deadline is not None and now >= payment.deadline:
                raise DeadlineAlreadyPassedError(
                    "payment", payment.id, payment.deadline
                )

            actions = [
                PaymentStatusChanged(
                    payment_id=payment.id,
                    status=PaymentStatus.success,
                    changes={"paid_at": now},
                )
            ]
            if payment.appointment_id is not None:
                appointment = txn.state.appointment(payment.appointment_id)
                if appointment is None:
                    raise NotFoundError("Appointment", payment.appointment_id)
                if appointment.status != AppointmentStatus.approved_awaiting_payment:
                    raise InvalidTransitionError(
                        "appointment",
                        appointment.id,
                        appointment.status,
                        AppointmentStatus.confirmed,
                    )
                actions.append(
                    AppointmentStatusChanged(
                        appointment_id=appointment.id,
                        status=AppointmentStatus.confirmed,
                        changes={"approval_deadline": None, "payment_deadline": None},
                    )
                )
            if payment.case_id is not None:
                case = txn.state.case(payment.case_id)
                if case is None:
                    raise NotFoundError("Case", payment.case_id)
                if case.status != CaseStatus.payment_pending:
                    raise InvalidTransitionError(
                        "case", case.id, case.status, CaseStatus.active
                    )
                actions.append(
                    CaseStatusChanged(
                        case_id=case.id,
                        status=CaseStatus.active,
                        changes={
                            "paid_amount": case.paid_amount + payment.amount,
                            "next_payment_deadline": None,
                        },
                    )
                )
            actions.append(
                notification_added(
                    engine,
                    NotificationType.success,
                    "Payment Successful",
                    f"Payment of {engine.format_amount(payment.amount)} "
                    "has been confirmed.",
                    event=EventType.payment_succeeded,
                    actor=actor,
                    appointment_id=payment.appointment_id,
                    case_id=payment.case_id,
                    payment_id=payment.id,
                )
            )
            state = txn.dispatch(*actions)

        publish_event(EventType.payment_succeeded, "payment", payment.id, actor.id)
        if payment.appointment_id is not None:
            publish_event(
                EventType.appointment_confirmed,
                "appointment",
                payment.appointment_id,
                actor.id,
            )
        logger.info("Confirmed payment %s of %d", payment.id, payment.amount)
        return state.payment(payment.id)


payments = Payments()
