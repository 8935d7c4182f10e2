from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, List

from app.errors import InvalidRequestError, InvalidTransitionError, NotFoundError
from app.models.lifecycle import (
    CASE_TERMINAL,
    CASE_TRANSITIONS,
    ActorRole,
    AppointmentStatus,
    Case,
    CaseDocument,
    CaseMessage,
    CaseStatus,
    LifecycleState,
    NotificationType,
    Payment,
    PaymentStatus,
    PaymentType,
    can_transition,
)
from app.schemas.lifecycle import CaseDocumentCreate, CaseStart
from app.services.actions import (
    CaseAdded,
    CaseStatusChanged,
    CaseUpdated,
    DocumentAddedToCase,
    DocumentRemovedFromCase,
    MessageAddedToCase,
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

CASE_SOURCE_APPOINTMENT_STATUSES = frozenset(
    {AppointmentStatus.confirmed, AppointmentStatus.completed}
)

LAWYER_REPLIES = (
    "Thank you for the update. I will review this shortly.",
    "Noted. I will factor this into our strategy.",
    "Message received. I will get back to you by end of day.",
    "Thank you, this helps with the proceedings.",
    "Understood. I will follow up on this matter.",
)
CLIENT_REPLIES = (
    "Thank you. I will prepare the documents you asked for.",
    "Understood. I will be available on the hearing date.",
    "Thanks for the update. Looking forward to the next steps.",
    "Noted. I will send you the information shortly.",
    "Thank you for your guidance on this.",
)


def _load(state: LifecycleState, case_id: str) -> Case:
    case = state.case(case_id)
    if case is None:
        raise NotFoundError("Case", case_id)
    return case


def _ensure_transition(case: Case, target: CaseStatus) -> None:
    if not can_transition(CASE_TRANSITIONS, case.status, target):
        raise InvalidTransitionError("case", case.id, case.status, target)


def _ensure_open(case: Case, action: str) -> None:
    if case.status in CASE_TERMINAL:
        raise InvalidTransitionError("case", case.id, case.status, action)


def _auto_reply_prefix(case_id: str) -> str:
    return f"auto-reply:{case_id}:"


class Cases(ListResponseMixin):
    @staticmethod
    def get(engine: LifecycleEngine, case_id: str) -> Case:
        return _load(engine.snapshot(), case_id)

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
    ) -> List[Case]:
        items = list(engine.snapshot().cases)
        if client_id is not None:
            items = [c for c in items if c.client_id == client_id]
        if lawyer_id is not None:
            items = [c for c in items if c.lawyer_id == lawyer_id]
        if status is not None:
            wanted = coerce_enum(CaseStatus, status)
            items = [c for c in items if c.status == wanted]
        items = apply_ordering(
            items,
            order_by,
            order_dir,
            {"created_at", "next_payment_deadline", "progress", "total_fees"},
        )
        return apply_pagination(items, limit, offset)

    @staticmethod
    def start(
        engine: LifecycleEngine, appointment_id: str, payload: CaseStart, actor: Actor
    ) -> Case:
        with engine.store.transaction() as txn:
            appointment = txn.state.appointment(appointment_id)
            if appointment is None:
                raise NotFoundError("Appointment", appointment_id)
            require_party(actor, "open a case", lawyer_id=appointment.lawyer_id)
            if appointment.status not in CASE_SOURCE_APPOINTMENT_STATUSES:
                raise InvalidTransitionError(
                    "appointment", appointment.id, appointment.status, "case"
                )
            case = Case(
                id=engine.rng.new_id("case"),
                appointment_id=appointment.id,
                client_id=appointment.client_id,
                client_name=appointment.client_name,
                lawyer_id=appointment.lawyer_id,
                lawyer_name=appointment.lawyer_name,
                case_type=payload.case_type or appointment.case_type,
                title=payload.title,
                description=payload.description or appointment.description,
                status=CaseStatus.active,
                created_at=engine.now(),
                total_fees=payload.estimated_fees,
                paid_amount=appointment.consultation_fee,
                progress=10,
            )
            txn.dispatch(
                CaseAdded(case=case),
                notification_added(
                    engine,
                    NotificationType.success,
                    "Case Started",
                    f'Case "{case.title}" has been created from consultation '
                    f"#{short_id(appointment.id)}.",
                    event=EventType.case_started,
                    actor=actor,
                    appointment_id=appointment.id,
                    case_id=case.id,
                ),
            )
        publish_event(EventType.case_started, "case", case.id, actor.id)
        logger.info("Started case %s from appointment %s", case.id, appointment.id)
        return case

    @staticmethod
    def request_payment(
        engine: LifecycleEngine,
        case_id: str,
        amount: int,
        actor: Actor,
        description: str = "Additional case fee",
    ) -> Payment:
        with engine.store.transaction() as txn:
            now = engine.now()
            case = _load(txn.state, case_id)
            require_party(actor, "request a case payment", lawyer_id=case.lawyer_id)
            _ensure_transition(case, CaseStatus.payment_pending)
            if amount <= 0:
                raise InvalidRequestError(
                    "Payment amount must be positive", {"amount": amount}
                )
            days = txn.state.config.case_payment_days
            deadline = now + timedelta(hours=days * 24)
            payment = Payment(
                id=engine.rng.new_id("pay"),
                case_id=case.id,
                client_id=case.client_id,
                lawyer_id=case.lawyer_id,
                amount=amount,
                type=PaymentType.case_fee,
                status=PaymentStatus.pending,
                created_at=now,
                deadline=deadline,
                description=description,
            )
            txn.dispatch(
                PaymentAdded(payment=payment),
                CaseStatusChanged(
                    case_id=case.id,
                    status=CaseStatus.payment_pending,
                    changes={
                        "next_payment_deadline": deadline,
                        "total_fees": case.total_fees + amount,
                    },
                ),
                notification_added(
                    engine,
                    NotificationType.info,
                    "Payment Requested",
                    f"{engine.format_amount(amount)} payment requested for case "
                    f'"{case.title}".',
                    event=EventType.case_payment_requested,
                    actor=actor,
                    case_id=case.id,
                    payment_id=payment.id,
                ),
            )
        publish_event(EventType.case_payment_requested, "case", case.id, actor.id)
        logger.info(
            "Requested payment %s of %d for case %s", payment.id, amount, case.id
        )
        return payment

    @staticmethod
    def close(engine: LifecycleEngine, case_id: str, actor: Actor) -> Case:
        with engine.store.transaction() as txn:
            case = _load(txn.state, case_id)
            require_party(actor, "close this case", lawyer_id=case.lawyer_id)
            _ensure_transition(case, CaseStatus.closed)
            state = txn.dispatch(
                CaseStatusChanged(
                    case_id=case.id,
                    status=CaseStatus.closed,
                    changes={"closed_at": engine.now(), "progress": 100},
                ),
                notification_added(
                    engine,
                    NotificationType.success,
                    "Case Closed",
                    f"Case #{short_id(case.id)} has been closed.",
                    event=EventType.case_closed,
                    actor=actor,
                    case_id=case.id,
                ),
            )
        engine.scheduler.cancel_prefix(_auto_reply_prefix(case.id))
        publish_event(EventType.case_closed, "case", case.id, actor.id)
        logger.info("Closed case %s", case.id)
        return state.case(case.id)

    @staticmethod
    def terminate(
        engine: LifecycleEngine, case_id: str, actor: Actor, reason: str = ""
    ) -> Case:
        with engine.store.transaction() as txn:
            case = _load(txn.state, case_id)
            require_party(
                actor,
                "terminate this case",
                client_id=case.client_id,
                lawyer_id=case.lawyer_id,
            )
            _ensure_transition(case, CaseStatus.terminated)
            suffix = f" Reason: {reason}" if reason else ""
            state = txn.dispatch(
                CaseStatusChanged(
                    case_id=case.id,
                    status=CaseStatus.terminated,
                    changes={
                        "terminated_at": engine.now(),
                        "termination_reason": reason or None,
                    },
                ),
                notification_added(
                    engine,
                    NotificationType.error,
                    "Case Terminated",
                    f"Case #{short_id(case.id)} has been terminated.{suffix}",
                    event=EventType.case_terminated,
                    actor=actor,
                    case_id=case.id,
                ),
            )
        engine.scheduler.cancel_prefix(_auto_reply_prefix(case.id))
        publish_event(EventType.case_terminated, "case", case.id, actor.id)
        logger.info("Terminated case %s by %s", case.id, actor.id)
        return state.case(case.id)

    @staticmethod
    def update_progress(
        engine: LifecycleEngine, case_id: str, progress: int, actor: Actor
    ) -> Case:
        with engine.store.transaction() as txn:
            case = _load(txn.state, case_id)
            if not 0 <= progress <= 100:
                raise InvalidRequestError(
                    "Progress must be between 0 and 100", {"progress": progress}
                )
            require_party(actor, "update case progress", lawyer_id=case.lawyer_id)
            _ensure_open(case, "progress")
            state = txn.dispatch(
                CaseUpdated(case_id=case.id, changes={"progress": progress})
            )
        publish_event(EventType.case_progress_updated, "case", case.id, actor.id)
        logger.info("Case %s progress %d -> %d", case.id, case.progress, progress)
        return state.case(case.id)

    @staticmethod
    def add_document(
        engine: LifecycleEngine,
        case_id: str,
        payload: CaseDocumentCreate,
        actor: Actor,
    ) -> CaseDocument:
        with engine.store.transaction() as txn:
            case = _load(txn.state, case_id)
            require_party(
                actor,
                "upload to this case",
                client_id=case.client_id,
                lawyer_id=case.lawyer_id,
            )
            _ensure_open(case, "document")
            document = CaseDocument(
                id=engine.rng.new_id("doc"),
                **payload.model_dump(),
                uploaded_by=actor.id,
                uploaded_at=engine.now(),
            )
            txn.dispatch(
                DocumentAddedToCase(case_id=case.id, document=document),
                notification_added(
                    engine,
                    NotificationType.success,
                    "Document Uploaded",
                    f'"{document.name}" added to case.',
                    event=EventType.case_document_added,
                    actor=actor,
                    case_id=case.id,
                ),
            )
        publish_event(EventType.case_document_added, "case", case.id, actor.id)
        logger.info("Added document %s to case %s", document.id, case.id)
        return document

    @staticmethod
    def remove_document(
        engine: LifecycleEngine, case_id: str, document_id: str, actor: Actor
    ) -> None:
        with engine.store.transaction() as txn:
            case = _load(txn.state, case_id)
            require_party(
                actor,
                "remove documents from this case",
                client_id=case.client_id,
                lawyer_id=case.lawyer_id,
            )
            _ensure_open(case, "document")
            if not any(d.id == document_id for d in case.documents):
                raise NotFoundError("Document", document_id)
            txn.dispatch(
                DocumentRemovedFromCase(case_id=case.id, document_id=document_id)
            )
        publish_event(EventType.case_document_removed, "case", case.id, actor.id)
        logger.info("Removed document %s from case %s", document_id, case.id)

    @staticmethod
    def add_message(
        engine: LifecycleEngine, case_id: str, text: str, actor: Actor
    ) -> CaseMessage:
        with engine.store.transaction() as txn:
            case = _load(txn.state, case_id)
            require_party(
                actor,
                "message on this case",
                client_id=case.client_id,
                lawyer_id=case.lawyer_id,
            )
            _ensure_open(case, "message")
            if actor.role == ActorRole.lawyer:
                default_name = case.lawyer_name or "Attorney"
            elif actor.role == ActorRole.client:
                default_name = case.client_name or "Client"
            else:
                default_name = "Administrator"
            message = CaseMessage(
                id=engine.rng.new_id("msg"),
                sender_role=actor.role,
                sender_id=actor.id,
                sender_name=actor.name or default_name,
                text=text,
                timestamp=engine.now(),
            )
            txn.dispatch(MessageAddedToCase(case_id=case.id, message=message))
        publish_event(EventType.case_message_added, "case", case.id, actor.id)
        logger.info("Added message %s to case %s", message.id, case.id)

        if engine.auto_reply_enabled and actor.role in (
            ActorRole.client,
            ActorRole.lawyer,
        ):
            low, high = engine.auto_reply_window
            engine.scheduler.schedule(
                f"{_auto_reply_prefix(case.id)}{message.id}",
                engine.rng.uniform(low, high),
                lambda: Cases.deliver_auto_reply(engine, case.id, actor.role),
            )
        return message

    @staticmethod
    def deliver_auto_reply(
        engine: LifecycleEngine, case_id: str, replying_to: ActorRole
    ) -> CaseMessage | None:
        """Post the simulated counterpart's reply, unless the case has ended."""
        with engine.store.transaction() as txn:
            case = txn.state.case(case_id)
            if case is None or case.status in CASE_TERMINAL:
                logger.info("Skipping auto-reply for ended case %s", case_id)
                return None
            if replying_to == ActorRole.lawyer:
                role, sender_id = ActorRole.client, case.client_id
                name, texts = case.client_name or "Client", CLIENT_REPLIES
            else:
                role, sender_id = ActorRole.lawyer, case.lawyer_id
                name, texts = case.lawyer_name or "Attorney", LAWYER_REPLIES
            message = CaseMessage(
                id=engine.rng.new_id("msg"),
                sender_role=role,
                sender_id=sender_id,
                sender_name=name,
                text=engine.rng.choice(texts),
                timestamp=engine.now(),
                auto_reply=True,
            )
            txn.dispatch(MessageAddedToCase(case_id=case.id, message=message))
        publish_event(EventType.case_auto_reply, "case", case.id)
        logger.info("Delivered auto-reply %s on case %s", message.id, case.id)
        return message


cases = Cases()
