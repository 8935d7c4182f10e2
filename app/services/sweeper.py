"""Deadline sweeper.

Breach candidates live in a min-heap keyed by deadline, fed by store commits.
``sweep`` pops every entry that is due and re-checks the breach predicate
against the current state before acting, so stale entries (the entity moved
on or got a new deadline) fall away and a breach is handled exactly once no
matter how often or how late the sweep runs.
"""

from __future__ import annotations

import enum
import heapq
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from threading import RLock
from typing import TYPE_CHECKING, List, Optional, Sequence

from app.models.lifecycle import (
    AppointmentStatus,
    CaseStatus,
    LifecycleState,
    NotificationType,
    PaymentStatus,
)
from app.services.actions import (
    Action,
    AppointmentCreated,
    AppointmentStatusChanged,
    CaseAdded,
    CaseStatusChanged,
    PaymentStatusChanged,
    StateSeeded,
)
from app.services.event import EventType, publish_event
from app.services.notification import notification_added, short_id

if TYPE_CHECKING:
    from app.services.engine import LifecycleEngine

logger = logging.getLogger(__name__)


class DeadlineKind(enum.Enum):
    appointment_approval = "appointment_approval"
    appointment_payment = "appointment_payment"
    case_payment = "case_payment"


@dataclass(order=True)
class DeadlineEntry:
    deadline: datetime
    seq: int
    kind: DeadlineKind = field(compare=False)
    entity_id: str = field(compare=False)


@dataclass
class SweepResult:
    expired_appointment_ids: List[str] = field(default_factory=list)
    expired_payment_ids: List[str] = field(default_factory=list)
    overdue_case_ids: List[str] = field(default_factory=list)

    @property
    def breaches(self) -> int:
        return len(self.expired_appointment_ids) + len(self.overdue_case_ids)


class DeadlineSweeper:
    def __init__(self, engine: LifecycleEngine):
        self._engine = engine
        self._heap: List[DeadlineEntry] = []
        self._seq = itertools.count(1)
        self._lock = RLock()
        engine.store.subscribe(self.observe)
        self.rebuild(engine.store.snapshot())

    # ------------------------------------------------------------------
    # Index maintenance
    # ------------------------------------------------------------------

    def _push(
        self, kind: DeadlineKind, entity_id: str, deadline: Optional[datetime]
    ) -> None:
        if deadline is None:
            return
        with self._lock:
            heapq.heappush(
                self._heap, DeadlineEntry(deadline, next(self._seq), kind, entity_id)
            )

    def rebuild(self, state: LifecycleState) -> None:
        with self._lock:
            self._heap = []
            for appointment in state.appointments:
                if appointment.status == AppointmentStatus.pending_approval:
                    self._push(
                        DeadlineKind.appointment_approval,
                        appointment.id,
                        appointment.approval_deadline,
                    )
                elif appointment.status == AppointmentStatus.approved_awaiting_payment:
                    self._push(
                        DeadlineKind.appointment_payment,
                        appointment.id,
                        appointment.payment_deadline,
                    )
            for case in state.cases:
                if case.status == CaseStatus.payment_pending:
                    self._push(
                        DeadlineKind.case_payment, case.id, case.next_payment_deadline
                    )

    def observe(self, state: LifecycleState, actions: Sequence[Action]) -> None:
        for action in actions:
            if isinstance(action, StateSeeded):
                self.rebuild(state)
            elif isinstance(action, AppointmentCreated):
                appointment = action.appointment
                if appointment.status == AppointmentStatus.pending_approval:
                    self._push(
                        DeadlineKind.appointment_approval,
                        appointment.id,
                        appointment.approval_deadline,
                    )
            elif isinstance(action, AppointmentStatusChanged):
                if action.status == AppointmentStatus.pending_approval:
                    self._push(
                        DeadlineKind.appointment_approval,
                        action.appointment_id,
                        action.changes.get("approval_deadline"),
                    )
                elif action.status == AppointmentStatus.approved_awaiting_payment:
                    self._push(
                        DeadlineKind.appointment_payment,
                        action.appointment_id,
                        action.changes.get("payment_deadline"),
                    )
            elif isinstance(action, CaseAdded):
                if action.case.status == CaseStatus.payment_pending:
                    self._push(
                        DeadlineKind.case_payment,
                        action.case.id,
                        action.case.next_payment_deadline,
                    )
            elif isinstance(action, CaseStatusChanged):
                if action.status == CaseStatus.payment_pending:
                    self._push(
                        DeadlineKind.case_payment,
                        action.case_id,
                        action.changes.get("next_payment_deadline"),
                    )

    def pending_count(self) -> int:
        with self._lock:
            return len(self._heap)

    def next_deadline(self) -> Optional[datetime]:
        with self._lock:
            return self._heap[0].deadline if self._heap else None

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    def _pop_due(self, now: datetime) -> List[DeadlineEntry]:
        due: List[DeadlineEntry] = []
        with self._lock:
            while self._heap and self._heap[0].deadline <= now:
                due.append(heapq.heappop(self._heap))
        return due

    def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        now = now or self._engine.now()
        result = SweepResult()
        events: list[tuple[EventType, str, str]] = []
        due = self._pop_due(now)
        try:
            with self._engine.store.transaction() as txn:
                for entry in due:
                    if entry.kind == DeadlineKind.case_payment:
                        event = self._expire_case_payment(txn, entry, now, result)
                    else:
                        event = self._expire_appointment(txn, entry, now, result)
                    if event is not None:
                        events.append(event)
        except Exception:
            with self._lock:
                for entry in due:
                    heapq.heappush(self._heap, entry)
            logger.exception("Deadline sweep failed; %d entries requeued", len(due))
            raise
        for event_type, entity_type, entity_id in events:
            publish_event(event_type, entity_type, entity_id)
        if result.breaches:
            logger.info(
                "Deadline sweep expired %d appointments, %d payments; %d cases overdue",
                len(result.expired_appointment_ids),
                len(result.expired_payment_ids),
                len(result.overdue_case_ids),
            )
        return result

    def _expire_appointment(
        self, txn, entry: DeadlineEntry, now: datetime, result: SweepResult
    ):
        appointment = txn.state.appointment(entry.entity_id)
        if appointment is None:
            return None
        if entry.kind == DeadlineKind.appointment_approval:
            waiting = AppointmentStatus.pending_approval
            deadline = appointment.approval_deadline
        else:
            waiting = AppointmentStatus.approved_awaiting_payment
            deadline = appointment.payment_deadline
        if (
            appointment.status != waiting
            or deadline != entry.deadline
            or now < deadline
        ):
            return None

        txn.dispatch(
            AppointmentStatusChanged(
                appointment_id=appointment.id,
                status=AppointmentStatus.expired,
                changes={
                    "approval_deadline": None,
                    "payment_deadline": None,
                    "expired_at": now,
                },
            )
        )
        result.expired_appointment_ids.append(appointment.id)

        if entry.kind == DeadlineKind.appointment_approval:
            txn.dispatch(
                notification_added(
                    self._engine,
                    NotificationType.warning,
                    "Appointment Expired",
                    f"Appointment #{short_id(appointment.id)} expired. "
                    "The lawyer did not respond in time.",
                    event=EventType.appointment_expired,
                    appointment_id=appointment.id,
                    timestamp=now,
                )
            )
            return EventType.appointment_expired, "appointment", appointment.id

        payment = txn.state.pending_payment_for(appointment_id=appointment.id)
        if payment is not None:
            txn.dispatch(
                PaymentStatusChanged(
                    payment_id=payment.id,
                    status=PaymentStatus.expired,
                    changes={"expired_at": now},
                )
            )
            result.expired_payment_ids.append(payment.id)
        txn.dispatch(
            notification_added(
                self._engine,
                NotificationType.warning,
                "Payment Window Expired",
                f"Payment deadline passed for appointment #{short_id(appointment.id)}. "
                "Slot released.",
                event=EventType.appointment_payment_expired,
                appointment_id=appointment.id,
                payment_id=payment.id if payment else None,
                timestamp=now,
            )
        )
        return EventType.appointment_payment_expired, "appointment", appointment.id

    def _expire_case_payment(
        self, txn, entry: DeadlineEntry, now: datetime, result: SweepResult
    ):
        case = txn.state.case(entry.entity_id)
        if case is None:
            return None
        deadline = case.next_payment_deadline
        if (
            case.status != CaseStatus.payment_pending
            or deadline != entry.deadline
            or now < deadline
        ):
            return None

        txn.dispatch(
            CaseStatusChanged(
                case_id=case.id,
                status=CaseStatus.overdue,
                changes={"overdue_at": now},
            )
        )
        result.overdue_case_ids.append(case.id)
        payment = txn.state.pending_payment_for(case_id=case.id)
        if payment is not None:
            txn.dispatch(
                PaymentStatusChanged(
                    payment_id=payment.id,
                    status=PaymentStatus.expired,
                    changes={"expired_at": now},
                )
            )
            result.expired_payment_ids.append(payment.id)
        txn.dispatch(
            notification_added(
                self._engine,
                NotificationType.error,
                "Case Payment Overdue",
                f'Payment for case "{case.title}" is now overdue.',
                event=EventType.case_payment_overdue,
                case_id=case.id,
                payment_id=payment.id if payment else None,
                timestamp=now,
            )
        )
        return EventType.case_payment_overdue, "case", case.id
