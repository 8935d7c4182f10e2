import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class AppointmentStatus(enum.Enum):
    pending_approval = "pending_approval"
    approved_awaiting_payment = "approved_awaiting_payment"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"
    declined = "declined"
    expired = "expired"


class PaymentStatus(enum.Enum):
    pending = "pending"
    success = "success"
    expired = "expired"
    refunded = "refunded"


class PaymentType(enum.Enum):
    consultation_fee = "consultation_fee"
    case_fee = "case_fee"


class CaseStatus(enum.Enum):
    active = "active"
    payment_pending = "payment_pending"
    overdue = "overdue"
    closed = "closed"
    terminated = "terminated"


class NotificationType(enum.Enum):
    info = "info"
    success = "success"
    warning = "warning"
    error = "error"


class ActorRole(enum.Enum):
    client = "client"
    lawyer = "lawyer"
    admin = "admin"
    system = "system"


CASE_TERMINAL = frozenset({CaseStatus.closed, CaseStatus.terminated})

# Normal transition graph; admin overrides bypass it.
APPOINTMENT_TRANSITIONS = {
    AppointmentStatus.pending_approval: frozenset(
        {
            AppointmentStatus.approved_awaiting_payment,
            AppointmentStatus.declined,
            AppointmentStatus.expired,
        }
    ),
    AppointmentStatus.approved_awaiting_payment: frozenset(
        {AppointmentStatus.confirmed, AppointmentStatus.expired}
    ),
    AppointmentStatus.confirmed: frozenset(
        {AppointmentStatus.completed, AppointmentStatus.cancelled}
    ),
}
PAYMENT_TRANSITIONS = {
    PaymentStatus.pending: frozenset(
        {PaymentStatus.success, PaymentStatus.expired, PaymentStatus.refunded}
    ),
}
CASE_TRANSITIONS = {
    CaseStatus.active: frozenset(
        {CaseStatus.payment_pending, CaseStatus.closed, CaseStatus.terminated}
    ),
    CaseStatus.payment_pending: frozenset({CaseStatus.active, CaseStatus.overdue}),
    CaseStatus.overdue: frozenset({CaseStatus.closed, CaseStatus.terminated}),
}


def can_transition(graph: dict, current, target) -> bool:
    return target in graph.get(current, frozenset())


# ---------------------------------------------------------------------------
# Timing policy
# ---------------------------------------------------------------------------

POLICY_BOUNDS = {
    "lawyer_approval_hours": (1, 168),
    "client_payment_minutes": (5, 1440),
    "case_payment_days": (1, 90),
}


class TimingPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    lawyer_approval_hours: int = 24
    client_payment_minutes: int = 10
    case_payment_days: int = 7


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class Appointment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    client_id: str
    client_name: str | None = None
    lawyer_id: str
    lawyer_name: str
    case_type: str | None = None
    description: str | None = None
    scheduled_for: datetime | None = None
    status: AppointmentStatus
    created_at: datetime
    approval_deadline: datetime | None = None
    payment_deadline: datetime | None = None
    consultation_fee: int = Field(gt=0)
    approved_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    declined_at: datetime | None = None
    expired_at: datetime | None = None
    decline_reason: str | None = None
    cancel_reason: str | None = None
    overridden_at: datetime | None = None
    overridden_by: str | None = None

    @property
    def active_deadline(self) -> datetime | None:
        if self.status == AppointmentStatus.pending_approval:
            return self.approval_deadline
        if self.status == AppointmentStatus.approved_awaiting_payment:
            return self.payment_deadline
        return None


class Payment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    appointment_id: str | None = None
    case_id: str | None = None
    client_id: str
    lawyer_id: str
    amount: int = Field(gt=0)
    type: PaymentType
    status: PaymentStatus
    created_at: datetime
    deadline: datetime | None = None
    paid_at: datetime | None = None
    expired_at: datetime | None = None
    refunded_at: datetime | None = None
    description: str | None = None


class CaseDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    content_type: str | None = None
    size_bytes: int | None = None
    uploaded_by: str
    uploaded_at: datetime


class CaseMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    sender_role: ActorRole
    sender_id: str | None = None
    sender_name: str
    text: str
    timestamp: datetime
    auto_reply: bool = False


class Case(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    appointment_id: str
    client_id: str
    client_name: str | None = None
    lawyer_id: str
    lawyer_name: str | None = None
    case_type: str | None = None
    title: str
    description: str | None = None
    status: CaseStatus
    created_at: datetime
    documents: tuple[CaseDocument, ...] = ()
    messages: tuple[CaseMessage, ...] = ()
    total_fees: int = 0
    paid_amount: int = 0
    next_payment_deadline: datetime | None = None
    progress: int = Field(default=0, ge=0, le=100)
    closed_at: datetime | None = None
    terminated_at: datetime | None = None
    termination_reason: str | None = None
    overdue_at: datetime | None = None
    overridden_at: datetime | None = None
    overridden_by: str | None = None

    @property
    def balance_due(self) -> int:
        return max(0, self.total_fees - self.paid_amount)


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    type: NotificationType
    title: str
    message: str
    event: str | None = None
    actor_id: str | None = None
    appointment_id: str | None = None
    case_id: str | None = None
    payment_id: str | None = None


class LifecycleState(BaseModel):
    """Immutable snapshot of every collection the engine owns.

    Collections are ordered newest first.
    """

    model_config = ConfigDict(frozen=True)

    appointments: tuple[Appointment, ...] = ()
    cases: tuple[Case, ...] = ()
    payments: tuple[Payment, ...] = ()
    notifications: tuple[Notification, ...] = ()
    config: TimingPolicy = TimingPolicy()
    initialized: bool = False

    def appointment(self, appointment_id: str) -> Appointment | None:
        return next((a for a in self.appointments if a.id == appointment_id), None)

    def case(self, case_id: str) -> Case | None:
        return next((c for c in self.cases if c.id == case_id), None)

    def payment(self, payment_id: str) -> Payment | None:
        return next((p for p in self.payments if p.id == payment_id), None)

    def pending_payment_for(
        self, *, appointment_id: str | None = None, case_id: str | None = None
    ) -> Payment | None:
        for payment in self.payments:
            if payment.status != PaymentStatus.pending:
                continue
            if appointment_id is not None and payment.appointment_id == appointment_id:
                return payment
            if case_id is not None and payment.case_id == case_id:
                return payment
        return None
