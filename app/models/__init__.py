from app.models.lifecycle import (  # noqa: F401
    APPOINTMENT_TRANSITIONS,
    CASE_TERMINAL,
    CASE_TRANSITIONS,
    PAYMENT_TRANSITIONS,
    POLICY_BOUNDS,
    ActorRole,
    Appointment,
    AppointmentStatus,
    Case,
    CaseDocument,
    CaseMessage,
    CaseStatus,
    LifecycleState,
    Notification,
    NotificationType,
    Payment,
    PaymentStatus,
    PaymentType,
    TimingPolicy,
    can_transition,
)
