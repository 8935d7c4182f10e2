import enum
import logging

from prometheus_client import Counter

logger = logging.getLogger(__name__)

LIFECYCLE_EVENTS = Counter(
    "lifecycle_events_total",
    "Lifecycle events committed by the engine",
    ["event"],
)


class EventType(enum.Enum):
    appointment_booked = "appointment.booked"
    appointment_approved = "appointment.approved"
    appointment_declined = "appointment.declined"
    appointment_confirmed = "appointment.confirmed"
    appointment_completed = "appointment.completed"
    appointment_cancelled = "appointment.cancelled"
    appointment_expired = "appointment.expired"
    appointment_payment_expired = "appointment.payment_expired"

    payment_succeeded = "payment.succeeded"
    payment_refunded = "payment.refunded"

    case_started = "case.started"
    case_payment_requested = "case.payment_requested"
    case_payment_overdue = "case.payment_overdue"
    case_progress_updated = "case.progress_updated"
    case_closed = "case.closed"
    case_terminated = "case.terminated"
    case_document_added = "case.document_added"
    case_document_removed = "case.document_removed"
    case_message_added = "case.message_added"
    case_auto_reply = "case.auto_reply"

    admin_override = "admin.override"
    config_updated = "config.updated"


def publish_event(
    event_type: EventType,
    entity_type: str,
    entity_id: str | None,
    actor_id: str | None = None,
) -> None:
    """Record a committed lifecycle event.

    Called after the store commit, so a rejected operation never counts.
    """
    LIFECYCLE_EVENTS.labels(event=event_type.value).inc()
    logger.debug(
        "Published event %s for %s/%s by %s",
        event_type.value,
        entity_type,
        entity_id,
        actor_id or "system",
    )
