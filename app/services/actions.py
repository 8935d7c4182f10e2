"""Tagged actions accepted by the transition reducer.

Actions carry every time- or randomness-derived value (ids, timestamps,
deadlines) precomputed by the caller, so applying them is deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Union

from app.models.lifecycle import (
    Appointment,
    AppointmentStatus,
    Case,
    CaseDocument,
    CaseMessage,
    CaseStatus,
    Notification,
    Payment,
    PaymentStatus,
)


@dataclass(frozen=True)
class StateSeeded:
    appointments: tuple[Appointment, ...] = ()
    cases: tuple[Case, ...] = ()
    payments: tuple[Payment, ...] = ()


@dataclass(frozen=True)
class AppointmentCreated:
    appointment: Appointment


@dataclass(frozen=True)
class AppointmentStatusChanged:
    appointment_id: str
    status: AppointmentStatus
    changes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentAdded:
    payment: Payment


@dataclass(frozen=True)
class PaymentStatusChanged:
    payment_id: str
    status: PaymentStatus
    changes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CaseAdded:
    case: Case


@dataclass(frozen=True)
class CaseStatusChanged:
    case_id: str
    status: CaseStatus
    changes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CaseUpdated:
    case_id: str
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class DocumentAddedToCase:
    case_id: str
    document: CaseDocument


@dataclass(frozen=True)
class DocumentRemovedFromCase:
    case_id: str
    document_id: str


@dataclass(frozen=True)
class MessageAddedToCase:
    case_id: str
    message: CaseMessage


@dataclass(frozen=True)
class NotificationAdded:
    notification: Notification
    limit: int = 50


@dataclass(frozen=True)
class NotificationDismissed:
    notification_id: str


@dataclass(frozen=True)
class NotificationsCleared:
    pass


@dataclass(frozen=True)
class ConfigUpdated:
    patch: Mapping[str, int]


Action = Union[
    StateSeeded,
    AppointmentCreated,
    AppointmentStatusChanged,
    PaymentAdded,
    PaymentStatusChanged,
    CaseAdded,
    CaseStatusChanged,
    CaseUpdated,
    DocumentAddedToCase,
    DocumentRemovedFromCase,
    MessageAddedToCase,
    NotificationAdded,
    NotificationDismissed,
    NotificationsCleared,
    ConfigUpdated,
]
