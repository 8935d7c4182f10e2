from datetime import datetime, timedelta, timezone

import pytest

from app.models.lifecycle import (
    Appointment,
    AppointmentStatus,
    LifecycleState,
    Notification,
    NotificationType,
    Payment,
    PaymentStatus,
    PaymentType,
)
from app.services.actions import (
    AppointmentCreated,
    AppointmentStatusChanged,
    ConfigUpdated,
    NotificationAdded,
    NotificationDismissed,
    PaymentAdded,
    PaymentStatusChanged,
    StateSeeded,
)
from app.services.reducer import apply, apply_all

NOW = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def _make_appointment(appointment_id="apt-1", **overrides):
    data = {
        "id": appointment_id,
        "client_id": "client-1",
        "lawyer_id": "lawyer-1",
        "lawyer_name": "Anjali Fernando",
        "consultation_fee": 5000,
        "status": AppointmentStatus.pending_approval,
        "created_at": NOW,
        "approval_deadline": NOW + timedelta(hours=24),
    }
    data.update(overrides)
    return Appointment(**data)


def _make_payment(payment_id="pay-1", **overrides):
    data = {
        "id": payment_id,
        "appointment_id": "apt-1",
        "client_id": "client-1",
        "lawyer_id": "lawyer-1",
        "amount": 5000,
        "type": PaymentType.consultation_fee,
        "status": PaymentStatus.pending,
        "created_at": NOW,
        "deadline": NOW + timedelta(minutes=10),
    }
    data.update(overrides)
    return Payment(**data)


def _make_notification(notification_id):
    return Notification(
        id=notification_id,
        timestamp=NOW,
        type=NotificationType.info,
        title="Title",
        message="Message",
    )


class TestReducer:
    def test_appointment_created_prepends(self) -> None:
        first = _make_appointment("apt-1")
        second = _make_appointment("apt-2")
        state = apply_all(
            LifecycleState(),
            [
                AppointmentCreated(appointment=first),
                AppointmentCreated(appointment=second),
            ],
        )
        assert [a.id for a in state.appointments] == ["apt-2", "apt-1"]

    def test_does_not_mutate_input(self) -> None:
        state = LifecycleState(appointments=(_make_appointment(),))
        new_state = apply(
            state,
            AppointmentStatusChanged(
                appointment_id="apt-1",
                status=AppointmentStatus.declined,
                changes={"declined_at": NOW},
            ),
        )
        assert state.appointments[0].status == AppointmentStatus.pending_approval
        assert new_state.appointments[0].status == AppointmentStatus.declined
        assert new_state.appointments[0].declined_at == NOW

    def test_structural_sharing(self) -> None:
        state = LifecycleState(
            appointments=(_make_appointment(),), payments=(_make_payment(),)
        )
        new_state = apply(
            state,
            PaymentStatusChanged(
                payment_id="pay-1",
                status=PaymentStatus.success,
                changes={"paid_at": NOW},
            ),
        )
        assert new_state.appointments is state.appointments
        assert new_state.notifications is state.notifications
        assert new_state.config is state.config
        assert new_state.payments is not state.payments

    def test_unknown_id_returns_same_state(self) -> None:
        state = LifecycleState(appointments=(_make_appointment(),))
        new_state = apply(
            state,
            AppointmentStatusChanged(
                appointment_id="missing", status=AppointmentStatus.expired
            ),
        )
        assert new_state is state

    def test_payment_added(self) -> None:
        state = apply(LifecycleState(), PaymentAdded(payment=_make_payment()))
        assert state.payment("pay-1").status == PaymentStatus.pending

    def test_notification_feed_is_capped(self) -> None:
        state = LifecycleState()
        for i in range(5):
            state = apply(
                state,
                NotificationAdded(notification=_make_notification(f"n-{i}"), limit=3),
            )
        assert [n.id for n in state.notifications] == ["n-4", "n-3", "n-2"]

    def test_notification_dismissed(self) -> None:
        state = LifecycleState(
            notifications=(_make_notification("n-1"), _make_notification("n-2"))
        )
        state = apply(state, NotificationDismissed(notification_id="n-1"))
        assert [n.id for n in state.notifications] == ["n-2"]

    def test_config_updated_merges(self) -> None:
        state = apply(LifecycleState(), ConfigUpdated(patch={"case_payment_days": 14}))
        assert state.config.case_payment_days == 14
        assert state.config.lawyer_approval_hours == 24

    def test_state_seeded_marks_initialized(self) -> None:
        state = apply(
            LifecycleState(), StateSeeded(appointments=(_make_appointment(),))
        )
        assert state.initialized is True
        assert len(state.appointments) == 1

    def test_unknown_action_raises(self) -> None:
        with pytest.raises(TypeError):
            apply(LifecycleState(), object())
