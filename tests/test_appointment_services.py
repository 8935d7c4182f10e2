from datetime import datetime, timedelta, timezone

import pytest

from app.errors import (
    DeadlineAlreadyPassedError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
)
from app.models.lifecycle import (
    AppointmentStatus,
    NotificationType,
    PaymentStatus,
    PaymentType,
)
from app.services.appointment import appointments


START = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


class TestBookAppointment:
    def test_book_sets_approval_deadline(self, engine, booking, client_actor) -> None:
        appointment = appointments.book(engine, booking, client_actor)
        assert appointment.status == AppointmentStatus.pending_approval
        assert appointment.created_at == START
        assert appointment.approval_deadline == START + timedelta(hours=24)
        assert appointment.payment_deadline is None
        assert engine.snapshot().appointment(appointment.id) == appointment

    def test_book_emits_info_notification(self, engine, booking, client_actor) -> None:
        appointment = appointments.book(engine, booking, client_actor)
        feed = engine.snapshot().notifications
        assert len(feed) == 1
        assert feed[0].type == NotificationType.info
        assert feed[0].title == "Appointment Booked"
        assert feed[0].appointment_id == appointment.id

    def test_book_for_another_client_denied(
        self, engine, booking, other_client
    ) -> None:
        with pytest.raises(PermissionDeniedError):
            appointments.book(engine, booking, other_client)
        assert engine.snapshot().appointments == ()
        assert engine.snapshot().notifications == ()

    def test_admin_can_book(self, engine, booking, admin_actor) -> None:
        appointment = appointments.book(engine, booking, admin_actor)
        assert appointment.client_id == "client-1"


class TestApproveAppointment:
    def test_approve_creates_pending_payment(
        self, engine, booked, lawyer_actor
    ) -> None:
        appointment = appointments.approve(engine, booked.id, lawyer_actor)
        assert appointment.status == AppointmentStatus.approved_awaiting_payment
        assert appointment.approval_deadline is None
        assert appointment.payment_deadline == START + timedelta(minutes=10)
        assert appointment.approved_at == START

        payment = engine.snapshot().pending_payment_for(appointment_id=booked.id)
        assert payment is not None
        assert payment.type == PaymentType.consultation_fee
        assert payment.amount == booked.consultation_fee
        assert payment.status == PaymentStatus.pending
        assert payment.deadline == appointment.payment_deadline

    def test_other_lawyer_cannot_approve(self, engine, booked, other_lawyer) -> None:
        before = engine.snapshot()
        with pytest.raises(PermissionDeniedError):
            appointments.approve(engine, booked.id, other_lawyer)
        assert engine.snapshot() is before

    def test_client_cannot_approve(self, engine, booked, client_actor) -> None:
        with pytest.raises(PermissionDeniedError):
            appointments.approve(engine, booked.id, client_actor)

    def test_approve_after_deadline_rejected(
        self, engine, time_controller, booked, lawyer_actor
    ) -> None:
        time_controller.advance(timedelta(hours=24))
        with pytest.raises(DeadlineAlreadyPassedError):
            appointments.approve(engine, booked.id, lawyer_actor)
        appointment = engine.snapshot().appointment(booked.id)
        assert appointment.status == AppointmentStatus.pending_approval

    def test_approve_twice_rejected(self, engine, approved, lawyer_actor) -> None:
        with pytest.raises(InvalidTransitionError):
            appointments.approve(engine, approved.id, lawyer_actor)
        payments = [
            p for p in engine.snapshot().payments if p.appointment_id == approved.id
        ]
        assert len(payments) == 1

    def test_approve_missing(self, engine, lawyer_actor) -> None:
        with pytest.raises(NotFoundError):
            appointments.approve(engine, "apt-missing", lawyer_actor)


class TestDeclineAppointment:
    def test_decline(self, engine, booked, lawyer_actor) -> None:
        appointment = appointments.decline(engine, booked.id, lawyer_actor, "Conflict")
        assert appointment.status == AppointmentStatus.declined
        assert appointment.approval_deadline is None
        assert appointment.decline_reason == "Conflict"
        assert engine.snapshot().notifications[0].type == NotificationType.warning
        assert engine.sweeper.sweep(START + timedelta(days=2)).breaches == 0

    def test_decline_after_approval_rejected(
        self, engine, approved, lawyer_actor
    ) -> None:
        with pytest.raises(InvalidTransitionError):
            appointments.decline(engine, approved.id, lawyer_actor)


class TestCompleteAndCancel:
    def test_complete_confirmed(self, engine, confirmed, lawyer_actor) -> None:
        appointment = appointments.complete(engine, confirmed.id, lawyer_actor)
        assert appointment.status == AppointmentStatus.completed
        assert appointment.completed_at == START

    def test_complete_requires_confirmed(self, engine, booked, lawyer_actor) -> None:
        with pytest.raises(InvalidTransitionError):
            appointments.complete(engine, booked.id, lawyer_actor)

    def test_client_cancels_confirmed(self, engine, confirmed, client_actor) -> None:
        appointment = appointments.cancel(engine, confirmed.id, client_actor, "Moved")
        assert appointment.status == AppointmentStatus.cancelled
        assert appointment.cancel_reason == "Moved"

    def test_other_client_cannot_cancel(self, engine, confirmed, other_client) -> None:
        with pytest.raises(PermissionDeniedError):
            appointments.cancel(engine, confirmed.id, other_client)

    def test_cancel_pending_rejected(self, engine, booked, client_actor) -> None:
        with pytest.raises(InvalidTransitionError):
            appointments.cancel(engine, booked.id, client_actor)


class TestListAppointments:
    def test_list_filters(self, engine, booking, booked, admin_actor) -> None:
        other = booking.model_copy(update={"lawyer_id": "lawyer-2"})
        appointments.book(engine, other, admin_actor)
        result = appointments.list(
            engine,
            client_id=None,
            lawyer_id="lawyer-1",
            status="pending_approval",
            order_by="created_at",
            order_dir="desc",
            limit=10,
            offset=0,
        )
        assert [a.id for a in result] == [booked.id]

    def test_list_response_envelope(self, engine, booked) -> None:
        response = appointments.list_response(
            engine, None, None, None, "created_at", "desc", 10, 0
        )
        assert response["count"] == 1
        assert response["limit"] == 10
        assert response["offset"] == 0
