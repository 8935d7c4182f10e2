from datetime import datetime, timedelta, timezone

import pytest

from app.errors import (
    DeadlineAlreadyPassedError,
    InvalidTransitionError,
    PermissionDeniedError,
)
from app.models.lifecycle import AppointmentStatus, CaseStatus, PaymentStatus
from app.services import admin as admin_service
from app.services.case import cases
from app.services.payment import payments

START = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


class TestConfirmPayment:
    def test_confirm_cascades_to_appointment(
        self, engine, approved, consultation_payment, client_actor
    ) -> None:
        payment = payments.confirm(engine, consultation_payment.id, client_actor)
        assert payment.status == PaymentStatus.success
        assert payment.paid_at == START

        appointment = engine.snapshot().appointment(approved.id)
        assert appointment.status == AppointmentStatus.confirmed
        assert appointment.approval_deadline is None
        assert appointment.payment_deadline is None
        assert engine.snapshot().notifications[0].title == "Payment Successful"

    def test_confirm_is_idempotent(
        self, engine, approved, consultation_payment, client_actor
    ) -> None:
        payments.confirm(engine, consultation_payment.id, client_actor)
        before = engine.snapshot()
        again = payments.confirm(engine, consultation_payment.id, client_actor)
        assert again.status == PaymentStatus.success
        assert engine.snapshot() is before

    def test_other_client_cannot_pay(
        self, engine, consultation_payment, other_client
    ) -> None:
        with pytest.raises(PermissionDeniedError):
            payments.confirm(engine, consultation_payment.id, other_client)

    def test_lawyer_cannot_pay(
        self, engine, consultation_payment, lawyer_actor
    ) -> None:
        with pytest.raises(PermissionDeniedError):
            payments.confirm(engine, consultation_payment.id, lawyer_actor)

    def test_confirm_after_deadline_rejected(
        self, engine, time_controller, consultation_payment, client_actor
    ) -> None:
        time_controller.advance(timedelta(minutes=10))
        with pytest.raises(DeadlineAlreadyPassedError):
            payments.confirm(engine, consultation_payment.id, client_actor)
        payment = engine.snapshot().payment(consultation_payment.id)
        assert payment.status == PaymentStatus.pending

    def test_confirm_expired_rejected(
        self, engine, time_controller, consultation_payment, client_actor
    ) -> None:
        time_controller.advance(timedelta(minutes=11))
        engine.tick()
        with pytest.raises(InvalidTransitionError):
            payments.confirm(engine, consultation_payment.id, client_actor)

    def test_confirm_refunded_rejected(
        self, engine, consultation_payment, client_actor, admin_actor
    ) -> None:
        admin_service.refund_payment(engine, consultation_payment.id, admin_actor)
        with pytest.raises(InvalidTransitionError):
            payments.confirm(engine, consultation_payment.id, client_actor)

    def test_confirm_case_payment_reactivates_case(
        self, engine, active_case, lawyer_actor, client_actor
    ) -> None:
        requested = cases.request_payment(
            engine, active_case.id, 15000, lawyer_actor, "Court filing fee"
        )
        payments.confirm(engine, requested.id, client_actor)

        case = engine.snapshot().case(active_case.id)
        assert case.status == CaseStatus.active
        assert case.paid_amount == active_case.paid_amount + 15000
        assert case.total_fees == active_case.total_fees + 15000
        assert case.next_payment_deadline is None


class TestListPayments:
    def test_list_by_type(self, engine, active_case, lawyer_actor) -> None:
        cases.request_payment(engine, active_case.id, 15000, lawyer_actor)
        result = payments.list(
            engine,
            client_id="client-1",
            lawyer_id=None,
            appointment_id=None,
            case_id=None,
            status=None,
            type="case_fee",
            order_by="created_at",
            order_dir="desc",
            limit=10,
            offset=0,
        )
        assert len(result) == 1
        assert result[0].amount == 15000
