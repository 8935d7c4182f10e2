from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Sequence

from app.models.lifecycle import (
    Appointment,
    AppointmentStatus,
    Case,
    CaseStatus,
    Payment,
    PaymentStatus,
    PaymentType,
)
from app.services.actions import StateSeeded

if TYPE_CHECKING:
    from app.services.engine import LifecycleEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeedData:
    appointments: Sequence[Appointment] = ()
    cases: Sequence[Case] = ()
    payments: Sequence[Payment] = ()


def seed_engine(engine: LifecycleEngine, seed: SeedData) -> bool:
    """Load ``seed`` into an empty store. Returns False if already seeded."""
    with engine.store.transaction() as txn:
        if txn.state.initialized:
            logger.info("Store already initialized; skipping seed")
            return False
        txn.dispatch(
            StateSeeded(
                appointments=tuple(seed.appointments),
                cases=tuple(seed.cases),
                payments=tuple(seed.payments),
            )
        )
    logger.info(
        "Seeded %d appointments, %d cases, %d payments",
        len(seed.appointments),
        len(seed.cases),
        len(seed.payments),
    )
    return True


def demo_seed(engine: LifecycleEngine) -> SeedData:
    """A small consistent dataset with deadlines relative to the engine clock."""
    now = engine.now()
    policy = engine.snapshot().config
    new_id = engine.rng.new_id

    pending = Appointment(
        id=new_id("apt"),
        client_id="client-1",
        client_name="Nimal Perera",
        lawyer_id="lawyer-1",
        lawyer_name="Anjali Fernando",
        case_type="Property",
        description="Boundary dispute with neighbour",
        status=AppointmentStatus.pending_approval,
        created_at=now - timedelta(hours=2),
        approval_deadline=now - timedelta(hours=2)
        + timedelta(hours=policy.lawyer_approval_hours),
        consultation_fee=5000,
    )
    awaiting = Appointment(
        id=new_id("apt"),
        client_id="client-2",
        client_name="Kasun Silva",
        lawyer_id="lawyer-1",
        lawyer_name="Anjali Fernando",
        case_type="Employment",
        description="Unpaid severance",
        status=AppointmentStatus.approved_awaiting_payment,
        created_at=now - timedelta(hours=5),
        approved_at=now - timedelta(minutes=3),
        payment_deadline=now
        - timedelta(minutes=3)
        + timedelta(minutes=policy.client_payment_minutes),
        consultation_fee=7500,
    )
    awaiting_payment = Payment(
        id=new_id("pay"),
        appointment_id=awaiting.id,
        client_id=awaiting.client_id,
        lawyer_id=awaiting.lawyer_id,
        amount=awaiting.consultation_fee,
        type=PaymentType.consultation_fee,
        status=PaymentStatus.pending,
        created_at=awaiting.approved_at,
        deadline=awaiting.payment_deadline,
        description=f"Consultation fee for appointment with {awaiting.lawyer_name}",
    )
    confirmed = Appointment(
        id=new_id("apt"),
        client_id="client-1",
        client_name="Nimal Perera",
        lawyer_id="lawyer-2",
        lawyer_name="Ruwan Jayasinghe",
        case_type="Family",
        description="Custody arrangement",
        status=AppointmentStatus.completed,
        created_at=now - timedelta(days=10),
        approved_at=now - timedelta(days=9),
        completed_at=now - timedelta(days=8),
        consultation_fee=6000,
    )
    confirmed_payment = Payment(
        id=new_id("pay"),
        appointment_id=confirmed.id,
        client_id=confirmed.client_id,
        lawyer_id=confirmed.lawyer_id,
        amount=confirmed.consultation_fee,
        type=PaymentType.consultation_fee,
        status=PaymentStatus.success,
        created_at=now - timedelta(days=9),
        paid_at=now - timedelta(days=9) + timedelta(minutes=4),
        description=f"Consultation fee for appointment with {confirmed.lawyer_name}",
    )
    case_deadline = now + timedelta(days=2)
    case = Case(
        id=new_id("case"),
        appointment_id=confirmed.id,
        client_id=confirmed.client_id,
        client_name=confirmed.client_name,
        lawyer_id=confirmed.lawyer_id,
        lawyer_name=confirmed.lawyer_name,
        case_type=confirmed.case_type,
        title="Custody arrangement",
        description=confirmed.description,
        status=CaseStatus.payment_pending,
        created_at=now - timedelta(days=8),
        total_fees=confirmed.consultation_fee + 50000 + 25000,
        paid_amount=confirmed.consultation_fee,
        next_payment_deadline=case_deadline,
        progress=40,
    )
    case_payment = Payment(
        id=new_id("pay"),
        case_id=case.id,
        client_id=case.client_id,
        lawyer_id=case.lawyer_id,
        amount=25000,
        type=PaymentType.case_fee,
        status=PaymentStatus.pending,
        created_at=case_deadline - timedelta(hours=policy.case_payment_days * 24),
        deadline=case_deadline,
        description="Court filing fees",
    )
    return SeedData(
        appointments=(pending, awaiting, confirmed),
        cases=(case,),
        payments=(case_payment, confirmed_payment, awaiting_payment),
    )
