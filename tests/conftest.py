from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.clock import RandomSource, TimeController
from app.models.lifecycle import ActorRole
from app.schemas.lifecycle import AppointmentCreate, CaseStart
from app.services.auth import Actor
from app.services.engine import LifecycleEngine

START = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def time_controller():
    tc = TimeController()
    tc.freeze_at(START)
    return tc


@pytest.fixture()
def rng():
    return RandomSource(seed=1234)


@pytest.fixture()
def engine(time_controller, rng):
    return LifecycleEngine(time=time_controller, rng=rng)


@pytest.fixture()
def client_actor():
    return Actor(id="client-1", role=ActorRole.client, name="Nimal Perera")


@pytest.fixture()
def other_client():
    return Actor(id="client-2", role=ActorRole.client, name="Kasun Silva")


@pytest.fixture()
def lawyer_actor():
    return Actor(id="lawyer-1", role=ActorRole.lawyer, name="Anjali Fernando")


@pytest.fixture()
def other_lawyer():
    return Actor(id="lawyer-2", role=ActorRole.lawyer, name="Ruwan Jayasinghe")


@pytest.fixture()
def admin_actor():
    return Actor(id="admin-1", role=ActorRole.admin, name="Admin")


def _headers(actor: Actor) -> dict:
    return {"X-Actor-Id": actor.id, "X-Actor-Role": actor.role.value}


@pytest.fixture()
def client_headers(client_actor):
    return _headers(client_actor)


@pytest.fixture()
def lawyer_headers(lawyer_actor):
    return _headers(lawyer_actor)


@pytest.fixture()
def admin_headers(admin_actor):
    return _headers(admin_actor)


@pytest.fixture()
def client(engine):
    from app.main import create_app

    return TestClient(create_app(engine=engine, start_sweeper=False))


@pytest.fixture()
def booking():
    return AppointmentCreate(
        client_id="client-1",
        client_name="Nimal Perera",
        lawyer_id="lawyer-1",
        lawyer_name="Anjali Fernando",
        consultation_fee=5000,
        case_type="Property",
        description="Boundary dispute",
    )


@pytest.fixture()
def booked(engine, booking, client_actor):
    from app.services.appointment import appointments

    return appointments.book(engine, booking, client_actor)


@pytest.fixture()
def approved(engine, booked, lawyer_actor):
    from app.services.appointment import appointments

    return appointments.approve(engine, booked.id, lawyer_actor)


@pytest.fixture()
def consultation_payment(engine, approved):
    return engine.snapshot().pending_payment_for(appointment_id=approved.id)


@pytest.fixture()
def confirmed(engine, approved, consultation_payment, client_actor):
    from app.services.payment import payments

    payments.confirm(engine, consultation_payment.id, client_actor)
    return engine.snapshot().appointment(approved.id)


@pytest.fixture()
def active_case(engine, confirmed, lawyer_actor):
    from app.services.case import cases

    return cases.start(
        engine,
        confirmed.id,
        CaseStart(title="Boundary dispute", estimated_fees=50000),
        lawyer_actor,
    )
