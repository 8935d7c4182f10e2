from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_actor, get_engine
from app.models.lifecycle import Appointment
from app.schemas.common import ListResponse
from app.schemas.lifecycle import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentDecline,
)
from app.services.appointment import appointments
from app.services.auth import Actor
from app.services.engine import LifecycleEngine

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post("", response_model=Appointment, status_code=status.HTTP_201_CREATED)
def book_appointment(
    payload: AppointmentCreate,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    return appointments.book(engine, payload, actor)


@router.get("/{appointment_id}", response_model=Appointment)
def get_appointment(
    appointment_id: str, engine: LifecycleEngine = Depends(get_engine)
):
    return appointments.get(engine, appointment_id)


@router.get("", response_model=ListResponse[Appointment])
def list_appointments(
    client_id: str | None = None,
    lawyer_id: str | None = None,
    status: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    engine: LifecycleEngine = Depends(get_engine),
):
    return appointments.list_response(
        engine, client_id, lawyer_id, status, order_by, order_dir, limit, offset
    )


@router.post("/{appointment_id}/approve", response_model=Appointment)
def approve_appointment(
    appointment_id: str,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    return appointments.approve(engine, appointment_id, actor)


@router.post("/{appointment_id}/decline", response_model=Appointment)
def decline_appointment(
    appointment_id: str,
    payload: AppointmentDecline | None = None,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    reason = payload.reason if payload else ""
    return appointments.decline(engine, appointment_id, actor, reason)


@router.post("/{appointment_id}/complete", response_model=Appointment)
def complete_appointment(
    appointment_id: str,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    return appointments.complete(engine, appointment_id, actor)


@router.post("/{appointment_id}/cancel", response_model=Appointment)
def cancel_appointment(
    appointment_id: str,
    payload: AppointmentCancel | None = None,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    reason = payload.reason if payload else ""
    return appointments.cancel(engine, appointment_id, actor, reason)
