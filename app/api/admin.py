from fastapi import APIRouter, Depends

from app.api.deps import get_actor, get_engine
from app.models.lifecycle import Appointment, Case, Payment, TimingPolicy
from app.schemas.lifecycle import StatusOverride, SweepResultRead, TimingPolicyUpdate
from app.services import admin as admin_service
from app.services.auth import Actor
from app.services.engine import LifecycleEngine

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/appointments/{appointment_id}/status", response_model=Appointment)
def override_appointment_status(
    appointment_id: str,
    payload: StatusOverride,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    return admin_service.override_appointment_status(
        engine, appointment_id, payload.status, actor
    )


@router.post("/cases/{case_id}/status", response_model=Case)
def override_case_status(
    case_id: str,
    payload: StatusOverride,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    return admin_service.override_case_status(engine, case_id, payload.status, actor)


@router.post("/payments/{payment_id}/refund", response_model=Payment)
def refund_payment(
    payment_id: str,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    return admin_service.refund_payment(engine, payment_id, actor)


@router.get("/config", response_model=TimingPolicy)
def get_config(engine: LifecycleEngine = Depends(get_engine)):
    return engine.snapshot().config


@router.patch("/config", response_model=TimingPolicy)
def update_config(
    payload: TimingPolicyUpdate,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    return admin_service.update_config(
        engine, payload.model_dump(exclude_none=True), actor
    )


@router.post("/sweep", response_model=SweepResultRead)
def run_sweep(
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    result = admin_service.run_sweep(engine, actor)
    return {
        "expired_appointment_ids": result.expired_appointment_ids,
        "expired_payment_ids": result.expired_payment_ids,
        "overdue_case_ids": result.overdue_case_ids,
        "breaches": result.breaches,
    }
