from fastapi import APIRouter, Depends, Query

from app.api.deps import get_actor, get_engine
from app.models.lifecycle import Payment
from app.schemas.common import ListResponse
from app.services.auth import Actor
from app.services.engine import LifecycleEngine
from app.services.payment import payments

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/{payment_id}", response_model=Payment)
def get_payment(payment_id: str, engine: LifecycleEngine = Depends(get_engine)):
    return payments.get(engine, payment_id)


@router.get("", response_model=ListResponse[Payment])
def list_payments(
    client_id: str | None = None,
    lawyer_id: str | None = None,
    appointment_id: str | None = None,
    case_id: str | None = None,
    status: str | None = None,
    type: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    engine: LifecycleEngine = Depends(get_engine),
):
    return payments.list_response(
        engine,
        client_id,
        lawyer_id,
        appointment_id,
        case_id,
        status,
        type,
        order_by,
        order_dir,
        limit,
        offset,
    )


@router.post("/{payment_id}/confirm", response_model=Payment)
def confirm_payment(
    payment_id: str,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    return payments.confirm(engine, payment_id, actor)
