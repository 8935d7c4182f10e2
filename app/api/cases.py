from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_actor, get_engine
from app.models.lifecycle import Case, CaseDocument, CaseMessage, Payment
from app.schemas.common import ListResponse
from app.schemas.lifecycle import (
    CaseCreate,
    CaseDocumentCreate,
    CaseMessageCreate,
    CasePaymentRequest,
    CaseProgressUpdate,
    CaseStart,
    CaseTerminate,
)
from app.services.auth import Actor
from app.services.case import cases
from app.services.engine import LifecycleEngine

router = APIRouter(prefix="/cases", tags=["cases"])


@router.post("", response_model=Case, status_code=status.HTTP_201_CREATED)
def start_case(
    payload: CaseCreate,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    data = CaseStart(**payload.model_dump(exclude={"appointment_id"}))
    return cases.start(engine, payload.appointment_id, data, actor)


@router.get("/{case_id}", response_model=Case)
def get_case(case_id: str, engine: LifecycleEngine = Depends(get_engine)):
    return cases.get(engine, case_id)


@router.get("", response_model=ListResponse[Case])
def list_cases(
    client_id: str | None = None,
    lawyer_id: str | None = None,
    status: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    engine: LifecycleEngine = Depends(get_engine),
):
    return cases.list_response(
        engine, client_id, lawyer_id, status, order_by, order_dir, limit, offset
    )


@router.post(
    "/{case_id}/payments",
    response_model=Payment,
    status_code=status.HTTP_201_CREATED,
)
def request_case_payment(
    case_id: str,
    payload: CasePaymentRequest,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    return cases.request_payment(
        engine, case_id, payload.amount, actor, payload.description
    )


@router.post("/{case_id}/close", response_model=Case)
def close_case(
    case_id: str,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    return cases.close(engine, case_id, actor)


@router.post("/{case_id}/terminate", response_model=Case)
def terminate_case(
    case_id: str,
    payload: CaseTerminate | None = None,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    reason = payload.reason if payload else ""
    return cases.terminate(engine, case_id, actor, reason)


@router.patch("/{case_id}/progress", response_model=Case)
def update_case_progress(
    case_id: str,
    payload: CaseProgressUpdate,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    return cases.update_progress(engine, case_id, payload.progress, actor)


@router.post(
    "/{case_id}/documents",
    response_model=CaseDocument,
    status_code=status.HTTP_201_CREATED,
)
def add_case_document(
    case_id: str,
    payload: CaseDocumentCreate,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    return cases.add_document(engine, case_id, payload, actor)


@router.delete(
    "/{case_id}/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT
)
def remove_case_document(
    case_id: str,
    document_id: str,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    cases.remove_document(engine, case_id, document_id, actor)


@router.post(
    "/{case_id}/messages",
    response_model=CaseMessage,
    status_code=status.HTTP_201_CREATED,
)
def add_case_message(
    case_id: str,
    payload: CaseMessageCreate,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    return cases.add_message(engine, case_id, payload.text, actor)
