from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_actor, get_engine
from app.models.lifecycle import Notification
from app.schemas.common import ListResponse
from app.schemas.notification import NotificationClearResponse
from app.services.auth import Actor
from app.services.engine import LifecycleEngine
from app.services.notification import notifications

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=ListResponse[Notification])
def list_notifications(
    type: str | None = None,
    appointment_id: str | None = None,
    case_id: str | None = None,
    payment_id: str | None = None,
    order_by: str = Query(default="timestamp"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    engine: LifecycleEngine = Depends(get_engine),
):
    return notifications.list_response(
        engine,
        type,
        appointment_id,
        case_id,
        payment_id,
        order_by,
        order_dir,
        limit,
        offset,
    )


@router.post("/clear", response_model=NotificationClearResponse)
def clear_notifications(
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    return {"cleared": notifications.clear(engine, actor)}


@router.get("/{notification_id}", response_model=Notification)
def get_notification(
    notification_id: str, engine: LifecycleEngine = Depends(get_engine)
):
    return notifications.get(engine, notification_id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def dismiss_notification(
    notification_id: str,
    engine: LifecycleEngine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
):
    notifications.dismiss(engine, notification_id, actor)
