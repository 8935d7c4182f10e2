from fastapi import APIRouter, Depends

from app.api.deps import get_engine
from app.models.lifecycle import LifecycleState
from app.services.engine import LifecycleEngine

router = APIRouter(tags=["state"])


@router.get("/state", response_model=LifecycleState)
def get_state(engine: LifecycleEngine = Depends(get_engine)):
    return engine.snapshot()
