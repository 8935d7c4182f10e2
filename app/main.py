import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from app.api.admin import router as admin_router
from app.api.appointments import router as appointments_router
from app.api.cases import router as cases_router
from app.api.deps import get_actor, require_role
from app.api.notifications import router as notifications_router
from app.api.payments import router as payments_router
from app.api.state import router as state_router
from app.config import settings
from app.errors import register_error_handlers
from app.logging import configure_logging
from app.services.engine import LifecycleEngine
from app.services.seed import demo_seed, seed_engine
from app.tasks.deadlines import run_deadline_loop

logger = logging.getLogger(__name__)


def create_app(
    engine: LifecycleEngine | None = None, start_sweeper: bool = True
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = app.state.engine
        if settings.seed_demo_data:
            seed_engine(engine, demo_seed(engine))
        task = None
        if start_sweeper:
            task = asyncio.create_task(
                run_deadline_loop(engine, settings.sweep_interval_seconds)
            )
        try:
            yield
        finally:
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    app = FastAPI(title=f"{settings.brand_name} API", lifespan=lifespan)
    app.state.engine = engine or LifecycleEngine.from_settings(settings)
    register_error_handlers(app)

    def _include_api_router(router, dependencies=None):
        app.include_router(router, dependencies=dependencies)
        app.include_router(router, prefix="/api/v1", dependencies=dependencies)

    _include_api_router(appointments_router, dependencies=[Depends(get_actor)])
    _include_api_router(payments_router, dependencies=[Depends(get_actor)])
    _include_api_router(cases_router, dependencies=[Depends(get_actor)])
    _include_api_router(notifications_router, dependencies=[Depends(get_actor)])
    _include_api_router(state_router, dependencies=[Depends(get_actor)])
    _include_api_router(admin_router, dependencies=[Depends(require_role("admin"))])

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    @app.get("/metrics")
    def metrics():
        data = generate_latest()
        return Response(content=data, media_type=CONTENT_TYPE_LATEST)

    return app


configure_logging(settings.log_level)
app = create_app()
