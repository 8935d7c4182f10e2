import asyncio
import logging

from app.services.engine import LifecycleEngine
from app.services.sweeper import SweepResult

logger = logging.getLogger(__name__)


def sweep_deadlines(engine: LifecycleEngine) -> SweepResult:
    """Run due scheduled tasks and expire every deadline that has passed.

    Safe to call at any frequency; a breach is only ever handled once.
    """
    try:
        return engine.tick()
    except Exception as e:
        logger.exception("Deadline sweep failed: %s", e)
        return SweepResult()


async def run_deadline_loop(engine: LifecycleEngine, interval: float) -> None:
    logger.info("Deadline loop started, interval %.1fs", interval)
    try:
        while True:
            delay = interval
            until_task = engine.seconds_until_next_task()
            if until_task is not None:
                delay = min(delay, until_task)
            await asyncio.sleep(delay)
            sweep_deadlines(engine)
    except asyncio.CancelledError:
        logger.info("Deadline loop stopped")
        raise
