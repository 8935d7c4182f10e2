import asyncio
from datetime import timedelta
from unittest.mock import patch

from app.models.lifecycle import AppointmentStatus
from app.tasks.deadlines import run_deadline_loop, sweep_deadlines


class TestSweepDeadlines:
    def test_expires_breached_appointment(
        self, engine, time_controller, booked
    ) -> None:
        time_controller.advance(timedelta(hours=25))
        result = sweep_deadlines(engine)
        assert result.expired_appointment_ids == [booked.id]
        status = engine.snapshot().appointment(booked.id).status
        assert status == AppointmentStatus.expired

    def test_failure_is_logged_not_raised(self, engine) -> None:
        with patch.object(engine, "tick", side_effect=RuntimeError("boom")):
            result = sweep_deadlines(engine)
        assert result.breaches == 0


class TestRunDeadlineLoop:
    def test_loop_ticks_until_cancelled(self, engine) -> None:
        calls = []

        def fake_tick():
            calls.append(1)

        async def scenario():
            with patch.object(engine, "tick", side_effect=fake_tick):
                task = asyncio.create_task(run_deadline_loop(engine, 0.01))
                while len(calls) < 2:
                    await asyncio.sleep(0.01)
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        asyncio.run(asyncio.wait_for(scenario(), timeout=5))
        assert len(calls) >= 2
