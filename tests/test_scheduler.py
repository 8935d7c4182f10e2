from datetime import timedelta

from app.services.scheduler import DeferredTaskScheduler


class TestDeferredTaskScheduler:
    def test_runs_due_tasks_in_order(self, time_controller) -> None:
        scheduler = DeferredTaskScheduler(time_controller)
        fired = []
        scheduler.schedule("b", 3, lambda: fired.append("b"))
        scheduler.schedule("a", 1, lambda: fired.append("a"))
        scheduler.schedule("c", 10, lambda: fired.append("c"))

        time_controller.advance(timedelta(seconds=5))
        assert scheduler.run_due() == ["a", "b"]
        assert fired == ["a", "b"]
        assert scheduler.pending() == ["c"]

    def test_cancel(self, time_controller) -> None:
        scheduler = DeferredTaskScheduler(time_controller)
        fired = []
        scheduler.schedule("a", 1, lambda: fired.append("a"))
        assert scheduler.cancel("a") is True
        assert scheduler.cancel("a") is False
        time_controller.advance(timedelta(seconds=2))
        assert scheduler.run_due() == []
        assert fired == []

    def test_cancel_prefix(self, time_controller) -> None:
        scheduler = DeferredTaskScheduler(time_controller)
        scheduler.schedule("auto-reply:case-1:m1", 1, lambda: None)
        scheduler.schedule("auto-reply:case-1:m2", 1, lambda: None)
        scheduler.schedule("auto-reply:case-2:m3", 1, lambda: None)
        assert scheduler.cancel_prefix("auto-reply:case-1:") == 2
        assert scheduler.pending() == ["auto-reply:case-2:m3"]

    def test_reschedule_replaces_task(self, time_controller) -> None:
        scheduler = DeferredTaskScheduler(time_controller)
        fired = []
        scheduler.schedule("a", 1, lambda: fired.append("first"))
        scheduler.schedule("a", 1, lambda: fired.append("second"))
        time_controller.advance(timedelta(seconds=2))
        scheduler.run_due()
        assert fired == ["second"]

    def test_failing_task_does_not_block_others(self, time_controller) -> None:
        scheduler = DeferredTaskScheduler(time_controller)
        fired = []

        def boom():
            raise RuntimeError("boom")

        scheduler.schedule("a", 1, boom)
        scheduler.schedule("b", 2, lambda: fired.append("b"))
        time_controller.advance(timedelta(seconds=3))
        assert scheduler.run_due() == ["a", "b"]
        assert fired == ["b"]

    def test_next_due_skips_cancelled(self, time_controller) -> None:
        scheduler = DeferredTaskScheduler(time_controller)
        scheduler.schedule("a", 1, lambda: None)
        scheduler.schedule("b", 5, lambda: None)
        scheduler.cancel("a")
        assert scheduler.next_due() == time_controller.now() + timedelta(seconds=5)
