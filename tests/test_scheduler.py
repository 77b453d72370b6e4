"""Tests for the virtual-time scheduler."""
from lumenvn.engine.scheduler import Scheduler


class TestTimers:
    def test_fire_in_time_order(self):
        s = Scheduler()
        fired = []
        s.call_later(30, lambda: fired.append("b"))
        s.call_later(10, lambda: fired.append("a"))
        s.call_later(30, lambda: fired.append("c"))

        s.advance(29)
        assert fired == ["a"]
        s.advance(1)
        assert fired == ["a", "b", "c"]
        assert s.now_ms == 30

    def test_cancelled_timer_never_fires(self):
        s = Scheduler()
        fired = []
        t = s.call_later(5, lambda: fired.append(1))
        t.cancel()
        s.advance(100)
        assert fired == []
        assert s.pending() == 0

    def test_callback_sees_its_due_time(self):
        s = Scheduler()
        seen = []
        s.call_later(40, lambda: seen.append(s.now_ms))
        s.advance(100)
        assert seen == [40]
        assert s.now_ms == 100

    def test_crashing_callback_does_not_stop_others(self):
        s = Scheduler()
        fired = []

        def boom():
            raise RuntimeError("boom")

        s.call_later(1, boom)
        s.call_later(2, lambda: fired.append(2))
        s.advance(5)
        assert fired == [2]

    def test_run_until_idle_reports_elapsed(self):
        s = Scheduler()
        s.call_later(10, lambda: s.call_later(15, lambda: None))
        assert s.run_until_idle() == 25
        assert s.next_due() is None


class TestTasks:
    def test_spawn_runs_to_first_yield(self):
        s = Scheduler()
        steps = []

        def body():
            steps.append("start")
            yield 20
            steps.append("after 20")
            yield 5
            steps.append("end")

        task = s.spawn(body())
        assert steps == ["start"]
        s.advance(20)
        assert steps == ["start", "after 20"]
        s.advance(5)
        assert task.done
        assert steps[-1] == "end"

    def test_task_without_yield_finishes_immediately(self):
        s = Scheduler()

        def body():
            return
            yield

        task = s.spawn(body())
        assert task.done

    def test_cancel_runs_finally(self):
        s = Scheduler()
        cleaned = []

        def body():
            try:
                yield 100
            finally:
                cleaned.append(True)

        task = s.spawn(body())
        task.cancel()
        assert cleaned == [True]
        assert task.done and task.cancelled
        s.advance(200)
        assert s.pending() == 0

    def test_crash_is_recorded(self):
        s = Scheduler()

        def body():
            yield 1
            raise ValueError("bad")

        task = s.spawn(body())
        s.advance(1)
        assert task.done
        assert isinstance(task.error, ValueError)

    def test_done_callbacks(self):
        s = Scheduler()
        done = []

        def body():
            yield 3

        task = s.spawn(body())
        task.add_done_callback(lambda t: done.append(s.now_ms))
        s.run_until_idle()
        assert done == [3]
