import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from receipt_matcher.orchestrator.schedule import run_forever, run_tick


class _Matcher:
    def __init__(self, fail_on=()):
        self.calls = 0
        self.fail_on = set(fail_on)

    def run_once(self):
        self.calls += 1
        if self.calls in self.fail_on:
            raise RuntimeError(f"run {self.calls} failed")
        return None


class _Clock:
    def __init__(self, run_seconds: float = 0.0):
        self.now = 0.0
        self.run_seconds = run_seconds
        self.sleeps = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def test_runs_immediately_then_on_interval():
    matcher = _Matcher()
    clock = _Clock()
    runs = run_forever(matcher, 300, sleep=clock.sleep, clock=clock.time, max_runs=3)
    assert runs == 3
    assert matcher.calls == 3
    assert clock.sleeps == [300.0, 300.0]


def test_failed_run_does_not_stop_the_loop():
    matcher = _Matcher(fail_on={1})
    clock = _Clock()
    assert run_forever(matcher, 60, sleep=clock.sleep, clock=clock.time, max_runs=2) == 2
    assert matcher.calls == 2


def test_slow_run_is_followed_without_sleeping():
    class _SlowMatcher(_Matcher):
        def __init__(self, clock):
            super().__init__()
            self.clock = clock

        def run_once(self):
            self.clock.now += 400
            return super().run_once()

    clock = _Clock()
    matcher = _SlowMatcher(clock)
    run_forever(matcher, 300, sleep=clock.sleep, clock=clock.time, max_runs=2)
    assert clock.sleeps == []


def test_keyboard_interrupt_stops_cleanly():
    class _Interrupting(_Matcher):
        def run_once(self):
            super().run_once()
            if self.calls == 2:
                raise KeyboardInterrupt

    clock = _Clock()
    assert run_forever(_Interrupting(), 10, sleep=clock.sleep, clock=clock.time) == 1


def test_run_tick_reports_failure():
    assert run_tick(_Matcher()) is True
    assert run_tick(_Matcher(fail_on={1})) is False
