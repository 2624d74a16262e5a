"""Tests for RateGate: construction, timed release, and concurrent admission.

Timing assertions use ``time.monotonic`` stamps recorded around each
acquisition rather than assuming how long a sleep takes.
"""

import threading
import time

import pytest

from CrptKit.concurrency import DelayedTaskScheduler
from CrptKit.DocumentSubmission.errors import ConfigurationError
from CrptKit.DocumentSubmission.ratelimit import RateGate, TimeUnit

WINDOW_MS = 300
WINDOW_S = WINDOW_MS / 1000


def _wait_until(predicate, timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestConstruction:
    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit_rejected(self, limit):
        """requestLimit < 1 fails before any acquisition."""
        with pytest.raises(ConfigurationError, match="greater than 0"):
            RateGate(TimeUnit.SECONDS, limit)

    def test_missing_time_unit_rejected(self):
        with pytest.raises(ConfigurationError, match="time_unit"):
            RateGate(None, 1)  # type: ignore[arg-type]

    def test_non_integer_limit_rejected(self):
        with pytest.raises(ConfigurationError, match="integer"):
            RateGate(TimeUnit.SECONDS, 1.5)  # type: ignore[arg-type]

    def test_non_positive_delay_rejected(self):
        with pytest.raises(ConfigurationError, match="time_delay"):
            RateGate(TimeUnit.SECONDS, 1, time_delay=0)

    def test_defaults_to_one_unit_window(self):
        with RateGate(TimeUnit.MINUTES, 3) as gate:
            assert gate.window_seconds == 60.0
            assert gate.request_limit == 3
            assert gate.available_permits == 3


class TestTimeUnit:
    def test_parse_accepts_names(self):
        assert TimeUnit.parse("minutes") is TimeUnit.MINUTES
        assert TimeUnit.parse(TimeUnit.HOURS) is TimeUnit.HOURS

    def test_parse_rejects_unknown(self):
        with pytest.raises(ConfigurationError):
            TimeUnit.parse("fortnights")

    def test_to_seconds(self):
        assert TimeUnit.MILLISECONDS.to_seconds(250) == pytest.approx(0.25)


@pytest.mark.timing
class TestTimedRelease:
    def test_permit_returns_only_after_delay(self):
        """Finishing work does not return the permit; the timer does."""
        with RateGate(TimeUnit.MILLISECONDS, 1, time_delay=WINDOW_MS) as gate:
            gate.acquire()
            assert gate.available_permits == 0
            assert _wait_until(lambda: gate.available_permits == 1)

    def test_k_plus_one_acquisitions(self):
        """K callers pass immediately; the (K+1)-th waits for the first release."""
        limit = 3
        stamps = []
        lock = threading.Lock()
        with RateGate(TimeUnit.MILLISECONDS, limit, time_delay=WINDOW_MS) as gate:
            start = threading.Barrier(limit + 1)

            def _worker():
                start.wait()
                gate.acquire()
                with lock:
                    stamps.append(time.monotonic())

            threads = [threading.Thread(target=_worker) for _ in range(limit + 1)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join(timeout=5)

        stamps.sort()
        assert len(stamps) == limit + 1
        first = stamps[0]
        assert all(stamp - first < WINDOW_S for stamp in stamps[:limit])
        assert stamps[limit] - first >= WINDOW_S * 0.95

    def test_never_more_than_limit_outstanding(self):
        limit = 2
        observed = []
        with RateGate(TimeUnit.MILLISECONDS, limit, time_delay=100) as gate:

            def _worker():
                gate.acquire()
                observed.append(limit - gate.available_permits)

            threads = [threading.Thread(target=_worker) for _ in range(6)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join(timeout=5)

        assert len(observed) == 6
        assert max(observed) <= limit

    def test_capacity_restored_after_window(self):
        """No permit leaks: every acquisition is eventually returned."""
        with RateGate(TimeUnit.MILLISECONDS, 4, time_delay=100) as gate:
            for _ in range(8):
                gate.acquire()
            assert _wait_until(lambda: gate.available_permits == 4)

    def test_shared_scheduler_not_shut_down_by_gate(self):
        scheduler = DelayedTaskScheduler()
        gate = RateGate(TimeUnit.MILLISECONDS, 1, time_delay=50, scheduler=scheduler)
        gate.acquire()
        gate.close()
        assert not scheduler.is_shutdown
        scheduler.shutdown()


class TestClose:
    def test_acquire_after_close_raises(self):
        gate = RateGate(TimeUnit.SECONDS, 1)
        gate.close()
        with pytest.raises(ConfigurationError, match="closed"):
            gate.acquire()

    def test_close_wakes_blocked_waiters(self):
        gate = RateGate(TimeUnit.HOURS, 1)
        gate.acquire()
        errors = []

        def _blocked():
            try:
                gate.acquire()
            except ConfigurationError as exc:
                errors.append(exc)

        thread = threading.Thread(target=_blocked)
        thread.start()
        time.sleep(0.05)
        gate.close()
        thread.join(timeout=2)

        assert not thread.is_alive()
        assert len(errors) == 1
