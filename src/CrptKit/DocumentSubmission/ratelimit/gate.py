"""RateGate: admission control with time-triggered permit release.

A permit is taken before every submission and handed back by a timer exactly
``time_delay`` units later, never by the caller. The gate therefore enforces
"at most ``request_limit`` admissions per rolling window" rather than "at most
``request_limit`` requests in flight": a call that returns instantly still
holds its permit until the window elapses, and a call that hangs past the
window no longer counts against the quota.

Two flavours share the same contract:

- :class:`RateGate` blocks OS threads; releases run on a
  :class:`~CrptKit.concurrency.DelayedTaskScheduler` worker thread.
- :class:`AsyncRateGate` suspends asyncio tasks; releases run as event-loop
  timers (``loop.call_later``).

Example:
    >>> gate = RateGate(TimeUnit.SECONDS, request_limit=5)
    >>> gate.acquire()  # returns immediately, permit comes back after 1s
    >>> gate.close()
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from enum import Enum
from typing import Optional, Set

from CrptKit.concurrency import DelayedTaskScheduler
from CrptKit.DocumentSubmission.errors import ConfigurationError
from CrptKit.DocumentSubmission.ratelimit.instrumentation import (
    emit_acquire_event,
    emit_release_event,
)

logger = logging.getLogger(__name__)

__all__ = ["TimeUnit", "RateGate", "AsyncRateGate"]


# ============================================================================
# TimeUnit
# ============================================================================


class TimeUnit(Enum):
    """Unit in which the gate window is expressed; value is seconds per unit."""

    NANOSECONDS = 1e-9
    MICROSECONDS = 1e-6
    MILLISECONDS = 1e-3
    SECONDS = 1.0
    MINUTES = 60.0
    HOURS = 3600.0
    DAYS = 86400.0

    def to_seconds(self, amount: float) -> float:
        return amount * self.value

    @classmethod
    def parse(cls, value: "TimeUnit | str") -> "TimeUnit":
        """Accept a member or its case-insensitive name (``"seconds"``)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.strip().upper() in cls.__members__:
            return cls[value.strip().upper()]
        raise ConfigurationError(
            f"Unknown time unit: {value!r}. Supported: {[m.name.lower() for m in cls]}"
        )


def _validate_window(time_unit: TimeUnit, request_limit: int, time_delay: float) -> float:
    """Check constructor arguments and return the window length in seconds."""
    if time_unit is None:
        raise ConfigurationError("time_unit must be not null")
    if not isinstance(time_unit, TimeUnit):
        raise ConfigurationError(f"time_unit must be a TimeUnit, got: {type(time_unit).__name__}")
    if isinstance(request_limit, bool) or not isinstance(request_limit, int):
        raise ConfigurationError(f"request_limit must be an integer, got: {request_limit!r}")
    if request_limit < 1:
        raise ConfigurationError(f"request_limit must be greater than 0, got: {request_limit}")
    if isinstance(time_delay, bool) or not isinstance(time_delay, (int, float)) or time_delay <= 0:
        raise ConfigurationError(f"time_delay must be a positive number, got: {time_delay!r}")
    return time_unit.to_seconds(time_delay)


# ============================================================================
# Threaded gate
# ============================================================================


class RateGate:
    """Thread-safe admission gate with delayed permit release.

    Attributes:
        _available: Permits that may be taken right now
        _condition: Guards ``_available``; acquirers wait on it
        _scheduler: Runs the deferred releases on its own thread
    """

    def __init__(
        self,
        time_unit: TimeUnit,
        request_limit: int,
        time_delay: float = 1,
        *,
        scheduler: Optional[DelayedTaskScheduler] = None,
        name: str = "default",
    ) -> None:
        """Initialize RateGate.

        Args:
            time_unit: Unit of ``time_delay``.
            request_limit: Permits available per window; must be >= 1.
            time_delay: Window length in ``time_unit`` units (default 1).
            scheduler: Shared scheduler for releases. When omitted the gate
                creates and owns one.
            name: Label attached to log records.

        Raises:
            ConfigurationError: If any argument is out of range.
        """
        self._window_seconds = _validate_window(time_unit, request_limit, time_delay)
        self._time_unit = time_unit
        self._time_delay = time_delay
        self._request_limit = request_limit
        self._name = name
        self._available = request_limit
        self._condition = threading.Condition()
        self._owns_scheduler = scheduler is None
        self._scheduler = scheduler or DelayedTaskScheduler(name=f"rate-gate-{name}")
        self._closed = False

        logger.debug(
            "RateGate initialized",
            extra={
                "extra_fields": {
                    "gate": name,
                    "request_limit": request_limit,
                    "time_delay": time_delay,
                    "time_unit": time_unit.name,
                }
            },
        )

    @property
    def request_limit(self) -> int:
        return self._request_limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    @property
    def available_permits(self) -> int:
        """Permits that could be taken without waiting."""
        with self._condition:
            return self._available

    def acquire(self) -> None:
        """Block until a permit is free, take it, and schedule its release.

        The release is queued while the gate lock is still held, so a caller
        interrupted right after this method returns cannot leak the permit.

        Raises:
            ConfigurationError: If the gate has been closed.
        """
        started = time.monotonic()
        with self._condition:
            while self._available == 0 and not self._closed:
                self._condition.wait()
            if self._closed:
                raise ConfigurationError(f"RateGate '{self._name}' is closed")
            self._scheduler.schedule(self._window_seconds, self._release)
            self._available -= 1
            remaining = self._available

        emit_acquire_event(
            gate=self._name,
            waited_ms=(time.monotonic() - started) * 1000.0,
            available=remaining,
        )

    def _release(self) -> None:
        with self._condition:
            if self._available >= self._request_limit:
                logger.error(
                    "Permit release would exceed request limit; ignoring",
                    extra={
                        "extra_fields": {"gate": self._name, "request_limit": self._request_limit}
                    },
                )
                return
            self._available += 1
            available = self._available
            self._condition.notify()
        emit_release_event(gate=self._name, available=available)

    def close(self) -> None:
        """Stop the owned scheduler and wake any waiters with an error."""
        with self._condition:
            if self._closed:
                return
            self._closed = True
            self._condition.notify_all()
        if self._owns_scheduler:
            self._scheduler.shutdown(wait=True)
        logger.debug("RateGate closed", extra={"extra_fields": {"gate": self._name}})

    def __enter__(self) -> "RateGate":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"RateGate(time_unit={self._time_unit.name}, request_limit={self._request_limit}, "
            f"time_delay={self._time_delay})"
        )


# ============================================================================
# asyncio gate
# ============================================================================


class AsyncRateGate:
    """asyncio counterpart of :class:`RateGate`.

    Must be used from a single event loop. Cancelling a task blocked in
    :meth:`acquire` leaves the permit count untouched; once a permit is taken
    its release timer is armed in the same synchronous step.
    """

    def __init__(
        self,
        time_unit: TimeUnit,
        request_limit: int,
        time_delay: float = 1,
        *,
        name: str = "default",
    ) -> None:
        self._window_seconds = _validate_window(time_unit, request_limit, time_delay)
        self._time_unit = time_unit
        self._time_delay = time_delay
        self._request_limit = request_limit
        self._name = name
        self._semaphore = asyncio.Semaphore(request_limit)
        self._held = 0
        self._timers: Set[asyncio.TimerHandle] = set()
        self._closed = False

    @property
    def request_limit(self) -> int:
        return self._request_limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    @property
    def available_permits(self) -> int:
        return self._request_limit - self._held

    async def acquire(self) -> None:
        """Suspend until a permit is free, take it, and arm its release timer.

        Raises:
            ConfigurationError: If the gate has been closed.
            asyncio.CancelledError: Propagated unchanged when the task is
                cancelled while waiting.
        """
        if self._closed:
            raise ConfigurationError(f"AsyncRateGate '{self._name}' is closed")
        loop = asyncio.get_running_loop()
        started = loop.time()
        await self._semaphore.acquire()
        if self._closed:
            self._semaphore.release()
            raise ConfigurationError(f"AsyncRateGate '{self._name}' is closed")
        self._held += 1
        handle: Optional[asyncio.TimerHandle] = None

        def _fire() -> None:
            self._timers.discard(handle)
            self._release()

        handle = loop.call_later(self._window_seconds, _fire)
        self._timers.add(handle)

        emit_acquire_event(
            gate=self._name,
            waited_ms=(loop.time() - started) * 1000.0,
            available=self.available_permits,
        )

    def _release(self) -> None:
        if self._held == 0:
            logger.error(
                "Permit release with no held permits; ignoring",
                extra={"extra_fields": {"gate": self._name}},
            )
            return
        self._held -= 1
        self._semaphore.release()
        emit_release_event(gate=self._name, available=self.available_permits)

    def close(self) -> None:
        """Cancel pending release timers, returning their permits immediately."""
        if self._closed:
            return
        self._closed = True
        timers, self._timers = list(self._timers), set()
        for handle in timers:
            handle.cancel()
            self._release()
        logger.debug(
            "AsyncRateGate closed",
            extra={"extra_fields": {"gate": self._name, "cancelled": len(timers)}},
        )

    async def __aenter__(self) -> "AsyncRateGate":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"AsyncRateGate(time_unit={self._time_unit.name}, request_limit={self._request_limit}, "
            f"time_delay={self._time_delay})"
        )
