# === NAVMAP v1 ===
# {
#   "module": "CrptKit.DocumentSubmission.ratelimit.__init__",
#   "purpose": "Rate-gating subsystem: rolling-window admission with timed permit release.",
#   "sections": []
# }
# === /NAVMAP ===

"""Rate-gating subsystem: rolling-window admission with timed permit release.

The marking API accepts at most N documents per time window. The gate hands
out N permits and returns each one a fixed delay after it was taken, so the
quota holds no matter how many threads or tasks submit at once.

Modules:
- gate: TimeUnit, RateGate (threads), AsyncRateGate (asyncio)
- instrumentation: acquire/release telemetry

Example:
    >>> from CrptKit.DocumentSubmission.ratelimit import RateGate, TimeUnit
    >>> gate = RateGate(TimeUnit.MINUTES, request_limit=100)
    >>> gate.acquire()  # blocks once 100 permits were taken in the last minute
"""

from CrptKit.DocumentSubmission.ratelimit.gate import AsyncRateGate, RateGate, TimeUnit
from CrptKit.DocumentSubmission.ratelimit.instrumentation import (
    emit_acquire_event,
    emit_release_event,
)

__all__ = [
    "TimeUnit",
    "RateGate",
    "AsyncRateGate",
    "emit_acquire_event",
    "emit_release_event",
]
