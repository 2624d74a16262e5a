# === NAVMAP v1 ===
# {
#   "module": "CrptKit.DocumentSubmission.ratelimit.instrumentation",
#   "purpose": "Rate gate instrumentation and telemetry helpers.",
#   "sections": [
#     {
#       "id": "emit-acquire-event",
#       "name": "emit_acquire_event",
#       "anchor": "function-emit-acquire-event",
#       "kind": "function"
#     },
#     {
#       "id": "emit-release-event",
#       "name": "emit_release_event",
#       "anchor": "function-emit-release-event",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Rate gate instrumentation and telemetry helpers.

Events are plain log records on the ``CrptKit.DocumentSubmission.ratelimit``
logger with a structured ``extra`` payload; the JSON formatter in
``logging_config`` flattens ``extra_fields`` into each line.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

logger = logging.getLogger("CrptKit.DocumentSubmission.ratelimit")

# Waits longer than this are reported at INFO instead of DEBUG.
SLOW_ACQUIRE_MS = 1000.0


def _payload(event: str, gate: str, **fields: Any) -> Dict[str, Any]:
    return {"extra_fields": {"event": event, "gate": gate, **fields}}


def emit_acquire_event(*, gate: str, waited_ms: float, available: int) -> None:
    """Record a granted permit and how long the caller waited for it."""
    level = logging.INFO if waited_ms >= SLOW_ACQUIRE_MS else logging.DEBUG
    logger.log(
        level,
        "rate gate permit acquired",
        extra=_payload("ratelimit.acquire", gate, waited_ms=round(waited_ms, 3), available=available),
    )


def emit_release_event(*, gate: str, available: int) -> None:
    """Record a timer-driven permit release."""
    logger.debug(
        "rate gate permit released",
        extra=_payload("ratelimit.release", gate, available=available),
    )


__all__ = ["emit_acquire_event", "emit_release_event", "SLOW_ACQUIRE_MS"]
