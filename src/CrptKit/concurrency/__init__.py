# === NAVMAP v1 ===
# {
#   "module": "CrptKit.concurrency.__init__",
#   "purpose": "Concurrency helpers shared across CrptKit components.",
#   "sections": []
# }
# === /NAVMAP ===

"""
Concurrency helpers shared across CrptKit components.

Currently exposes :class:`DelayedTaskScheduler`, a single-thread timer queue
used by the rate gate to return permits after a fixed delay without tying the
release to the caller that acquired them.
"""

from .scheduler import DelayedTaskScheduler, ScheduledTask

__all__ = ["DelayedTaskScheduler", "ScheduledTask"]
