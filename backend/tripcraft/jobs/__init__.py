"""Background and maintenance jobs."""

from .cache_backfill import BackfillReport, backfill_from_itineraries
from .image_health import (
    ImageHealthScheduler,
    ImageHealthSweep,
    SweepReport,
    LinkChecker,
    next_run_after,
)

__all__ = [
    "BackfillReport",
    "ImageHealthScheduler",
    "ImageHealthSweep",
    "SweepReport",
    "LinkChecker",
    "backfill_from_itineraries",
    "next_run_after",
]
