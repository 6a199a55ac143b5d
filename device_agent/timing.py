"""
Clock helpers for log records and task run durations.

Durations use the monotonic clock so that wall-clock adjustments on the host
never produce negative or inflated turn timings.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

_PROCESS_START_MONOTONIC = time.monotonic()
_PROCESS_START_UTC = datetime.now(timezone.utc)


def _iso_z(dt: datetime) -> str:
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def uptime_seconds() -> float:
    return time.monotonic() - _PROCESS_START_MONOTONIC


def now_utc_iso() -> str:
    """e.g. 2025-08-25T12:34:56.789Z"""
    return _iso_z(datetime.now(timezone.utc))


def process_start_utc_iso() -> str:
    return _iso_z(_PROCESS_START_UTC)


@dataclass
class Stopwatch:
    """Elapsed time of one task run."""
    started: float = field(default_factory=time.monotonic)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def format(self) -> str:
        seconds = self.elapsed
        if seconds < 60:
            return f"{seconds:.1f}s"
        minutes, seconds = divmod(int(seconds), 60)
        return f"{minutes}m{seconds:02d}s"
