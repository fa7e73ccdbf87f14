"""Timestamp normalization for trace ordering and execution durations.

n8n reports run start times as epoch milliseconds in `runData`, while the
execution record carries ISO 8601 strings for `startedAt` / `stoppedAt`. Both
forms (and epoch seconds) are accepted here.

Conversion Heuristic:
    Numbers < 1_000_000_000_000 treated as seconds (Unix epoch range ~1970-2033)
    Numbers >= 1_000_000_000_000 treated as milliseconds (n8n default format)

Public Functions:
    to_epoch_ms: Convert a timestamp to epoch milliseconds (None if unparseable)
    format_duration: Human duration between two timestamps ("1m 5s", "N/A")
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Optional

__all__ = ["to_epoch_ms", "format_duration", "NOT_AVAILABLE"]

NOT_AVAILABLE = "N/A"


def to_epoch_ms(value: Any) -> Optional[float]:
    """Convert an epoch number or ISO 8601 string to epoch milliseconds.

    Naive ISO strings are interpreted as UTC. Booleans, empty values and
    unparseable strings yield None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        return float(value) if abs(value) >= 1_000_000_000_000 else float(value) * 1000.0
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return to_epoch_ms(float(text))
        except ValueError:
            pass
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp() * 1000.0


def format_duration(start: Any, end: Any) -> str:
    """Return the whole-second duration between two timestamps.

    Below one minute the result reads "42s"; from one minute on it reads
    "{m}m {s}s". A missing or unparseable bound yields "N/A".
    """
    if not start or not end:
        return NOT_AVAILABLE
    start_ms = to_epoch_ms(start)
    end_ms = to_epoch_ms(end)
    if start_ms is None or end_ms is None:
        return NOT_AVAILABLE
    seconds = math.floor((end_ms - start_ms) / 1000)
    minutes = math.floor(seconds / 60)
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"
