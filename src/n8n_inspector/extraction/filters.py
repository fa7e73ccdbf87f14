"""Trace narrowing for the `--node` and `--errors-only` CLI flags.

Both filters return a new `Trace` carrying the same header fields and a
filtered node list; the input trace is left untouched. They are idempotent and
compose in either order. An empty result is a "nothing found" outcome for the
caller to report, not an error.
"""
from __future__ import annotations

from ..models.inspection import Trace

__all__ = ["filter_by_name", "filter_failed", "FAILED_STATUSES"]

# n8n reports failed runs as "error" in runData but "failed" in some releases.
FAILED_STATUSES = frozenset({"error", "failed"})


def filter_by_name(trace: Trace, pattern: str) -> Trace:
    """Keep nodes whose name contains `pattern`, ignoring case."""
    needle = pattern.lower()
    return trace.model_copy(
        update={"nodes": [n for n in trace.nodes if needle in n.name.lower()]}
    )


def filter_failed(trace: Trace) -> Trace:
    """Keep nodes whose run status is "error" or "failed"."""
    return trace.model_copy(
        update={"nodes": [n for n in trace.nodes if n.status in FAILED_STATUSES]}
    )
