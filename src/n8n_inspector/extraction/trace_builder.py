"""Execution trace reconstruction from n8n `runData`.

This module turns a raw execution detail document into a `Trace`: one
`NodeTraceEntry` per node run, ordered by run start time. It is the basis of
the compact summary, the verbose node dump and the `--node` / `--errors-only`
filters.

Core function `build_trace` performs these steps:
    1. Locate `runData` (tolerating the alternative nestings)
    2. Flatten every node's run list into (node_name, run_index, run) tuples
    3. Sort runs by start time (stable, unparseable times last)
    4. For each run:
        - Derive input lineage from `run.source` previousNode values
        - Flatten each output channel to its json payloads
        - Surface the error message of failed runs
    5. Attach the execution header and human duration

Design Notes:
    - Pure function; no network I/O, input never mutated
    - Input lineage comes from runtime `source` only, never from the static
      workflow graph
    - Malformed shapes degrade to empty values instead of raising
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..models.inspection import NodeTraceEntry, Trace
from .accessors import as_list, as_mapping, dig, find_run_data
from .time_utils import format_duration, to_epoch_ms

logger = logging.getLogger(__name__)

__all__ = ["build_trace", "execution_header"]


def execution_header(execution: Any) -> Dict[str, Any]:
    """Return the top-level fields every execution-derived view repeats."""
    started_at = dig(execution, "startedAt")
    stopped_at = dig(execution, "stoppedAt")
    return {
        "execution_id": dig(execution, "id"),
        "workflow_id": dig(execution, "workflowId"),
        "status": dig(execution, "status"),
        "started_at": started_at,
        "stopped_at": stopped_at,
        "duration": format_duration(started_at, stopped_at),
    }


def _flatten_runs(
    run_data: Mapping[str, Any]
) -> List[Tuple[str, int, Mapping[str, Any]]]:
    """Flatten and sort all node runs by startTime.

    Python's sort is stable, so runs with equal (or equally unparseable) start
    times keep their encounter order: node order in `runData`, then run order.

    Args:
        run_data: Mapping of node_name to list of run instances

    Returns:
        List of tuples (node_name, run_index, run) sorted chronologically, where
        run_index is the 0-based position in the node's run list
    """
    flattened: List[Tuple[float, str, int, Mapping[str, Any]]] = []
    for node_name, runs in run_data.items():
        if not isinstance(runs, list):
            logger.debug("Skipping node %r: runs is %s, not a list", node_name, type(runs).__name__)
            continue
        for idx, run in enumerate(runs):
            if not isinstance(run, Mapping):
                continue
            start_ms = to_epoch_ms(run.get("startTime"))
            flattened.append(
                (start_ms if start_ms is not None else float("inf"), node_name, idx, run)
            )
    flattened.sort(key=lambda x: x[0])
    return [(name, idx, run) for _start, name, idx, run in flattened]


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _extract_input(run: Mapping[str, Any]) -> Optional[List[str]]:
    source = as_list(run.get("source"))
    if not source:
        return None
    return [
        prev
        for prev in (dig(s, "previousNode") for s in source)
        if isinstance(prev, str) and prev
    ]


def _flatten_channel(ports: Any) -> List[Any]:
    """Flatten a channel's per-port item lists into their json payloads."""
    payloads: List[Any] = []
    for port in as_list(ports):
        items = port if isinstance(port, list) else [port]
        for item in items:
            payload = dig(item, "json")
            if payload:
                payloads.append(payload)
    return payloads


def _extract_output(run: Mapping[str, Any]) -> Optional[Dict[str, List[Any]]]:
    outputs: Dict[str, List[Any]] = {}
    for channel, ports in as_mapping(run.get("data")).items():
        payloads = _flatten_channel(ports)
        if payloads:
            outputs[channel] = payloads
    return outputs or None


def _extract_error(run: Mapping[str, Any]) -> Optional[str]:
    message = dig(run, "error", "message")
    return message if isinstance(message, str) and message else None


def build_trace(execution: Any) -> Trace:
    """Build the chronological node trace of an execution.

    Args:
        execution: Raw execution detail JSON (`GET /executions/{id}?includeData=true`)

    Returns:
        Trace whose nodes hold one entry per node run, sorted by start time.
        An execution without run data yields an empty node list.
    """
    nodes = [
        NodeTraceEntry(
            name=node_name,
            run_index=idx + 1,
            status=_str_or_none(run.get("executionStatus")),
            start_time=run.get("startTime"),
            execution_time=run.get("executionTime"),
            input=_extract_input(run),
            output=_extract_output(run),
            error=_extract_error(run),
        )
        for node_name, idx, run in _flatten_runs(find_run_data(execution))
    ]
    return Trace(**execution_header(execution), nodes=nodes)
