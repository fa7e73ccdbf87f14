"""Total lookup helpers for the semi-structured n8n execution JSON.

Execution payloads differ between n8n releases and node type versions, and
large parts of them are undocumented. Every extractor reads nested fields
through these helpers so that a missing key, an out-of-range index or an
unexpected container type resolves to an explicit default instead of raising.

Public Functions:
    dig: Walk a path of mapping keys / list indexes with a default
    as_mapping: Return value if it is a mapping, else an empty dict
    as_list: Return value if it is a list, else an empty list
    first_item_json: `run.data[channel][0][0].json` when it is a mapping
    find_run_data: Locate `runData` under the known execution nestings
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

__all__ = ["dig", "as_mapping", "as_list", "first_item_json", "find_run_data"]

PathPart = Union[str, int]

# Observed nestings of runData, most common first.
_RUN_DATA_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("data", "resultData", "runData"),
    ("data", "executionData", "resultData", "runData"),
    ("resultData", "runData"),
    ("executionData", "resultData", "runData"),
    ("runData",),
)


def dig(obj: Any, *path: PathPart, default: Any = None) -> Any:
    """Resolve `path` inside `obj`, returning `default` on any mismatch.

    String parts index mappings, integer parts index lists. A `None` value at
    the end of the path also resolves to `default`.

    Args:
        obj: Root JSON value
        *path: Keys and indexes to follow in order
        default: Value returned when the path cannot be followed

    Returns:
        The value found at `path` or `default`

    Examples:
        >>> dig({"a": [{"b": 1}]}, "a", 0, "b")
        1
        >>> dig({"a": []}, "a", 0, "b", default="n/a")
        'n/a'
    """
    current = obj
    for part in path:
        if isinstance(part, int) and not isinstance(part, bool):
            if not isinstance(current, list) or not -len(current) <= part < len(current):
                return default
            current = current[part]
        elif isinstance(current, Mapping):
            if part not in current:
                return default
            current = current[part]
        else:
            return default
    return default if current is None else current


def as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def first_item_json(run: Any, channel: str) -> Optional[Dict[str, Any]]:
    """Return the json payload of the first item on the first port of `channel`."""
    payload = dig(run, "data", channel, 0, 0, "json")
    return payload if isinstance(payload, Mapping) else None


def find_run_data(execution: Any) -> Mapping[str, Sequence[Any]]:
    """Locate the `runData` mapping of an execution record.

    Probes the nestings seen across n8n versions and returns the first
    non-empty mapping. Executions fetched without `includeData`, still running,
    or otherwise malformed yield an empty mapping.
    """
    for path in _RUN_DATA_PATHS:
        candidate = dig(execution, *path)
        if isinstance(candidate, Mapping) and candidate:
            if path != _RUN_DATA_PATHS[0]:
                logger.debug(
                    "Execution %s: runData recovered via alternative path %s",
                    dig(execution, "id"),
                    ".".join(path),
                )
            return candidate
    logger.debug("Execution %s: no runData found", dig(execution, "id"))
    return {}
