"""JSON artifact writing for `--json` CLI output.

Large execution payloads are written to a file instead of the terminal; the
CLI prints only the path. Files are named `{prefix}-{UTC timestamp}.json` and
written atomically (write to a temporary file then rename) so a reader never
sees a half-written artifact.
"""
from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")


def write_json_artifact(data: Any, prefix: str, directory: str) -> str:
    """Write `data` as pretty-printed JSON and return the file path.

    Args:
        data: JSON-serializable value (models should be converted with
            `to_json_dict` first)
        prefix: File name prefix, e.g. "execution-123"
        directory: Target directory, created if missing

    Returns:
        Path of the written file
    """
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, f"{prefix}-{_timestamp()}.json")
    tmp_path = f"{path}.tmp"
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    return path


__all__ = ["write_json_artifact"]
