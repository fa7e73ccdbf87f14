"""Public facade for execution inspection and workflow comparison.

This module provides the stable public API used by the CLI (and by anyone
scripting against the package). All logic is delegated to the
n8n_inspector.extraction package.

Public Functions:
    build_trace: Chronological per-node-run trace of an execution
    filter_by_name: Keep trace nodes whose name contains a pattern
    filter_failed: Keep trace nodes whose run failed
    extract_ai_details: Prompts, AI exchanges and token totals
    extract_token_usage: Deep token-usage search merged per (node, model)
    diff_workflows: Added / removed / modified / unchanged nodes
    build_update_payload: Sanitized update body with preserved credentials
    set_node_code: Replace a Code node's JavaScript
    set_workflow_setting: Set or remove one workflow setting
"""

from __future__ import annotations

from .extraction.filters import filter_by_name, filter_failed
from .extraction.telemetry import extract_ai_details
from .extraction.token_usage import extract_token_usage
from .extraction.trace_builder import build_trace
from .extraction.update_payload import (
    InvalidNodeError,
    NodeNotFoundError,
    NotACodeNodeError,
    WorkflowEditError,
    build_update_payload,
    set_node_code,
    set_workflow_setting,
)
from .extraction.workflow_diff import diff_workflows

__all__ = [
    "build_trace",
    "filter_by_name",
    "filter_failed",
    "extract_ai_details",
    "extract_token_usage",
    "diff_workflows",
    "build_update_payload",
    "set_node_code",
    "set_workflow_setting",
    "WorkflowEditError",
    "NodeNotFoundError",
    "InvalidNodeError",
    "NotACodeNodeError",
]
