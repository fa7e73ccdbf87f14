"""Internal extraction subpackage for decomposed execution / workflow analysis.

This package contains the core implementation behind the CLI views,
decomposed into focused, single-responsibility modules. All functions within
this package are pure (no network I/O, no file writes) and deterministic.

The public API lives in the top-level `inspector.py` facade. Callers should
not import directly from this package unless accessing internal helpers for
testing purposes.

Modules:
    accessors: Total lookup helpers for optional nested JSON fields
    time_utils: Timestamp normalization and human durations
    trace_builder: Chronological per-node-run trace of an execution
    filters: Name / failure filters over a built trace
    telemetry: AI prompts, model exchanges and token totals
    token_usage: Deep token-usage search merged per (node, model)
    workflow_diff: Name-keyed structural diff of two workflows
    update_payload: Update-endpoint payload sanitizing and workflow edits

Design Invariants:
    - No network calls or file writes permitted
    - Deterministic output for identical inputs (stable ordering)
    - Shape mismatches degrade to None / empty / zero, never raise
    - Inputs are never mutated
"""
