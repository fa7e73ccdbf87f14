"""Plain-text rendering of inspection results for the terminal.

The formatters are compact: the default execution view is a
one-line-per-run table, and large payloads are previewed up to a configurable
number of characters unless `--full` is requested.

Public Functions:
    format_compact_summary: Node / status / time / output size table
    format_node_details: Verbose per-run dump with input lineage and outputs
    format_ai_details: Prompts, model exchanges and token totals
    format_token_usage: Token usage merged per (node, model)
    format_diff: Added / removed / modified node report
    format_execution_list: Tab-separated execution rows
    format_workflow_list: Workflow id / name / active rows
    format_failed_executions: Recent failed execution rows
"""
from __future__ import annotations

import json
from typing import Any, Iterable, List, Mapping

from .models.inspection import AiDetails, DiffResult, Trace, TokenUsage, TokenUsageReport
from .models.n8n import ExecutionSummary

__all__ = [
    "format_bytes",
    "format_compact_summary",
    "format_node_details",
    "format_ai_details",
    "format_token_usage",
    "format_diff",
    "format_execution_list",
    "format_workflow_list",
    "format_failed_executions",
]

HEAVY_RULE = "═" * 60
RULE = "─" * 40
TABLE_RULE = "─" * 70
_NAME_WIDTH = 32


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def _json_size(value: object) -> int:
    return len(json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str))


def _indent(text: str, prefix: str = "    ") -> str:
    return prefix + text.replace("\n", "\n" + prefix)


def _preview(text: str, limit: int, full: bool) -> str:
    if full or len(text) <= limit:
        return text
    return text[:limit] + "..."


def format_compact_summary(trace: Trace) -> str:
    """One row per node run: name, status, execution time, output size."""
    lines = [
        f"\nExecution: {trace.execution_id} | {trace.status} | {trace.duration}",
        f"Started: {trace.started_at}",
        TABLE_RULE,
        f"{'NODE':<35} {'STATUS':<10} {'TIME':<10} OUTPUT",
        TABLE_RULE,
    ]
    for node in trace.nodes:
        name = node.name if len(node.name) <= _NAME_WIDTH else node.name[:_NAME_WIDTH] + "..."
        status = node.status or "unknown"
        time = f"{node.execution_time}ms"
        size = format_bytes(_json_size(node.output)) if node.output else "-"
        lines.append(f"{name:<35} {status:<10} {time:<10} {size}")
    lines.append(TABLE_RULE)
    lines.append(f"Total: {len(trace.nodes)} nodes")
    lines.append('\nTip: Use --node "Node Name" to inspect a specific node\'s data')
    return "\n".join(lines)


def format_node_details(trace: Trace, *, full: bool = False, max_length: int = 500) -> str:
    """Verbose dump: status, lineage, error and per-channel output preview."""
    lines = [
        f"\n{HEAVY_RULE}",
        f"Execution: {trace.execution_id}",
        f"Status: {trace.status} | Duration: {trace.duration}",
        f"Started: {trace.started_at}",
        f"Nodes: {len(trace.nodes)}",
        HEAVY_RULE,
    ]
    for node in trace.nodes:
        lines.append(f"\n▸ {node.name} (run {node.run_index})")
        lines.append(f"  Status: {node.status} | Time: {node.execution_time}ms")
        if node.input:
            lines.append(f"  Input from: {', '.join(node.input)}")
        if node.error:
            lines.append(f"  Error: {node.error}")
        for channel, payloads in (node.output or {}).items():
            rendered = json.dumps(payloads, ensure_ascii=False, indent=2, default=str)
            lines.append(f"  Output [{channel}]:")
            lines.append(_indent(_preview(rendered, max_length, full)))
    return "\n".join(lines)


def _token_line(tokens: TokenUsage) -> str:
    return (
        f"{tokens.total_tokens:,} (prompt: {tokens.prompt_tokens:,}, "
        f"completion: {tokens.completion_tokens:,})"
    )


def format_ai_details(
    details: AiDetails,
    *,
    full: bool = False,
    max_output_length: int = 300,
    prompt_preview: int = 200,
) -> str:
    """Prompts, model exchanges and token totals.

    Agent-level exchanges are counted in the header but not printed: their
    text repeats the underlying model output.
    """
    lines = [
        f"\n{HEAVY_RULE}",
        f"Execution: {details.execution_id}",
        f"Status: {details.status} | Duration: {details.duration}",
        f"Started: {details.started_at}",
        HEAVY_RULE,
    ]
    if details.prompts:
        lines.append(f"\nPROMPTS ({len(details.prompts)} steps)")
        lines.append(RULE)
        for step, prompt in details.prompts.items():
            flat = prompt[:prompt_preview].replace("\n", " ")
            suffix = "..." if len(prompt) > prompt_preview else ""
            lines.append(f"  {step}: {flat}{suffix}")

    lines.append(f"\nAI EXCHANGES ({len(details.exchanges)} calls)")
    lines.append(RULE)
    for ex in details.exchanges:
        if ex.is_agent_output:
            continue
        lines.append(f"\n  [{ex.node_name}] Run {ex.run_index}")
        if ex.tokens.total_tokens:
            lines.append(f"  Tokens: {_token_line(ex.tokens)}")
        if ex.output:
            lines.append(f"  Output ({ex.output_length:,} chars):")
            lines.append(_indent(_preview(ex.output, max_output_length, full)))

    lines.append(f"\n{RULE}")
    lines.append("TOTALS")
    lines.append(f"  Prompt tokens:     {details.totals.prompt_tokens:,}")
    lines.append(f"  Completion tokens: {details.totals.completion_tokens:,}")
    lines.append(f"  Total tokens:      {details.totals.total_tokens:,}")
    return "\n".join(lines)


def format_token_usage(report: TokenUsageReport) -> str:
    lines = [
        f"\nExecution: {report.execution_id}",
        f"Status: {report.status}",
        f"Started: {report.started_at}",
        f"Stopped: {report.stopped_at or 'N/A'}",
    ]
    if not report.nodes:
        lines.append("\nNo token usage data found in this execution.")
        return "\n".join(lines)
    lines.append("\n--- Token Usage by Node ---")
    for entry in report.nodes:
        lines.append(f"\n  {entry.node_name} ({entry.model}):")
        lines.append(f"    Prompt tokens:     {entry.prompt_tokens:,}")
        lines.append(f"    Completion tokens: {entry.completion_tokens:,}")
        lines.append(f"    Total tokens:      {entry.total_tokens:,}")
    lines.append("\n--- Totals ---")
    lines.append(f"  Prompt tokens:     {report.totals.prompt_tokens:,}")
    lines.append(f"  Completion tokens: {report.totals.completion_tokens:,}")
    lines.append(f"  Total tokens:      {report.totals.total_tokens:,}")
    return "\n".join(lines)


def _section(title: str, marker: str, names: List[str]) -> List[str]:
    if not names:
        return []
    return [f"{title} ({len(names)}):", *(f"  {marker} {n}" for n in names), ""]


def format_diff(diff: DiffResult) -> str:
    lines = [
        "\nComparing workflows:\n",
        f"  [1] {diff.workflow1.name} ({diff.workflow1.id})",
        f"  [2] {diff.workflow2.name} ({diff.workflow2.id})\n",
    ]
    lines += _section("Added in [2]", "+", diff.added)
    lines += _section("Removed in [2]", "-", diff.removed)
    lines += _section("Modified", "~", diff.modified)
    lines.append(f"Unchanged: {len(diff.unchanged)} nodes")
    return "\n".join(lines)


def format_execution_list(executions: Iterable[ExecutionSummary]) -> str:
    rows = list(executions)
    with_custom = any(e.customData for e in rows)
    header = "ID\tSTATUS\tSTARTED" + ("\tCUSTOM_DATA" if with_custom else "")
    lines = [header]
    for e in rows:
        line = f"{e.id}\t{e.status}\t{e.startedAt}"
        if with_custom:
            line += "\t" + (json.dumps(e.customData, ensure_ascii=False) if e.customData else "-")
        lines.append(line)
    return "\n".join(lines)


def format_workflow_list(workflows: Iterable[Mapping[str, Any]]) -> str:
    lines = ["ID\tNAME\tSTATUS"]
    for wf in workflows:
        status = "active" if wf.get("active") else "inactive"
        lines.append(f"{wf.get('id')}\t{wf.get('name')}\t{status}")
    return "\n".join(lines)


def format_failed_executions(executions: Iterable[ExecutionSummary]) -> str:
    """Failed execution rows; an execution without `stoppedAt` is still running."""
    lines = ["ID\tWORKFLOW\tSTARTED\tERROR"]
    for e in executions:
        state = "Failed" if e.stoppedAt else "Running"
        lines.append(f"{e.id}\t{e.workflowId}\t{e.startedAt}\t{state}")
    return "\n".join(lines)
