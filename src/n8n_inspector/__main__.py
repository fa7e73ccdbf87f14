"""Main CLI entry point for n8n-inspector.

This module provides a command-line interface using Typer. Each command:
1.  Loads configuration (environment / `.env`) and configures logging.
2.  Fetches the raw execution or workflow JSON through the async API client
    (n8n_inspector.client).
3.  Runs the pure extraction functions (n8n_inspector.inspector).
4.  Prints a text report (n8n_inspector.formatting) or, with `--json`, writes
    a JSON artifact (n8n_inspector.artifacts) and prints its path.

API and edit failures print an error and exit with status 1. Empty results
("no failed nodes", "no matching nodes") are reported and exit with status 0.
"""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from dotenv import find_dotenv, load_dotenv

from .artifacts import write_json_artifact
from .client import N8nApiError, N8nClient
from .config import Settings, get_settings
from .formatting import (
    format_ai_details,
    format_compact_summary,
    format_diff,
    format_execution_list,
    format_failed_executions,
    format_node_details,
    format_token_usage,
    format_workflow_list,
)
from .inspector import (
    WorkflowEditError,
    build_trace,
    diff_workflows,
    extract_ai_details,
    extract_token_usage,
    filter_by_name,
    filter_failed,
    set_node_code,
    set_workflow_setting,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

app = typer.Typer(help="Inspect n8n executions and compare workflows", no_args_is_help=True)
workflow_app = typer.Typer(help="Workflow comparison and editing", no_args_is_help=True)
app.add_typer(workflow_app, name="workflow")

JSON_OPTION = typer.Option(False, "--json", help="Write full JSON to a file and print its path")


def _make_client(settings: Settings) -> N8nClient:
    return N8nClient.from_settings(settings)


def _load_settings() -> Settings:
    try:
        settings = get_settings()
    except RuntimeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    logging.basicConfig(level=settings.LOG_LEVEL)
    return settings


def _run(settings: Settings, action: Callable[[N8nClient], Awaitable[T]]) -> T:
    """Run `action` with a fresh client; API / edit errors exit with status 1."""

    async def _main() -> T:
        async with _make_client(settings) as client:
            return await action(client)

    try:
        return asyncio.run(_main())
    except (N8nApiError, WorkflowEditError) as e:
        logger.debug("Command failed", exc_info=True)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def _emit_json(settings: Settings, data: Any, prefix: str) -> None:
    path = write_json_artifact(data, prefix, settings.OUTPUT_DIR)
    typer.echo(f"JSON written to: {path}")


@app.callback()
def main() -> None:
    """n8n-inspector CLI.

    Configure N8N_BASE_URL and N8N_API_KEY in the environment or a .env file.
    """
    env_file = find_dotenv(usecwd=True)
    if env_file:
        load_dotenv(env_file)
        logger.debug("Loaded environment from %s", env_file)


@app.command(help="Show the node-by-node trace of an execution.")
def execution(
    execution_id: str = typer.Argument(..., help="Execution id"),
    ai: bool = typer.Option(False, "--ai", help="Show prompts, AI outputs and token usage"),
    node: Optional[str] = typer.Option(
        None, "--node", help="Only nodes whose name contains this text (case-insensitive)"
    ),
    errors_only: bool = typer.Option(False, "--errors-only", help="Only failed node runs"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Dump node outputs"),
    full: bool = typer.Option(False, "--full", help="Do not truncate outputs"),
    json_out: bool = JSON_OPTION,
) -> None:
    """Render one execution as a compact table, a verbose dump or an AI report."""
    settings = _load_settings()
    raw = _run(settings, lambda c: c.get_execution(execution_id))

    if ai:
        details = extract_ai_details(raw)
        if json_out:
            _emit_json(settings, details.to_json_dict(), f"execution-{execution_id}-ai")
        else:
            typer.echo(
                format_ai_details(
                    details,
                    full=full,
                    max_output_length=settings.AI_OUTPUT_MAX_CHARS,
                    prompt_preview=settings.PROMPT_PREVIEW_CHARS,
                )
            )
        return

    trace = build_trace(raw)
    if node:
        trace = filter_by_name(trace, node)
        if not trace.nodes:
            typer.echo(f'No nodes matching "{node}" found.')
            return
    if errors_only:
        trace = filter_failed(trace)
        if not trace.nodes:
            typer.echo("No failed nodes in this execution.")
            return

    if json_out:
        _emit_json(settings, trace.to_json_dict(), f"execution-{execution_id}")
    elif verbose or node:
        typer.echo(format_node_details(trace, full=full, max_length=settings.PREVIEW_MAX_CHARS))
    else:
        typer.echo(format_compact_summary(trace))


@app.command(help="Show token usage found anywhere in an execution, per node and model.")
def tokens(
    execution_id: str = typer.Argument(..., help="Execution id"),
    json_out: bool = JSON_OPTION,
) -> None:
    settings = _load_settings()
    raw = _run(settings, lambda c: c.get_execution(execution_id))
    report = extract_token_usage(raw)
    if json_out:
        _emit_json(settings, report.to_json_dict(), f"tokens-{execution_id}")
    else:
        typer.echo(format_token_usage(report))


@app.command(help="List recent executions of a workflow.")
def executions(
    workflow_id: str = typer.Argument(..., help="Workflow id"),
    limit: int = typer.Option(10, "--limit", help="Maximum number of executions"),
    status: Optional[str] = typer.Option(None, "--status", help="success, error or waiting"),
    custom_filter: Optional[str] = typer.Option(
        None, "--filter", help="Only executions whose customData has key=value"
    ),
    json_out: bool = JSON_OPTION,
) -> None:
    settings = _load_settings()
    rows = _run(settings, lambda c: c.list_executions(workflow_id, limit=limit, status=status))
    if custom_filter:
        key, _, value = custom_filter.partition("=")
        rows = [r for r in rows if (r.customData or {}).get(key) == value]
        if not rows:
            typer.echo(f'No executions found with customData.{key}="{value}"')
            return
    if json_out:
        _emit_json(
            settings, [r.model_dump(mode="json") for r in rows], f"executions-{workflow_id}"
        )
    else:
        typer.echo(f"\nExecutions for workflow {workflow_id}:\n")
        typer.echo(format_execution_list(rows))


@app.command(help="List recent failed executions across all workflows.")
def errors(
    limit: int = typer.Option(10, "--limit", help="Maximum number of executions"),
    json_out: bool = JSON_OPTION,
) -> None:
    settings = _load_settings()
    rows = _run(settings, lambda c: c.list_executions(None, limit=limit, status="error"))
    if json_out:
        _emit_json(settings, [r.model_dump(mode="json") for r in rows], "errors")
    else:
        typer.echo("\nRecent failed executions:\n")
        typer.echo(format_failed_executions(rows))


@app.command(help="List all workflows of the instance.")
def workflows(json_out: bool = JSON_OPTION) -> None:
    settings = _load_settings()
    rows = _run(settings, lambda c: c.list_workflows())
    if json_out:
        _emit_json(settings, rows, "workflows")
    else:
        typer.echo("\nWorkflows:\n")
        typer.echo(format_workflow_list(rows))


@workflow_app.command("diff", help="Compare the nodes of two workflows.")
def workflow_diff(
    workflow_id_1: str = typer.Argument(..., help="Baseline workflow id"),
    workflow_id_2: str = typer.Argument(..., help="Workflow id compared against the baseline"),
    json_out: bool = JSON_OPTION,
) -> None:
    settings = _load_settings()
    wf1, wf2 = _run(settings, lambda c: c.get_workflows(workflow_id_1, workflow_id_2))
    diff = diff_workflows(wf1, wf2, include_details=json_out)
    typer.echo(format_diff(diff))
    if json_out:
        path = write_json_artifact(
            diff.to_json_dict(), f"diff-{workflow_id_1}-{workflow_id_2}", settings.OUTPUT_DIR
        )
        typer.echo(f"\nFull diff written to: {path}")


@workflow_app.command("update", help="Replace a workflow from a JSON file (credentials preserved).")
def workflow_update(
    workflow_id: str = typer.Argument(..., help="Workflow id"),
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
) -> None:
    settings = _load_settings()
    try:
        data = json.loads(file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        typer.echo(f"Error: {file} is not valid JSON: {e}", err=True)
        raise typer.Exit(code=1)
    updated = _run(settings, lambda c: c.update_workflow(workflow_id, data))
    typer.echo(f"Workflow updated: {updated.get('name')} (ID: {updated.get('id')})")


@workflow_app.command("set-code", help="Replace the JavaScript of a Code node from a file.")
def workflow_set_code(
    workflow_id: str = typer.Argument(..., help="Workflow id"),
    node_name: str = typer.Argument(..., help="Name of the Code node"),
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
) -> None:
    settings = _load_settings()
    code = file.read_text(encoding="utf-8")

    async def _action(client: N8nClient) -> dict:
        workflow = await client.get_workflow(workflow_id)
        edited = set_node_code(workflow, node_name, code)
        return await client.update_workflow(workflow_id, edited, existing=workflow)

    updated = _run(settings, _action)
    typer.echo(f'Updated code in "{node_name}" node of workflow "{updated.get("name")}"')


@workflow_app.command("set-setting", help='Set a workflow setting ("null" or "none" removes it).')
def workflow_set_setting(
    workflow_id: str = typer.Argument(..., help="Workflow id"),
    key: str = typer.Argument(..., help="Setting key, e.g. errorWorkflow"),
    value: str = typer.Argument(..., help="Setting value"),
) -> None:
    settings = _load_settings()

    async def _action(client: N8nClient) -> dict:
        workflow = await client.get_workflow(workflow_id)
        edited = set_workflow_setting(workflow, key, value)
        return await client.update_workflow(workflow_id, edited, existing=workflow)

    updated = _run(settings, _action)
    typer.echo(f'Set {key}={value} on workflow "{updated.get("name")}"')


if __name__ == "__main__":  # pragma: no cover
    app()
