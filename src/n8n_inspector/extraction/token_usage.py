"""Deep token-usage search across every node run, merged per node and model.

Unlike the telemetry reducer, which only reads the documented
`ai_languageModel` location of AI-named nodes, this extractor walks every run
of every node and reports any block that looks like token accounting. It
catches usage reported by HTTP Request nodes calling a provider directly, or
by node type versions that nest the data differently.

Recognized shapes:
    - `{..., "tokenUsage": {promptTokens, completionTokens, totalTokens}}`
      (LangChain style; also found under `llmOutput`). Model taken from the
      sibling `model_name` / `model` / `modelName` keys.
    - `{..., "usage": {prompt_tokens, completion_tokens, total_tokens}}`
      (OpenAI REST style). Model taken from the sibling `model` key.

Counter keys are accepted in camelCase or snake_case.

Entries are merged in an insertion-ordered mapping keyed by
`(node_name, model)`; a repeated key accumulates all three counters. The
walk is depth-first and bounded by `_MAX_DEPTH`.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Mapping, Tuple

from ..models.inspection import TokenUsage, TokenUsageEntry, TokenUsageReport
from .accessors import as_list, find_run_data
from .trace_builder import execution_header

logger = logging.getLogger(__name__)

__all__ = ["extract_token_usage", "find_token_usage"]

_MAX_DEPTH = 25
_UNKNOWN_MODEL = "unknown"


def _count(usage: Mapping[str, Any], camel: str, snake: str) -> int:
    for key in (camel, snake):
        value = usage.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value:
            return int(value)
    return 0


def _usage_from(usage: Mapping[str, Any]) -> TokenUsage:
    return TokenUsage(
        prompt_tokens=_count(usage, "promptTokens", "prompt_tokens"),
        completion_tokens=_count(usage, "completionTokens", "completion_tokens"),
        total_tokens=_count(usage, "totalTokens", "total_tokens"),
    )


def _model_of(obj: Mapping[str, Any], keys: Tuple[str, ...]) -> str:
    for key in keys:
        value = obj.get(key)
        if isinstance(value, str) and value:
            return value
    return _UNKNOWN_MODEL


def find_token_usage(obj: Any, depth: int = 0) -> Iterator[Tuple[str, TokenUsage]]:
    """Yield `(model, usage)` for every token-usage block found inside `obj`.

    Traversal is depth-first, pre-order, in key / index order.
    """
    if depth > _MAX_DEPTH:
        return
    if isinstance(obj, Mapping):
        token_usage = obj.get("tokenUsage")
        if isinstance(token_usage, Mapping):
            yield _model_of(obj, ("model_name", "model", "modelName")), _usage_from(token_usage)
        usage = obj.get("usage")
        if isinstance(usage, Mapping) and (
            usage.get("prompt_tokens") or usage.get("completion_tokens")
        ):
            yield _model_of(obj, ("model",)), _usage_from(usage)
        children: Any = obj.values()
    elif isinstance(obj, list):
        children = obj
    else:
        return
    for child in children:
        if isinstance(child, (Mapping, list)):
            yield from find_token_usage(child, depth + 1)


def extract_token_usage(execution: Any) -> TokenUsageReport:
    """Collect token usage from every node run, merged per (node, model).

    Args:
        execution: Raw execution detail JSON fetched with run data

    Returns:
        TokenUsageReport listing merged entries in first-seen order plus totals
    """
    merged: Dict[Tuple[str, str], TokenUsageEntry] = {}
    totals = TokenUsage()
    for node_name, runs in find_run_data(execution).items():
        for run in as_list(runs):
            for model, usage in find_token_usage(run):
                totals = totals.plus(usage)
                key = (node_name, model)
                entry = merged.get(key)
                if entry is None:
                    merged[key] = TokenUsageEntry(
                        node_name=node_name,
                        model=model,
                        prompt_tokens=usage.prompt_tokens,
                        completion_tokens=usage.completion_tokens,
                        total_tokens=usage.total_tokens,
                    )
                else:
                    entry.prompt_tokens += usage.prompt_tokens
                    entry.completion_tokens += usage.completion_tokens
                    entry.total_tokens += usage.total_tokens
    nodes: List[TokenUsageEntry] = list(merged.values())
    logger.debug("Token usage found for %d (node, model) pair(s)", len(nodes))
    return TokenUsageReport(**execution_header(execution), nodes=nodes, totals=totals)
