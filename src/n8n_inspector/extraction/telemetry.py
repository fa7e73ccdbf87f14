"""AI telemetry extraction: prompts, model exchanges and token totals.

n8n's LangChain nodes leave two kinds of traces in `runData`:

    - Chat model sub-nodes (OpenAI Chat Model, Anthropic, Gemini, ...) write
      their LLM result to the `ai_languageModel` channel:
      `json.tokenUsage {promptTokens, completionTokens, totalTokens}` and
      `json.response.generations[0][0].text`.
    - Agent nodes write the final answer to `main` as `json.output`, but the
      tokens only live on the underlying model sub-node.

`extract_ai_details` reports one exchange per model call and, for agent-named
nodes, an additional `is_agent_output` exchange carrying the agent's text with
zero tokens. Consumers skip agent exchanges when showing raw model output so
the text is not shown twice; totals are unaffected since agent exchanges never
carry tokens.

AI-relevance is decided from the node *name* (substring, case-insensitive),
not the node type, because execution records do not include node types.

Public Functions:
    extract_ai_details: Full AI view of an execution
    extract_prompts: STEP_<n> prompt templates from a "Prompts" node
    extract_exchanges: Model / agent exchanges in runData order
    is_ai_model_node: Name heuristic for AI-relevant nodes
    parse_token_usage: Normalize a tokenUsage mapping

Design Notes:
    - Any missing nested field means "feature not present"; nothing raises
    - Deterministic: same input yields the same exchanges in the same order
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from ..models.inspection import AiDetails, TokenExchange, TokenUsage
from .accessors import as_list, as_mapping, dig, find_run_data, first_item_json
from .trace_builder import execution_header

logger = logging.getLogger(__name__)

__all__ = [
    "extract_ai_details",
    "extract_prompts",
    "extract_exchanges",
    "is_ai_model_node",
    "parse_token_usage",
    "PROMPTS_NODE_NAME",
]

PROMPTS_NODE_NAME = "Prompts"
_STEP_KEY = re.compile(r"^STEP_\d+$")
_AI_NAME_MARKERS = ("openai", "chat model", "llm", "anthropic", "gemini", "agent")


def is_ai_model_node(node_name: str) -> bool:
    """Return True when the node name suggests an LLM, chat model or agent.

    Substring match, so "My Agent Wrapper" qualifies.
    """
    lower = node_name.lower()
    return any(marker in lower for marker in _AI_NAME_MARKERS)


def _as_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def parse_token_usage(raw: Any) -> TokenUsage:
    """Normalize an n8n `tokenUsage` mapping; absent counters become 0."""
    usage = as_mapping(raw)
    return TokenUsage(
        prompt_tokens=_as_count(usage.get("promptTokens")),
        completion_tokens=_as_count(usage.get("completionTokens")),
        total_tokens=_as_count(usage.get("totalTokens")),
    )


def extract_prompts(run_data: Mapping[str, Any]) -> Optional[Dict[str, str]]:
    """Collect `STEP_<n>` string values from the first output item of "Prompts".

    Returns:
        Mapping of step key to prompt text, or None when the node, its output
        or any matching key is missing
    """
    runs = as_list(run_data.get(PROMPTS_NODE_NAME))
    if not runs:
        return None
    payload = first_item_json(runs[0], "main")
    if payload is None:
        return None
    prompts = {
        key: value
        for key, value in payload.items()
        if isinstance(key, str) and _STEP_KEY.match(key) and isinstance(value, str)
    }
    return prompts or None


def _model_exchange(node_name: str, index: int, run: Mapping[str, Any]) -> Optional[TokenExchange]:
    payload = first_item_json(run, "ai_languageModel")
    if payload is None:
        return None
    text = dig(payload, "response", "generations", 0, 0, "text")
    output = text if isinstance(text, str) and text else None
    return TokenExchange(
        node_name=node_name,
        run_index=index + 1,
        timestamp=run.get("startTime"),
        execution_time=run.get("executionTime"),
        tokens=parse_token_usage(payload.get("tokenUsage")),
        output=output,
        output_length=len(output) if output else 0,
    )


def _agent_exchange(node_name: str, index: int, run: Mapping[str, Any]) -> Optional[TokenExchange]:
    if "agent" not in node_name.lower():
        return None
    text = dig(first_item_json(run, "main"), "output")
    if not isinstance(text, str) or not text:
        return None
    return TokenExchange(
        node_name=node_name,
        run_index=index + 1,
        timestamp=run.get("startTime"),
        execution_time=run.get("executionTime"),
        output=text,
        output_length=len(text),
        is_agent_output=True,
    )


def extract_exchanges(run_data: Mapping[str, Any]) -> List[TokenExchange]:
    """Return model and agent exchanges in runData order.

    For each run of an AI-relevant node, the model exchange (if any) comes
    before the agent exchange (if any).
    """
    exchanges: List[TokenExchange] = []
    for node_name, runs in run_data.items():
        if not is_ai_model_node(node_name):
            continue
        for idx, run in enumerate(as_list(runs)):
            if not isinstance(run, Mapping):
                continue
            for build in (_model_exchange, _agent_exchange):
                exchange = build(node_name, idx, run)
                if exchange is not None:
                    exchanges.append(exchange)
    logger.debug("Extracted %d AI exchange(s)", len(exchanges))
    return exchanges


def extract_ai_details(execution: Any) -> AiDetails:
    """Build the AI view of an execution.

    Args:
        execution: Raw execution detail JSON fetched with run data

    Returns:
        AiDetails with header fields, prompts, exchanges and token totals
    """
    run_data = find_run_data(execution)
    exchanges = extract_exchanges(run_data)
    totals = TokenUsage()
    for exchange in exchanges:
        totals = totals.plus(exchange.tokens)
    return AiDetails(
        **execution_header(execution),
        prompts=extract_prompts(run_data),
        exchanges=exchanges,
        totals=totals,
    )
