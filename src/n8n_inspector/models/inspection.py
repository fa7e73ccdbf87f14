"""Pydantic models for the derived views produced by the extraction layer.

These models describe what the CLI shows about an execution or a pair of
workflows: the chronological node trace, AI token exchanges, merged token
usage per model and workflow diffs. They are rebuilt from raw API JSON on
every query and are never mutated in place; filters return copies.

Field names are snake_case in Python. JSON artifacts are rendered with
camelCase aliases (`executionId`, `runIndex`, ...) so they read like the n8n
payloads they were derived from; see `to_json_dict`.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..extraction.time_utils import NOT_AVAILABLE

__all__ = [
    "NodeTraceEntry",
    "Trace",
    "TokenUsage",
    "TokenExchange",
    "AiDetails",
    "TokenUsageEntry",
    "TokenUsageReport",
    "WorkflowRef",
    "ModifiedNode",
    "DiffDetails",
    "DiffResult",
]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> Dict[str, Any]:
        """Return a JSON-ready dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class _ExecutionHeader(_CamelModel):
    """Top-level execution fields shared by every execution-derived view."""

    execution_id: Any = None
    workflow_id: Any = None
    status: Any = None
    started_at: Any = None
    stopped_at: Any = None
    duration: str = NOT_AVAILABLE


class NodeTraceEntry(_CamelModel):
    """One run of one node, as shown in the execution trace."""

    name: str
    run_index: int
    status: Optional[str] = None
    start_time: Any = None
    execution_time: Any = None
    # Names of the nodes that fed this run; None when the run has no source.
    input: Optional[List[str]] = None
    # Channel name -> flattened json payloads; None when every channel was empty.
    output: Optional[Dict[str, List[Any]]] = None
    error: Optional[str] = None


class Trace(_ExecutionHeader):
    """Time-ordered reconstruction of all node runs in one execution."""

    nodes: List[NodeTraceEntry] = Field(default_factory=list)


class TokenUsage(_CamelModel):
    """Prompt / completion / total token counters (absent counts are 0)."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def plus(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class TokenExchange(_CamelModel):
    """One AI model call (or agent-level answer) derived from a node run.

    Agent-level entries (`is_agent_output=True`) repeat the text of the
    underlying model call and never carry tokens; consumers skip them when
    showing raw model output.
    """

    node_name: str
    run_index: int
    timestamp: Any = None
    execution_time: Any = None
    tokens: TokenUsage = Field(default_factory=TokenUsage)
    output: Optional[str] = None
    output_length: int = 0
    is_agent_output: bool = False


class AiDetails(_ExecutionHeader):
    """AI-centric view of an execution: prompts, model exchanges and totals."""

    prompts: Optional[Dict[str, str]] = None
    exchanges: List[TokenExchange] = Field(default_factory=list)
    totals: TokenUsage = Field(default_factory=TokenUsage)


class TokenUsageEntry(_CamelModel):
    """Token counters accumulated for one (node, model) pair."""

    node_name: str
    model: str = "unknown"
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class TokenUsageReport(_ExecutionHeader):
    """Token usage found anywhere in an execution, merged per node and model."""

    nodes: List[TokenUsageEntry] = Field(default_factory=list)
    totals: TokenUsage = Field(default_factory=TokenUsage)


class WorkflowRef(_CamelModel):
    id: Any = None
    name: Optional[str] = None


class ModifiedNode(_CamelModel):
    name: str
    before: Dict[str, Any]
    after: Dict[str, Any]


class DiffDetails(_CamelModel):
    """Full node payloads backing a diff classification."""

    added: List[Dict[str, Any]] = Field(default_factory=list)
    removed: List[Dict[str, Any]] = Field(default_factory=list)
    modified: List[ModifiedNode] = Field(default_factory=list)


class DiffResult(_CamelModel):
    """Classification of every node name found in either workflow.

    `added`, `removed`, `modified` and `unchanged` partition the union of both
    workflows' node names; each name appears in exactly one list.
    """

    workflow1: WorkflowRef = Field(default_factory=WorkflowRef)
    workflow2: WorkflowRef = Field(default_factory=WorkflowRef)
    added: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)
    modified: List[str] = Field(default_factory=list)
    unchanged: List[str] = Field(default_factory=list)
    details: Optional[DiffDetails] = None

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.modified)
