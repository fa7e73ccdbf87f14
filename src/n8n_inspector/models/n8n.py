"""Pydantic models for the n8n REST payloads the CLI sends or lists.

Execution detail and workflow detail documents are consumed as raw JSON by the
extraction layer (their shape varies between n8n versions and node type
versions). The models here cover the two places where a strict shape is
wanted: the node projection accepted by the workflow update endpoint, and the
light execution rows returned by the execution listing endpoint.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WorkflowNode(BaseModel):
    """A workflow node as accepted by `PUT /workflows/{id}`.

    Covers the node definition fields of the public API node schema,
    including the per-node execution flags (`disabled`, `onError`,
    `retryOnFail`, ...). Keys outside that schema are dropped.
    """

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str
    type: Optional[str] = None
    typeVersion: Optional[Any] = None
    position: Optional[List[Any]] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    credentials: Optional[Dict[str, Any]] = None
    webhookId: Optional[str] = None
    disabled: Optional[bool] = None
    notes: Optional[str] = None
    notesInFlow: Optional[bool] = None
    executeOnce: Optional[bool] = None
    alwaysOutputData: Optional[bool] = None
    retryOnFail: Optional[bool] = None
    maxTries: Optional[int] = None
    waitBetweenTries: Optional[int] = None
    continueOnFail: Optional[bool] = None
    onError: Optional[str] = None

    @field_validator("parameters", mode="before")
    @classmethod
    def null_parameters_to_empty(cls, v: Any) -> Any:
        """Hand-written files may carry `"parameters": null` or other non-objects."""
        return v if isinstance(v, dict) else {}


class WorkflowUpdatePayload(BaseModel):
    """The only top-level fields the workflow update endpoint accepts."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    nodes: List[WorkflowNode] = Field(default_factory=list)
    connections: Dict[str, Any] = Field(default_factory=dict)
    settings: Dict[str, Any] = Field(default_factory=dict)


class ExecutionSummary(BaseModel):
    """One row of `GET /executions` (requested without run data)."""

    model_config = ConfigDict(extra="ignore")

    id: Any
    workflowId: Optional[Any] = None
    status: Optional[str] = None
    startedAt: Optional[str] = None
    stoppedAt: Optional[str] = None
    customData: Optional[Dict[str, Any]] = None
