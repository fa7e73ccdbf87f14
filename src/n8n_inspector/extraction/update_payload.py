"""Preparation of workflow documents for the n8n update endpoint.

`PUT /workflows/{id}` only accepts `name`, `nodes`, `connections` and
`settings`, and each node only its definition fields; read-only fields
returned by `GET` (`id`, `active`, `tags`, `pinData`, `versionId`, ...) make
the request fail. A node sent without `credentials` loses its credential
binding, so every update re-attaches the credentials of same-named nodes from
the workflow as currently stored.

Public Functions:
    build_update_payload: Strip a workflow to the accepted fields and merge credentials
    merge_credentials: Name-keyed credential merge from an existing workflow
    set_node_code: Replace the JavaScript source of a Code node
    set_workflow_setting: Set or remove one workflow setting

Design Notes:
    - Inputs are never mutated; every function works on deep copies
    - Merge is keyed by node name, never by node id
    - A node's own credentials take precedence over the existing ones
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from ..models.n8n import WorkflowNode, WorkflowUpdatePayload
from .accessors import as_list, as_mapping, dig

logger = logging.getLogger(__name__)

__all__ = [
    "UPDATE_FIELDS",
    "WorkflowEditError",
    "NodeNotFoundError",
    "NotACodeNodeError",
    "InvalidNodeError",
    "build_update_payload",
    "merge_credentials",
    "set_node_code",
    "set_workflow_setting",
]

UPDATE_FIELDS = ("name", "nodes", "connections", "settings")
_REMOVE_SETTING_VALUES = frozenset({"null", "none"})


class WorkflowEditError(ValueError):
    """A requested workflow edit cannot be applied."""


class NodeNotFoundError(WorkflowEditError):
    def __init__(self, node_name: str, available: List[str]):
        self.node_name = node_name
        self.available = available
        super().__init__(
            f'Node "{node_name}" not found in workflow. Available nodes: '
            + (", ".join(available) or "(none)")
        )


class NotACodeNodeError(WorkflowEditError):
    def __init__(self, node_name: str, node_type: Optional[str]):
        self.node_name = node_name
        self.node_type = node_type
        super().__init__(f'Node "{node_name}" is not a code node (type: {node_type})')


class InvalidNodeError(WorkflowEditError):
    def __init__(self, position: int, reason: str):
        self.position = position
        self.reason = reason
        super().__init__(f"Invalid node #{position} in workflow: {reason}")


def _validate_node(position: int, node: Dict[str, Any]) -> WorkflowNode:
    if not isinstance(node.get("name"), str) or not node["name"]:
        raise InvalidNodeError(position, "missing node name")
    try:
        return WorkflowNode.model_validate(node)
    except ValidationError as e:
        reason = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidNodeError(position, f'"{node["name"]}": {reason}') from e


def merge_credentials(
    nodes: List[Dict[str, Any]], existing_nodes: Any
) -> List[Dict[str, Any]]:
    """Return copies of `nodes` with credentials filled in from `existing_nodes`.

    A node without credentials receives the credentials of the existing node
    bearing the same name, if that node has any.
    """
    existing_creds: Dict[str, Any] = {}
    for node in as_list(existing_nodes):
        name = dig(node, "name")
        creds = dig(node, "credentials")
        if isinstance(name, str) and creds:
            existing_creds[name] = creds
    merged: List[Dict[str, Any]] = []
    for node in nodes:
        node = copy.deepcopy(node)
        name = node.get("name")
        if not node.get("credentials") and name in existing_creds:
            node["credentials"] = copy.deepcopy(existing_creds[name])
            logger.debug("Preserved credentials of node %r from stored workflow", name)
        merged.append(node)
    return merged


def build_update_payload(workflow: Any, existing: Any = None) -> Dict[str, Any]:
    """Build the body of a workflow update request.

    Args:
        workflow: Workflow document to send (full GET payload, edited copy or
            a hand-written file)
        existing: The workflow as currently stored, used to preserve
            credentials of nodes the update does not carry them for

    Returns:
        Dict holding only name / nodes / connections / settings, with each
        node projected onto the fields the update endpoint accepts

    Raises:
        InvalidNodeError: A node has no name or a field of the wrong type
    """
    source = as_mapping(workflow)
    nodes = [dict(n) for n in as_list(source.get("nodes")) if isinstance(n, Mapping)]
    if existing is not None:
        nodes = merge_credentials(nodes, dig(existing, "nodes"))
    payload = WorkflowUpdatePayload(
        name=source.get("name") if isinstance(source.get("name"), str) else None,
        nodes=[_validate_node(i, n) for i, n in enumerate(nodes, start=1)],
        connections=copy.deepcopy(dict(as_mapping(source.get("connections")))),
        settings=copy.deepcopy(dict(as_mapping(source.get("settings")))),
    )
    dropped = sorted(k for k in source if k not in UPDATE_FIELDS)
    if dropped:
        logger.debug("Stripped read-only workflow fields from update: %s", dropped)
    # Absent node fields are omitted; None inside parameters is kept.
    body = payload.model_dump()
    body["nodes"] = [
        {k: v for k, v in node.items() if v is not None} for node in body["nodes"]
    ]
    if body["name"] is None:
        del body["name"]
    return body


def set_node_code(workflow: Any, node_name: str, code: str) -> Dict[str, Any]:
    """Return a copy of `workflow` whose Code node `node_name` runs `code`.

    Raises:
        NodeNotFoundError: No node with that name exists
        NotACodeNodeError: The node type does not contain "code"
    """
    updated = copy.deepcopy(dict(as_mapping(workflow)))
    nodes = as_list(updated.get("nodes"))
    for node in nodes:
        if isinstance(node, dict) and node.get("name") == node_name:
            node_type = node.get("type")
            if not isinstance(node_type, str) or "code" not in node_type:
                raise NotACodeNodeError(node_name, node_type)
            if not isinstance(node.get("parameters"), dict):
                node["parameters"] = {}
            node["parameters"]["jsCode"] = code
            return updated
    raise NodeNotFoundError(
        node_name, [n.get("name") for n in nodes if isinstance(n, dict) and n.get("name")]
    )


def set_workflow_setting(workflow: Any, key: str, value: str) -> Dict[str, Any]:
    """Return a copy of `workflow` with `settings[key] = value`.

    The values "null" and "none" remove the setting instead.
    """
    updated = copy.deepcopy(dict(as_mapping(workflow)))
    settings = dict(as_mapping(updated.get("settings")))
    if value.lower() in _REMOVE_SETTING_VALUES:
        settings.pop(key, None)
    else:
        settings[key] = value
    updated["settings"] = settings
    return updated
