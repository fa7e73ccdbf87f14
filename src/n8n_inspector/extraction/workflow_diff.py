"""Structural comparison of two n8n workflow definitions.

Nodes are matched by `name`, the key n8n itself uses in `connections` and
`runData`; internal node ids differ between copies of the same workflow.
Only `parameters` decide whether a matched node is modified: moving a node on
the canvas, bumping its typeVersion or re-linking credentials does not.

Classification order follows the union of names: first workflow's names in
their original order, then names only present in the second workflow, in its
order. This keeps report output reproducible.
"""
from __future__ import annotations

import copy
import json
import logging
from typing import Any, Dict, List, Mapping

from ..models.inspection import DiffDetails, DiffResult, ModifiedNode, WorkflowRef
from .accessors import as_list, dig

logger = logging.getLogger(__name__)

__all__ = ["diff_workflows", "index_nodes_by_name"]


def index_nodes_by_name(workflow: Any) -> Dict[str, Mapping[str, Any]]:
    """Map node name -> node, in node order.

    Nodes without a string name are ignored. A repeated name keeps its first
    position and its last payload.
    """
    index: Dict[str, Mapping[str, Any]] = {}
    for node in as_list(dig(workflow, "nodes")):
        name = dig(node, "name")
        if not isinstance(name, str):
            logger.debug("Ignoring workflow node without a name: %r", node)
            continue
        index[name] = node
    return index


def _canonical_parameters(node: Mapping[str, Any]) -> str:
    return json.dumps(node.get("parameters"), sort_keys=True, ensure_ascii=False, default=str)


def diff_workflows(a: Any, b: Any, *, include_details: bool = False) -> DiffResult:
    """Classify every node name of two workflows.

    Args:
        a: Baseline workflow JSON (`GET /workflows/{id}`)
        b: Workflow JSON compared against the baseline
        include_details: Also return full node payloads: the node for added /
            removed names and a before / after pair for modified names

    Returns:
        DiffResult whose added / removed / modified / unchanged lists
        partition the union of both workflows' node names
    """
    nodes_a = index_nodes_by_name(a)
    nodes_b = index_nodes_by_name(b)
    # dict keys form the ordered union: a's names first, then b's new ones.
    union = dict.fromkeys([*nodes_a, *nodes_b])

    added: List[str] = []
    removed: List[str] = []
    modified: List[str] = []
    unchanged: List[str] = []
    for name in union:
        node_a = nodes_a.get(name)
        node_b = nodes_b.get(name)
        if node_a is None:
            added.append(name)
        elif node_b is None:
            removed.append(name)
        elif _canonical_parameters(node_a) != _canonical_parameters(node_b):
            modified.append(name)
        else:
            unchanged.append(name)

    details = None
    if include_details:
        details = DiffDetails(
            added=[copy.deepcopy(dict(nodes_b[n])) for n in added],
            removed=[copy.deepcopy(dict(nodes_a[n])) for n in removed],
            modified=[
                ModifiedNode(
                    name=n,
                    before=copy.deepcopy(dict(nodes_a[n])),
                    after=copy.deepcopy(dict(nodes_b[n])),
                )
                for n in modified
            ],
        )

    return DiffResult(
        workflow1=WorkflowRef(id=dig(a, "id"), name=dig(a, "name")),
        workflow2=WorkflowRef(id=dig(b, "id"), name=dig(b, "name")),
        added=added,
        removed=removed,
        modified=modified,
        unchanged=unchanged,
        details=details,
    )
