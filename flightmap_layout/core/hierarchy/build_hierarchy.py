"""Normalize a raw roadmap document into a typed TreeNode hierarchy.

roadmap -> strategy -> program -> workstream -> milestone (-> milestone ...) -> activity

Nothing here fails: absent or malformed fields become defaults.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from flightmap_layout.core.model import TreeNode


log = logging.getLogger(__name__)

KNOWN_NODE_TYPES: set[str] = {"roadmap", "strategy", "program", "workstream", "milestone", "activity"}

# level -> (key holding the next level down, its node type)
_CHILD_LEVELS: dict[str, tuple[str, str]] = {
    "roadmap": ("strategies", "strategy"),
    "strategy": ("programs", "program"),
    "program": ("workstreams", "workstream"),
}


def build_hierarchy(data: dict[str, Any]) -> TreeNode:
    if "type" in data and "children" in data:
        root = _build_typed(data)
    else:
        root = _build_level(data, "roadmap")
    _link_parents(root)
    return root


def _build_level(raw: dict[str, Any], node_type: str) -> TreeNode:
    node = map_node(raw, node_type)
    if node_type == "workstream":
        node.children = _workstream_children(raw)
        return node

    if node_type in _CHILD_LEVELS:
        child_key, child_type = _CHILD_LEVELS[node_type]
        node.children = [_build_level(c, child_type) for c in _as_records(raw.get(child_key))]
    return node


def _workstream_children(raw: dict[str, Any]) -> list[TreeNode]:
    milestone_nodes: list[TreeNode] = []
    by_id: dict[str, TreeNode] = {}
    for m in _as_records(raw.get("milestones")):
        node = map_node(m, "milestone")
        node.children = [map_node(a, "activity") for a in _as_records(m.get("activities"))]
        milestone_nodes.append(node)
        by_id.setdefault(node.id, node)

    # Nest child milestones under their parent; an unknown parent keeps the node top-level.
    top_level: list[TreeNode] = []
    for node in milestone_nodes:
        parent = by_id.get(node.parent_milestone_id) if node.parent_milestone_id else None
        if parent is not None and parent is not node:
            parent.children.append(node)
        else:
            top_level.append(node)

    activities = [map_node(a, "activity") for a in _as_records(raw.get("activities"))]
    return top_level + activities


def _build_typed(raw: dict[str, Any]) -> TreeNode:
    root = _typed_node(raw)
    stack = [(root, raw)]
    while stack:
        node, record = stack.pop()
        if node.type not in KNOWN_NODE_TYPES:
            log.debug("unknown node type %r (id=%s); kept as leaf", node.type, node.id)
            continue
        for child_raw in _as_records(record.get("children")):
            child = _typed_node(child_raw)
            node.children.append(child)
            stack.append((child, child_raw))
    return root


def _typed_node(raw: dict[str, Any]) -> TreeNode:
    ntype = raw.get("type")
    return map_node(raw, ntype if isinstance(ntype, str) else "")


def map_node(raw: dict[str, Any], node_type: str) -> TreeNode:
    return TreeNode(
        id=as_id(raw.get("id")),
        name=_as_text(raw.get("name")),
        type=node_type,
        description=_as_text(raw.get("description")),
        tagline=_as_text(raw.get("tagline")),
        vision=_as_text(raw.get("vision")),
        time_horizon=_as_text(raw.get("time_horizon")),
        status=_as_text(raw.get("status")),
        deadline=_as_text(raw.get("deadline")),
        current_progress=_as_number(raw.get("current_progress")),
        target_start_date=_as_text(raw.get("target_start_date")),
        target_end_date=_as_text(raw.get("target_end_date")),
        color=_as_text(raw.get("color")),
        supported_milestones=as_id_list(raw.get("supported_milestones")),
        additional_milestones=as_id_list(raw.get("additional_milestones")),
        dependencies=as_id_list(raw.get("dependencies")),
        parent_milestone_id=_as_optional_id(raw.get("parent")),
    )


def _link_parents(root: TreeNode) -> None:
    stack = [root]
    while stack:
        node = stack.pop()
        for child in node.children:
            child.parent = node
            stack.append(child)


def as_id(v: Any) -> str:
    if v is None or isinstance(v, (dict, list, bool)):
        return ""
    return str(v).strip()


def as_id_list(v: Any) -> list[str]:
    if not isinstance(v, list):
        return []
    return [i for i in (as_id(x) for x in v) if i]


def _as_optional_id(v: Any) -> Optional[str]:
    return as_id(v) or None


def _as_text(v: Any) -> str:
    if isinstance(v, str):
        return v
    if isinstance(v, date):
        return v.isoformat()
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return ""


def _as_number(v: Any) -> float:
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return v
    return 0


def _as_records(v: Any) -> list[dict[str, Any]]:
    if not isinstance(v, list):
        return []
    return [x for x in v if isinstance(x, dict)]
