from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from flightmap_layout.core.model import (
    Activity,
    Dependency,
    ExtractedGraph,
    Milestone,
    TreeNode,
    Workstream,
)


log = logging.getLogger(__name__)

DEFAULT_WORKSTREAM_COLOR = "#0000FF"


@dataclass
class _PendingActivity:
    node: TreeNode
    workstream_id: str
    source_milestone_id: str
    target_ids: list[str]
    auto_connect: bool


def extract_graph(root: TreeNode) -> ExtractedGraph:
    """Flatten the hierarchy into workstream-grouped milestones, activities and dependencies.

    Milestones register under the nearest enclosing workstream. Activities take
    their source milestone from the nearest milestone ancestor; their targets
    are supported_milestones + additional_milestones, and they auto-connect
    only when both are empty.
    """

    ws_order: list[str] = []
    ws_nodes: dict[str, TreeNode] = {}
    ws_milestones: dict[str, list[Milestone]] = {}
    dependencies: list[Dependency] = []
    pending: list[_PendingActivity] = []

    # pre-order walk on an explicit stack; milestone nesting can be arbitrarily deep
    stack: list[tuple[TreeNode, Optional[str]]] = [(root, None)]
    while stack:
        node, current_ws = stack.pop()
        if node.type == "workstream":
            current_ws = node.id
            if node.id not in ws_nodes:
                ws_order.append(node.id)
                ws_nodes[node.id] = node
                ws_milestones[node.id] = []
        elif node.type == "milestone" and current_ws is not None:
            ws_milestones[current_ws].append(_to_milestone(node, current_ws))
            for dep_id in node.dependencies:
                dependencies.append(Dependency(source=dep_id, target=node.id))
        elif node.type == "activity" and current_ws is not None:
            owner = _milestone_ancestor(node)
            if owner is None:
                log.debug("activity %s has no milestone ancestor; skipped", node.id)
            else:
                targets = _union(node.supported_milestones, node.additional_milestones)
                pending.append(
                    _PendingActivity(
                        node=node,
                        workstream_id=current_ws,
                        source_milestone_id=owner.id,
                        target_ids=targets,
                        auto_connect=not targets,
                    )
                )

        stack.extend((child, current_ws) for child in reversed(node.children))

    link_parent_activities(root, pending)

    workstreams = [
        Workstream(
            id=wid,
            name=ws_nodes[wid].name,
            color=ws_nodes[wid].color or DEFAULT_WORKSTREAM_COLOR,
            milestones=ws_milestones[wid],
        )
        for wid in ws_order
    ]
    activities = [
        Activity(
            id=p.node.id,
            name=p.node.name,
            source_milestone_id=p.source_milestone_id,
            target_milestone_ids=p.target_ids,
            workstream_id=p.workstream_id,
            auto_connect=p.auto_connect,
            status=p.node.status,
        )
        for p in pending
    ]

    log.debug(
        "extracted %d workstreams, %d milestones, %d activities, %d dependencies",
        len(workstreams),
        sum(len(w.milestones) for w in workstreams),
        len(activities),
        len(dependencies),
    )
    return ExtractedGraph(workstreams=workstreams, activities=activities, dependencies=dependencies)


def link_parent_activities(root: TreeNode, pending: list[_PendingActivity]) -> None:
    """Model nested milestone progressions.

    A milestone with both child milestones and child activities gets an
    explicit edge parent -> child milestone for each of those activities.
    """
    by_node = {id(p.node): p for p in pending}
    for node in root.walk():
        if node.type != "milestone":
            continue
        child_milestones = [c.id for c in node.children if c.type == "milestone"]
        if not child_milestones:
            continue
        for child in node.children:
            if child.type != "activity":
                continue
            p = by_node.get(id(child))
            if p is None:
                continue
            p.target_ids = _union(p.target_ids, child_milestones)
            p.auto_connect = False


def auto_sequence(graph: ExtractedGraph) -> list[tuple[Activity, str]]:
    """Resolve the implicit target of every auto-connect activity.

    Per workstream, milestones are ordered by deadline (undated first, ties in
    input order); the target is the milestone right after the source. A
    source that is last in its workstream gets no target.
    """
    out: list[tuple[Activity, str]] = []
    for ws in graph.workstreams:
        ordered = sorted(ws.milestones, key=lambda m: m.deadline or date.min)
        index = {m.id: i for i, m in enumerate(ordered)}
        for a in graph.activities:
            if a.workstream_id != ws.id or not a.auto_connect:
                continue
            i = index.get(a.source_milestone_id)
            if i is not None and i < len(ordered) - 1:
                out.append((a, ordered[i + 1].id))
    return out


def parse_deadline(text: str) -> Optional[date]:
    """ISO date or datetime -> date. Anything unparseable is None."""
    s = (text or "").strip()
    if len(s) < 10:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        log.debug("ignoring invalid deadline %r", text)
        return None


def _to_milestone(node: TreeNode, workstream_id: str) -> Milestone:
    return Milestone(
        id=node.id,
        name=node.name,
        deadline=parse_deadline(node.deadline),
        status=node.status,
        dependencies=list(node.dependencies),
        workstream_id=workstream_id,
        description=node.description,
        current_progress=node.current_progress,
        parent_milestone_id=node.parent_milestone_id,
    )


def _milestone_ancestor(node: TreeNode) -> Optional[TreeNode]:
    cur = node.parent
    while cur is not None:
        if cur.type == "milestone":
            return cur
        cur = cur.parent
    return None


def _union(*lists: list[str]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    for items in lists:
        for x in items:
            if x not in seen:
                seen.add(x)
                out.append(x)
    return out
