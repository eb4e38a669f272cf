from __future__ import annotations

import logging
import math
from typing import Any, Optional

from flightmap_layout.core.config import DEFAULT_CONFIG, LayoutConfig
from flightmap_layout.core.extract.extract_graph import auto_sequence
from flightmap_layout.core.model import Activity, Coordinate, Edge, EdgeKind, ExtractedGraph
from flightmap_layout.core.placement.resolve_placements import (
    activity_duplicate_id,
    dependency_duplicate_id,
)


log = logging.getLogger(__name__)

DEPENDENCY_COLOR = "#6b7280"


def resolve_connections(
    graph: ExtractedGraph,
    coords: dict[str, Coordinate],
    config: LayoutConfig = DEFAULT_CONFIG,
) -> list[Edge]:
    """Rendered edge set for one layout pass.

    Edges only ever join placements present in coords; anything else is
    dropped. Output order is auto, explicit-same, explicit-cross,
    dependency-same, dependency-cross.

    A cross-workstream dependency normally runs from its duplicate to the
    target's canonical placement. When coords has no entry for the target
    (the caller filtered it out of the map it passes in), the edge instead
    joins the source's canonical placement to its duplicate.
    """
    builder = _EdgeBuilder(coords)
    milestones = graph.milestones_by_id
    colors = {ws.id: ws.color for ws in graph.workstreams}

    for activity, target_id in auto_sequence(graph):
        builder.add(
            f"auto-{activity.id}-{activity.source_milestone_id}-{target_id}",
            "auto",
            activity.source_milestone_id,
            target_id,
            _activity_style(colors.get(activity.workstream_id)),
            activity_id=activity.id,
        )

    # Activities sharing a (source, target) pair fan out around the centre line.
    groups: dict[tuple[str, str], list[Activity]] = {}
    for activity in graph.activities:
        for target_id in activity.target_milestone_ids:
            target = milestones.get(target_id)
            if target is None or target.workstream_id != activity.workstream_id:
                continue
            groups.setdefault((activity.source_milestone_id, target_id), []).append(activity)

    for (source_id, target_id), group in groups.items():
        if len(group) == 1:
            a = group[0]
            builder.add(
                f"explicit-{a.id}-{source_id}-{target_id}",
                "explicit-same",
                source_id,
                target_id,
                _activity_style(colors.get(a.workstream_id)),
                activity_id=a.id,
            )
            continue
        controls = fan_controls(coords.get(source_id), coords.get(target_id), len(group), config.fan_spread)
        if controls is None:
            continue
        for index, (a, control) in enumerate(zip(group, controls)):
            style = _activity_style(colors.get(a.workstream_id))
            style.update(curve="quadratic", control=control.as_dict(), fan_index=index)
            builder.add(
                f"explicit-{a.id}-{source_id}-{target_id}",
                "explicit-same",
                source_id,
                target_id,
                style,
                activity_id=a.id,
            )

    for activity in graph.activities:
        for target_id in activity.target_milestone_ids:
            target = milestones.get(target_id)
            if target is None or target.workstream_id == activity.workstream_id:
                continue
            style = _activity_style(colors.get(activity.workstream_id))
            style["dasharray"] = "4 3"
            builder.add(
                f"explicit-cross-{activity.id}-{target_id}",
                "explicit-cross",
                activity.source_milestone_id,
                activity_duplicate_id(target_id, activity.id),
                style,
                activity_id=activity.id,
            )

    cross: list[tuple[str, str, str]] = []
    for dep in graph.dependencies:
        source = milestones.get(dep.source)
        target = milestones.get(dep.target)
        if source is None or target is None:
            continue
        if source.workstream_id != target.workstream_id:
            cross.append((dep.source, dep.target, source.workstream_id))
            continue
        builder.add(
            f"dependency-{dep.source}-{dep.target}",
            "dependency-same",
            dep.source,
            dep.target,
            {
                "stroke": DEPENDENCY_COLOR,
                "stroke_width": 2,
                "dasharray": "4 3",
                "marker": None,
                "curve": "horizontal-link",
            },
        )

    for source_id, target_id, source_ws in cross:
        dup_id = dependency_duplicate_id(source_id, target_id)
        style = {
            "stroke": colors.get(source_ws) or DEPENDENCY_COLOR,
            "stroke_width": 2,
            "dasharray": "5 5",
            "marker": "dependency-arrow",
            "curve": "horizontal-link",
        }
        if target_id in coords:
            builder.add(f"dependency-cross-{source_id}-{target_id}", "dependency-cross", dup_id, target_id, style)
        else:
            # degraded: tie the copy back to its original so the link stays visible
            builder.add(f"dependency-cross-{source_id}-{target_id}", "dependency-cross", source_id, dup_id, style)

    log.debug("resolved %d edges (%d dropped)", len(builder.edges), builder.dropped)
    return builder.edges


def fan_controls(
    source: Optional[Coordinate],
    target: Optional[Coordinate],
    n: int,
    spread: float,
) -> Optional[list[Coordinate]]:
    """Quadratic control points for n parallel edges, symmetric about the source-target axis."""
    if source is None or target is None:
        return None
    dx = target.x - source.x
    dy = target.y - source.y
    length = math.hypot(dx, dy)
    if length == 0:
        return None
    cx = (source.x + target.x) / 2
    cy = (source.y + target.y) / 2
    px, py = -dy / length, dx / length
    out: list[Coordinate] = []
    for i in range(n):
        offset = i - (n - 1) / 2
        out.append(Coordinate(x=cx + offset * px * spread, y=cy + offset * py * spread))
    return out


def _activity_style(color: Optional[str]) -> dict[str, Any]:
    return {
        "stroke": color or DEPENDENCY_COLOR,
        "stroke_width": 1.5,
        "dasharray": None,
        "marker": "arrow",
        "curve": "horizontal-link",
    }


class _EdgeBuilder:
    def __init__(self, coords: dict[str, Coordinate]) -> None:
        self.coords = coords
        self.edges: list[Edge] = []
        self.seen: set[str] = set()
        self.dropped = 0

    def add(
        self,
        edge_id: str,
        kind: EdgeKind,
        source_id: str,
        target_id: str,
        style: dict[str, Any],
        activity_id: Optional[str] = None,
    ) -> None:
        source = self.coords.get(source_id)
        target = self.coords.get(target_id)
        if source is None or target is None:
            self.dropped += 1
            return
        if edge_id in self.seen:
            return
        self.seen.add(edge_id)
        self.edges.append(
            Edge(
                edge_id=edge_id,
                kind=kind,
                source_id=source_id,
                target_id=target_id,
                source_coord=source,
                target_coord=target,
                style_hint=style,
                activity_id=activity_id,
            )
        )
