"""Layout pipeline: roadmap document + stored overrides -> placements and edges.

build_hierarchy -> extract_graph -> resolve_placements -> TimelineScale
-> LayoutStateStore (override merge) -> resolve_connections

Every change to the data or to a stored override reruns the whole pipeline.
LayoutSession adds the drag workflow on top: pointer-move previews touch only
an in-memory coordinate map, drag-end commits one write to the store.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from flightmap_layout.core.config import DEFAULT_CONFIG, LayoutConfig
from flightmap_layout.core.connect.resolve_connections import resolve_connections
from flightmap_layout.core.extract.extract_graph import extract_graph
from flightmap_layout.core.hierarchy.build_hierarchy import build_hierarchy
from flightmap_layout.core.io.load_roadmap import dataset_id_for
from flightmap_layout.core.lint.lint_roadmap import lint_graph
from flightmap_layout.core.model import (
    EDGE_KINDS,
    Coordinate,
    ExtractedGraph,
    LayoutResult,
    PlacedNode,
    Placement,
    WorkstreamTrack,
)
from flightmap_layout.core.placement.resolve_placements import resolve_placements
from flightmap_layout.core.scale.timeline_scale import (
    TimelineScale,
    constrain_y,
    default_coordinates,
    workstream_baselines,
)
from flightmap_layout.core.state.layout_store import LayoutStateStore


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutPass:
    graph: ExtractedGraph
    placements: list[Placement]
    scale: TimelineScale
    workstream_y: dict[str, float]
    coords: dict[str, Coordinate]
    result: LayoutResult

    def placement(self, placement_id: str) -> Optional[Placement]:
        for p in self.placements:
            if p.id == placement_id:
                return p
        return None


def layout(
    data: dict[str, Any],
    store: Optional[LayoutStateStore] = None,
    config: LayoutConfig = DEFAULT_CONFIG,
    dataset_id: Optional[str] = None,
) -> LayoutResult:
    """Pure layout(data, overrides) -> {placements, edges}."""
    return run_pass(data, store, config, dataset_id).result


def run_pass(
    data: dict[str, Any],
    store: Optional[LayoutStateStore] = None,
    config: LayoutConfig = DEFAULT_CONFIG,
    dataset_id: Optional[str] = None,
) -> LayoutPass:
    graph = extract_graph(build_hierarchy(data))
    if dataset_id is None:
        dataset_id = store.dataset_id if store is not None else dataset_id_for(data)
    return layout_graph(graph, store, config, dataset_id)


def layout_graph(
    graph: ExtractedGraph,
    store: Optional[LayoutStateStore],
    config: LayoutConfig,
    dataset_id: str,
) -> LayoutPass:
    placements = resolve_placements(graph)
    scale = TimelineScale(graph.milestones, config)

    baselines = workstream_baselines([ws.id for ws in graph.workstreams], config)
    workstream_y = store.apply_workstreams(baselines) if store is not None else dict(baselines)

    defaults = default_coordinates(placements, workstream_y, scale)
    coords = store.apply_placements(defaults) if store is not None else defaults
    if store is not None:
        stale = store.stale_placement_ids(coords.keys())
        if stale:
            log.debug("ignoring %d stale placement overrides: %s", len(stale), ", ".join(stale))

    edges = resolve_connections(graph, coords, config)
    warnings = [str(e) for e in lint_graph(graph)]
    for w in warnings:
        log.info("layout warning: %s", w)

    result = LayoutResult(
        dataset_id=dataset_id,
        placements=[
            PlacedNode(
                placement_id=p.id,
                x=coords[p.id].x,
                y=coords[p.id].y,
                is_duplicate=p.is_duplicate,
                workstream_id=p.placement_workstream_id,
                source_node_data=p.milestone.as_dict(),
                original_milestone_id=p.original_milestone_id,
            )
            for p in placements
        ],
        edges=edges,
        workstreams=[
            WorkstreamTrack(id=ws.id, name=ws.name, color=ws.color, y=workstream_y[ws.id])
            for ws in graph.workstreams
        ],
        domain=scale.domain,
        raw_domain=scale.raw_domain,
        timeline_markers=list(scale.markers),
        ticks=scale.ticks(),
        warnings=warnings,
    )
    return LayoutPass(
        graph=graph,
        placements=placements,
        scale=scale,
        workstream_y=workstream_y,
        coords=coords,
        result=result,
    )


@dataclass(frozen=True)
class DragOutcome:
    placement_id: str
    y: float
    snapped_deadline: Optional[date] = None


class LayoutSession:
    """One dataset on screen: current layout, uncommitted drag state, stored overrides."""

    def __init__(
        self,
        data: dict[str, Any],
        store: LayoutStateStore,
        config: LayoutConfig = DEFAULT_CONFIG,
    ) -> None:
        self.data = data
        self.store = store
        self.config = config
        self.current = self.refresh()

    @property
    def result(self) -> LayoutResult:
        return self.current.result

    def refresh(self) -> LayoutPass:
        self.current = run_pass(self.data, self.store, self.config)
        # live coordinates; drag previews write here without committing
        self.coordinates: dict[str, Coordinate] = dict(self.current.coords)
        return self.current

    def set_data(self, data: dict[str, Any]) -> LayoutResult:
        self.data = data
        return self.refresh().result

    def preview_placement(self, placement_id: str, y: float) -> Optional[Coordinate]:
        c = self.coordinates.get(placement_id)
        if c is None:
            return None
        moved = Coordinate(x=c.x, y=y)
        self.coordinates[placement_id] = moved
        return moved

    def preview_workstream(self, workstream_id: str, y: float) -> float:
        base = self.current.workstream_y.get(workstream_id)
        if base is None:
            return 0.0
        delta = y - base
        for p in self.current.placements:
            if p.placement_workstream_id == workstream_id:
                c = self.current.coords[p.id]
                self.coordinates[p.id] = Coordinate(x=c.x, y=c.y + delta)
        return delta

    def end_placement_drag(self, placement_id: str, y: float, x: Optional[float] = None) -> Optional[DragOutcome]:
        placement = self.current.placement(placement_id)
        if placement is None:
            log.debug("drag end on unknown placement %s ignored", placement_id)
            return None
        if self.config.clamp_to_workstream:
            baseline = self.current.workstream_y.get(placement.placement_workstream_id, y)
            y = constrain_y(y, baseline, self.config)
        snapped = self.current.scale.snap_deadline(x) if x is not None else None

        self.store.commit_placement(placement_id, y)
        self.refresh()
        return DragOutcome(placement_id=placement_id, y=y, snapped_deadline=snapped)

    def end_workstream_drag(self, workstream_id: str, y: float) -> Optional[float]:
        previous = self.current.workstream_y.get(workstream_id)
        if previous is None:
            log.debug("drag end on unknown workstream %s ignored", workstream_id)
            return None
        members = {
            p.id: self.current.coords[p.id].y
            for p in self.current.placements
            if p.placement_workstream_id == workstream_id
        }
        delta = self.store.commit_workstream(workstream_id, y, previous, members)
        self.refresh()
        return delta

    def reset(self) -> LayoutResult:
        self.store.reset()
        return self.refresh().result


def summarize_layout(result: LayoutResult) -> str:
    counts = Counter(e.kind for e in result.edges)
    dupes = sum(1 for p in result.placements if p.is_duplicate)
    parts = [f"{k}={counts.get(k, 0)}" for k in EDGE_KINDS]
    return (
        f"OK: {len(result.placements)} placements ({dupes} duplicates), "
        f"{len(result.edges)} edges ("
        + ", ".join(parts)
        + f")\nDomain: {result.domain[0].isoformat()} .. {result.domain[1].isoformat()}"
    )
