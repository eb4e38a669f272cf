from __future__ import annotations

import logging

from flightmap_layout.core.model import ExtractedGraph, Placement


log = logging.getLogger(__name__)


def dependency_duplicate_id(source_id: str, target_id: str) -> str:
    return f"duplicate-{source_id}-{target_id}"


def activity_duplicate_id(target_id: str, activity_id: str) -> str:
    return f"activity-duplicate-{target_id}-{activity_id}"


def resolve_placements(graph: ExtractedGraph) -> list[Placement]:
    """Every on-screen occurrence of every milestone, in a stable order.

    1. one canonical placement per milestone, in its own workstream
    2. a copy of a dependency's source inside the target's workstream when the
       two differ, keyed on the (source, target) pair
    3. a copy of an activity's foreign target inside the activity's workstream,
       keyed on (target, activity)
    """

    milestones = graph.milestones_by_id
    placements: list[Placement] = []
    seen: set[str] = set()

    def add(p: Placement) -> None:
        if p.id in seen:
            return
        seen.add(p.id)
        placements.append(p)

    for m in graph.milestones:
        add(
            Placement(
                id=str(m.id),
                milestone=m,
                placement_workstream_id=m.workstream_id,
                is_duplicate=False,
            )
        )

    for dep in graph.dependencies:
        source = milestones.get(dep.source)
        target = milestones.get(dep.target)
        if source is None or target is None:
            log.debug("dependency %s -> %s references an unknown milestone", dep.source, dep.target)
            continue
        if source.workstream_id == target.workstream_id:
            continue
        add(
            Placement(
                id=dependency_duplicate_id(dep.source, dep.target),
                milestone=source,
                placement_workstream_id=target.workstream_id,
                is_duplicate=True,
                original_milestone_id=source.id,
            )
        )

    for activity in graph.activities:
        for target_id in activity.target_milestone_ids:
            target = milestones.get(target_id)
            if target is None or target.workstream_id == activity.workstream_id:
                continue
            add(
                Placement(
                    id=activity_duplicate_id(target_id, activity.id),
                    milestone=target,
                    placement_workstream_id=activity.workstream_id,
                    is_duplicate=True,
                    original_milestone_id=target.id,
                    activity_id=activity.id,
                )
            )

    log.debug(
        "resolved %d placements (%d duplicates)",
        len(placements),
        sum(1 for p in placements if p.is_duplicate),
    )
    return placements
