from __future__ import annotations

from typing import Any, Iterator, Optional

from flightmap_layout.core.errors import RoadmapLintError
from flightmap_layout.core.extract.extract_graph import extract_graph
from flightmap_layout.core.hierarchy.build_hierarchy import build_hierarchy
from flightmap_layout.core.model import ExtractedGraph


# Roadmap lint rules. Findings are warnings: layout still renders.
# - W_DEPENDENCY_CYCLE: milestones depend on each other in a loop
# - W_UNKNOWN_DEPENDENCY: dependencies references a milestone id that does not exist
# - W_UNKNOWN_ACTIVITY_TARGET: supported/additional milestone id does not exist


def lint_roadmap(data: dict[str, Any], file: Optional[str] = None) -> list[RoadmapLintError]:
    """Lint a raw roadmap document."""
    return lint_graph(extract_graph(build_hierarchy(data)), file=file)


def lint_graph(graph: ExtractedGraph, file: Optional[str] = None) -> list[RoadmapLintError]:
    milestones = graph.milestones_by_id
    errors: list[RoadmapLintError] = []

    id_to_deps: dict[str, list[str]] = {}
    for m in graph.milestones:
        id_to_deps.setdefault(m.id, [])
        for di, dep in enumerate(m.dependencies):
            if dep not in milestones:
                errors.append(
                    RoadmapLintError(
                        code="W_UNKNOWN_DEPENDENCY",
                        message=f"dependencies references unknown milestone id: {dep}",
                        file=file,
                        path=f"milestones[{m.id}].dependencies[{di}]",
                    )
                )
                continue
            id_to_deps[m.id].append(dep)

    for a in graph.activities:
        for target_id in a.target_milestone_ids:
            if target_id not in milestones:
                errors.append(
                    RoadmapLintError(
                        code="W_UNKNOWN_ACTIVITY_TARGET",
                        message=f"activity targets unknown milestone id: {target_id}",
                        file=file,
                        path=f"activities[{a.id}]",
                    )
                )

    for nid, msg in detect_cycles(id_to_deps):
        errors.append(
            RoadmapLintError(
                code="W_DEPENDENCY_CYCLE",
                message=msg,
                file=file,
                path=f"milestones[{nid}].dependencies",
            )
        )

    return _sorted(errors)


def detect_cycles(id_to_deps: dict[str, list[str]]) -> list[tuple[str, str]]:
    """DFS with recursion-stack marking; one finding per distinct cycle.

    Runs on an explicit frame stack so chain length is not bounded by the
    interpreter's recursion limit.
    """
    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {nid: WHITE for nid in id_to_deps.keys()}
    emitted: set[frozenset[str]] = set()
    out: list[tuple[str, str]] = []

    for start in sorted(state.keys()):
        if state[start] != WHITE:
            continue
        state[start] = GRAY
        path: list[str] = [start]
        frames: list[tuple[str, Iterator[str]]] = [(start, iter(id_to_deps.get(start, [])))]
        while frames:
            u, deps = frames[-1]
            v = next(deps, None)
            if v is None:
                frames.pop()
                path.pop()
                state[u] = BLACK
                continue
            if v not in state:
                continue
            if state[v] == GRAY:
                # cycle: v ... u -> v
                cycle = path[path.index(v):] + [v]
                key = frozenset(cycle)
                if key not in emitted:
                    emitted.add(key)
                    out.append((u, "dependency cycle detected: " + " -> ".join(cycle)))
            elif state[v] == WHITE:
                state[v] = GRAY
                path.append(v)
                frames.append((v, iter(id_to_deps.get(v, []))))

    return out


def _sorted(errors: list[RoadmapLintError]) -> list[RoadmapLintError]:
    return sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code, e.message))
