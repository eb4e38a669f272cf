from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterator, Literal, Optional


EdgeKind = Literal["auto", "explicit-same", "explicit-cross", "dependency-same", "dependency-cross"]

EDGE_KINDS: tuple[str, ...] = (
    "auto",
    "explicit-same",
    "explicit-cross",
    "dependency-same",
    "dependency-cross",
)


@dataclass(eq=False)
class TreeNode:
    id: str
    name: str
    type: str
    description: str = ""
    tagline: str = ""
    vision: str = ""
    time_horizon: str = ""
    status: str = ""
    deadline: str = ""
    current_progress: float = 0
    target_start_date: str = ""
    target_end_date: str = ""
    color: str = ""
    supported_milestones: list[str] = field(default_factory=list)
    additional_milestones: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    parent_milestone_id: Optional[str] = None
    children: list[TreeNode] = field(default_factory=list)
    parent: Optional[TreeNode] = field(default=None, repr=False)

    def walk(self) -> Iterator[TreeNode]:
        """Pre-order traversal without recursion."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass(frozen=True)
class Milestone:
    id: str
    name: str
    deadline: Optional[date]
    status: str
    dependencies: list[str]
    workstream_id: str

    description: str = ""
    current_progress: float = 0
    parent_milestone_id: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "status": self.status,
            "dependencies": list(self.dependencies),
            "workstream_id": self.workstream_id,
            "description": self.description,
            "current_progress": self.current_progress,
        }


@dataclass(frozen=True)
class Workstream:
    id: str
    name: str
    color: str
    milestones: list[Milestone]


@dataclass(frozen=True)
class Activity:
    id: str
    name: str
    source_milestone_id: str
    target_milestone_ids: list[str]
    workstream_id: str
    auto_connect: bool

    status: str = ""


@dataclass(frozen=True)
class Dependency:
    source: str  # must complete before target
    target: str


@dataclass(frozen=True)
class ExtractedGraph:
    workstreams: list[Workstream]
    activities: list[Activity]
    dependencies: list[Dependency]

    @property
    def milestones(self) -> list[Milestone]:
        return [m for ws in self.workstreams for m in ws.milestones]

    @property
    def milestones_by_id(self) -> dict[str, Milestone]:
        out: dict[str, Milestone] = {}
        for m in self.milestones:
            out.setdefault(m.id, m)
        return out


@dataclass(frozen=True)
class Placement:
    id: str
    milestone: Milestone
    placement_workstream_id: str
    is_duplicate: bool

    original_milestone_id: Optional[str] = None
    activity_id: Optional[str] = None


@dataclass(frozen=True)
class Coordinate:
    x: float
    y: float

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class PlacedNode:
    placement_id: str
    x: float
    y: float
    is_duplicate: bool
    workstream_id: str
    source_node_data: dict[str, Any]

    original_milestone_id: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "placement_id": self.placement_id,
            "x": self.x,
            "y": self.y,
            "is_duplicate": self.is_duplicate,
            "workstream_id": self.workstream_id,
            "original_milestone_id": self.original_milestone_id,
            "source_node_data": self.source_node_data,
        }


@dataclass(frozen=True)
class Edge:
    edge_id: str
    kind: EdgeKind
    source_id: str
    target_id: str
    source_coord: Coordinate
    target_coord: Coordinate
    style_hint: dict[str, Any]

    activity_id: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "edge_id": self.edge_id,
            "kind": self.kind,
            "source_id": self.source_id,
            "target_id": self.target_id,
            "source_coord": self.source_coord.as_dict(),
            "target_coord": self.target_coord.as_dict(),
            "style_hint": dict(self.style_hint),
            "activity_id": self.activity_id,
        }


@dataclass(frozen=True)
class WorkstreamTrack:
    id: str
    name: str
    color: str
    y: float


@dataclass(frozen=True)
class LayoutResult:
    dataset_id: str
    placements: list[PlacedNode]
    edges: list[Edge]
    workstreams: list[WorkstreamTrack]
    domain: tuple[date, date]
    raw_domain: tuple[date, date]
    timeline_markers: list[date]
    ticks: list[date] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def coordinates(self) -> dict[str, Coordinate]:
        return {p.placement_id: Coordinate(p.x, p.y) for p in self.placements}

    def to_dict(self) -> dict[str, Any]:
        return {
            "dataset_id": self.dataset_id,
            "domain": [self.domain[0].isoformat(), self.domain[1].isoformat()],
            "raw_domain": [self.raw_domain[0].isoformat(), self.raw_domain[1].isoformat()],
            "timeline_markers": [d.isoformat() for d in self.timeline_markers],
            "ticks": [d.isoformat() for d in self.ticks],
            "workstreams": [
                {"id": w.id, "name": w.name, "color": w.color, "y": w.y} for w in self.workstreams
            ],
            "placements": [p.as_dict() for p in self.placements],
            "edges": [e.as_dict() for e in self.edges],
            "warnings": list(self.warnings),
        }
