from flightmap_layout.core.extract.extract_graph import extract_graph
from flightmap_layout.core.hierarchy.build_hierarchy import build_hierarchy
from flightmap_layout.core.placement.resolve_placements import (
    activity_duplicate_id,
    dependency_duplicate_id,
    resolve_placements,
)

from conftest import milestone, roadmap, workstream


def _placements(data):
    return resolve_placements(extract_graph(build_hierarchy(data)))


def test_same_workstream_dependency_needs_no_duplicate():
    ps = _placements(roadmap(workstream("A", milestone("M1", "2024-01-01"), milestone("M2", "2024-03-01", deps=["M1"]))))
    assert [(p.id, p.is_duplicate) for p in ps] == [("M1", False), ("M2", False)]


def test_cross_workstream_dependency_duplicates_source_into_target_workstream():
    ps = _placements(
        roadmap(
            workstream("A", milestone("M2", "2024-03-01", deps=["M1"])),
            workstream("B", milestone("M1", "2024-01-01")),
        )
    )
    by_id = {p.id: p for p in ps}
    assert list(by_id) == ["M2", "M1", "duplicate-M1-M2"]
    dup = by_id["duplicate-M1-M2"]
    assert dup.is_duplicate
    assert dup.placement_workstream_id == "A"
    assert dup.original_milestone_id == "M1"
    assert dup.milestone is by_id["M1"].milestone


def test_activity_cross_target_duplicated_into_activity_workstream():
    ps = _placements(
        roadmap(
            workstream("A", milestone("M1", "2024-01-01", activities=[{"id": "a1", "supported_milestones": ["X"]}])),
            workstream("B", milestone("X", "2024-02-01")),
        )
    )
    dup = ps[-1]
    assert dup.id == activity_duplicate_id("X", "a1") == "activity-duplicate-X-a1"
    assert dup.placement_workstream_id == "A"
    assert dup.activity_id == "a1"
    assert dup.original_milestone_id == "X"


def test_duplicates_are_keyed_per_pair():
    ps = _placements(
        roadmap(
            workstream("A", milestone("T1", "2024-02-01", deps=["S"]), milestone("T2", "2024-03-01", deps=["S"])),
            workstream("B", milestone("S", "2024-01-01")),
        )
    )
    ids = [p.id for p in ps if p.is_duplicate]
    assert ids == [dependency_duplicate_id("S", "T1"), dependency_duplicate_id("S", "T2")]


def test_placement_ids_unique_and_never_self_duplicated():
    data = roadmap(
        workstream(
            "A",
            milestone("M1", "2024-01-01", deps=["M1"], activities=[{"id": "a", "supported_milestones": ["M1", "M3"]}]),
            milestone("M1", "2024-02-01"),
        ),
        workstream("B", milestone("M3", "2024-01-10", deps=["M1", "M1", "ghost"])),
    )
    ps = _placements(data)
    ids = [p.id for p in ps]
    assert len(ids) == len(set(ids))
    for p in ps:
        if p.is_duplicate:
            assert p.placement_workstream_id != p.milestone.workstream_id
    assert ids == ["M1", "M3", "duplicate-M1-M3", "activity-duplicate-M3-a"]
