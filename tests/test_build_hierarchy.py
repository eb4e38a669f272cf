from flightmap_layout.core.hierarchy.build_hierarchy import build_hierarchy, map_node

from conftest import milestone, roadmap, workstream


def test_map_node_defaults_every_field():
    node = map_node({}, "milestone")
    assert node.id == ""
    assert node.name == ""
    assert node.status == ""
    assert node.deadline == ""
    assert node.current_progress == 0
    assert node.supported_milestones == []
    assert node.additional_milestones == []
    assert node.dependencies == []
    assert node.parent_milestone_id is None
    assert node.children == []


def test_map_node_degrades_malformed_fields():
    node = map_node(
        {
            "id": 12,
            "name": None,
            "current_progress": "half",
            "dependencies": "M1",
            "supported_milestones": [1, None, {"x": 1}, "M2"],
        },
        "milestone",
    )
    assert node.id == "12"
    assert node.name == ""
    assert node.current_progress == 0
    assert node.dependencies == []
    assert node.supported_milestones == ["1", "M2"]


def test_build_hierarchy_levels_and_parents():
    data = roadmap(workstream("A", milestone("M1", "2024-01-01", activities=[{"id": "a1", "name": "Do"}])))
    root = build_hierarchy(data)

    assert root.type == "roadmap"
    strategy = root.children[0]
    program = strategy.children[0]
    ws = program.children[0]
    m1 = ws.children[0]
    act = m1.children[0]

    assert [strategy.type, program.type, ws.type, m1.type, act.type] == [
        "strategy",
        "program",
        "workstream",
        "milestone",
        "activity",
    ]
    assert act.parent is m1
    assert m1.parent is ws
    assert root.parent is None


def test_build_hierarchy_nests_child_milestones_under_parent():
    data = roadmap(
        workstream(
            "A",
            milestone("M1", "2024-01-01", activities=[{"id": "a1"}]),
            milestone("M2", "2024-02-01", parent="M1"),
            milestone("M3", "2024-03-01", parent="missing"),
        )
    )
    ws = build_hierarchy(data).children[0].children[0].children[0]

    assert [c.id for c in ws.children] == ["M1", "M3"]
    m1 = ws.children[0]
    assert [(c.type, c.id) for c in m1.children] == [("activity", "a1"), ("milestone", "M2")]


def test_build_hierarchy_tolerates_missing_levels():
    root = build_hierarchy({"id": "rm", "strategies": "nope"})
    assert root.children == []

    root = build_hierarchy({"strategies": [{"id": "S", "programs": [None, {"id": "P"}]}]})
    assert [p.id for p in root.children[0].children] == ["P"]


def test_build_hierarchy_generic_typed_tree():
    data = {
        "type": "roadmap",
        "id": "r",
        "children": [
            {
                "type": "workstream",
                "id": "W",
                "children": [
                    {"type": "milestone", "id": "M", "children": [{"type": "activity", "id": "a"}]},
                    {"type": "objective", "id": "odd", "children": [{"type": "milestone", "id": "hidden"}]},
                ],
            }
        ],
    }
    root = build_hierarchy(data)
    ws = root.children[0]
    assert [c.id for c in ws.children] == ["M", "odd"]
    assert ws.children[1].children == []
    assert ws.children[0].children[0].parent is ws.children[0]
