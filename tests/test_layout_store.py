import json
import logging

import pytest

from flightmap_layout.core.errors import KeyValueStoreError
from flightmap_layout.core.model import Coordinate
from flightmap_layout.core.state.kv_store import JsonFileKeyValueStore, MemoryKeyValueStore
from flightmap_layout.core.state.layout_store import LayoutStateStore, positions_key


class BrokenStore:
    def get(self, key):
        raise OSError("disk on fire")

    def set(self, key, value):
        raise OSError("disk on fire")

    def remove(self, key):
        raise OSError("disk on fire")


def test_positions_key():
    assert positions_key("placement", "rm-1") == "placement-positions-rm-1"
    assert positions_key("workstream", "7") == "workstream-positions-7"


def test_commit_placement_is_idempotent():
    backend = MemoryKeyValueStore()
    store = LayoutStateStore(backend, "rm")
    store.commit_placement("M1", 250)
    first = json.dumps(backend.data, sort_keys=True)
    store.commit_placement("M1", 250)
    assert json.dumps(backend.data, sort_keys=True) == first
    assert backend.data["placement-positions-rm"] == {"M1": {"y": 250.0}}


def test_store_reads_existing_overrides_and_skips_bad_values():
    backend = MemoryKeyValueStore(
        {
            "placement-positions-rm": {"M1": {"y": 10}, "M2": {"y": "high"}, "M3": 5},
            "workstream-positions-rm": {"A": {"y": 99.5}},
            "placement-positions-other": {"M1": {"y": 1}},
        }
    )
    store = LayoutStateStore(backend, "rm")
    assert store.placement_overrides == {"M1": 10.0}
    assert store.workstream_overrides == {"A": 99.5}


def test_apply_overrides_keeps_x():
    store = LayoutStateStore(MemoryKeyValueStore({"placement-positions-rm": {"M1": {"y": 42}}}), "rm")
    merged = store.apply_placements({"M1": Coordinate(5, 1), "M2": Coordinate(6, 2)})
    assert merged == {"M1": Coordinate(5, 42), "M2": Coordinate(6, 2)}
    assert store.apply_workstreams({"A": 100.0}) == {"A": 100.0}
    assert store.stale_placement_ids(["M2"]) == ["M1"]


def test_commit_workstream_shifts_members():
    backend = MemoryKeyValueStore()
    store = LayoutStateStore(backend, "rm")
    delta = store.commit_workstream("A", 350, 300, {"M1": 300, "M2": 340})
    assert delta == 50
    assert store.workstream_overrides == {"A": 350.0}
    assert store.placement_overrides == {"M1": 350.0, "M2": 390.0}
    assert backend.data["workstream-positions-rm"] == {"A": {"y": 350.0}}


def test_reset_clears_both_maps():
    backend = MemoryKeyValueStore()
    store = LayoutStateStore(backend, "rm")
    store.commit_workstream("A", 1, 0, {"M1": 0})
    store.reset()
    assert backend.data == {}
    assert store.placement_overrides == {}
    assert LayoutStateStore(backend, "rm").workstream_overrides == {}


def test_broken_backend_logs_and_falls_back(caplog):
    with caplog.at_level(logging.WARNING):
        store = LayoutStateStore(BrokenStore(), "rm")
        store.commit_placement("M1", 5)
        store.reset()
    assert store.placement_overrides == {}
    assert store.workstream_overrides == {}
    messages = [r.getMessage() for r in caplog.records]
    assert any("could not read placement-positions-rm" in m for m in messages)
    assert any("could not save placement-positions-rm" in m for m in messages)
    assert any("could not remove" in m for m in messages)


def test_json_file_store_round_trip(tmp_path):
    path = tmp_path / "state" / "layout.json"
    kv = JsonFileKeyValueStore(path)
    assert kv.get("missing") is None
    kv.set("b", {"x": 1})
    kv.set("a", [1, 2])
    assert kv.keys() == ["a", "b"]
    assert json.loads(path.read_text(encoding="utf-8")) == {"a": [1, 2], "b": {"x": 1}}
    kv.remove("a")
    kv.remove("not-there")
    assert kv.keys() == ["b"]


def test_json_file_store_rejects_non_object(tmp_path):
    path = tmp_path / "layout.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(KeyValueStoreError) as ei:
        JsonFileKeyValueStore(path).get("x")
    assert ei.value.code == "E_STORE_READ"


def test_corrupt_json_file_behaves_like_no_overrides(tmp_path, caplog):
    path = tmp_path / "layout.json"
    path.write_text("{not json", encoding="utf-8")
    with caplog.at_level(logging.WARNING):
        store = LayoutStateStore(JsonFileKeyValueStore(path), "rm")
    assert store.placement_overrides == {}
    assert any("E_STORE_READ" in r.getMessage() for r in caplog.records)
