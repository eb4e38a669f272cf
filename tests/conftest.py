from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from flightmap_layout.core.config import LayoutConfig


def milestone(mid: str, deadline: str | None = None, deps: list[str] | None = None, **extra: Any) -> dict[str, Any]:
    m: dict[str, Any] = {"id": mid, "name": f"Milestone {mid}", "status": "not_started"}
    if deadline is not None:
        m["deadline"] = deadline
    if deps:
        m["dependencies"] = deps
    m.update(extra)
    return m


def roadmap(*workstreams: dict[str, Any], rid: str = "rm") -> dict[str, Any]:
    return {
        "id": rid,
        "name": "Roadmap",
        "strategies": [
            {
                "id": "S1",
                "name": "Strategy",
                "programs": [{"id": "P1", "name": "Program", "workstreams": list(workstreams)}],
            }
        ],
    }


def workstream(wid: str, *milestones: dict[str, Any], **extra: Any) -> dict[str, Any]:
    ws: dict[str, Any] = {"id": wid, "name": f"Workstream {wid}", "milestones": list(milestones)}
    ws.update(extra)
    return ws


@pytest.fixture
def config() -> LayoutConfig:
    return LayoutConfig(today=date(2024, 1, 1))
