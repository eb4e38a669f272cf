"""User layout overrides (drag results), scoped to one dataset.

Two maps are kept: workstream id -> y and placement id -> y. They are read
once when the store is created and written back wholesale on every commit.
Backend failures are logged and behave like "no override".
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from flightmap_layout.core.errors import KeyValueStoreError
from flightmap_layout.core.model import Coordinate
from flightmap_layout.core.state.kv_store import KeyValueStore


log = logging.getLogger(__name__)

WORKSTREAM_KIND = "workstream"
PLACEMENT_KIND = "placement"

_BACKEND_ERRORS = (KeyValueStoreError, OSError, ValueError, TypeError)


def positions_key(kind: str, dataset_id: str) -> str:
    return f"{kind}-positions-{dataset_id}"


class LayoutStateStore:
    def __init__(self, backend: KeyValueStore, dataset_id: str) -> None:
        self.backend = backend
        self.dataset_id = dataset_id
        self._workstreams = self._read(WORKSTREAM_KIND)
        self._placements = self._read(PLACEMENT_KIND)

    @property
    def workstream_overrides(self) -> dict[str, float]:
        return dict(self._workstreams)

    @property
    def placement_overrides(self) -> dict[str, float]:
        return dict(self._placements)

    def commit_placement(self, placement_id: str, y: float) -> None:
        self._placements[placement_id] = float(y)
        self._write(PLACEMENT_KIND, self._placements)

    def commit_workstream(
        self,
        workstream_id: str,
        new_y: float,
        previous_y: float,
        members: Mapping[str, float],
    ) -> float:
        """Record a workstream move and shift its placements by the same delta.

        members maps each placement shown in the workstream to its current
        absolute y. Every member is recorded individually so a later
        single-placement drag is not lost. Returns the applied delta.
        """
        delta = float(new_y) - float(previous_y)
        self._workstreams[workstream_id] = float(new_y)
        for pid, y in members.items():
            self._placements[pid] = float(y) + delta
        self._write(WORKSTREAM_KIND, self._workstreams)
        self._write(PLACEMENT_KIND, self._placements)
        return delta

    def reset(self) -> None:
        self._workstreams.clear()
        self._placements.clear()
        for kind in (WORKSTREAM_KIND, PLACEMENT_KIND):
            key = positions_key(kind, self.dataset_id)
            try:
                self.backend.remove(key)
            except _BACKEND_ERRORS as e:
                log.warning("could not remove %s: %s", key, e)

    def apply_workstreams(self, defaults: Mapping[str, float]) -> dict[str, float]:
        return {wid: self._workstreams.get(wid, y) for wid, y in defaults.items()}

    def apply_placements(self, defaults: Mapping[str, Coordinate]) -> dict[str, Coordinate]:
        out: dict[str, Coordinate] = {}
        for pid, c in defaults.items():
            y = self._placements.get(pid)
            out[pid] = c if y is None else Coordinate(x=c.x, y=y)
        return out

    def stale_placement_ids(self, known: Iterable[str]) -> list[str]:
        """Overrides that no longer match any placement (e.g. a removed dependency)."""
        known_set = set(known)
        return sorted(pid for pid in self._placements if pid not in known_set)

    def _read(self, kind: str) -> dict[str, float]:
        key = positions_key(kind, self.dataset_id)
        try:
            raw = self.backend.get(key)
        except _BACKEND_ERRORS as e:
            log.warning("could not read %s, using computed positions: %s", key, e)
            return {}
        return _parse_overrides(key, raw)

    def _write(self, kind: str, values: dict[str, float]) -> None:
        key = positions_key(kind, self.dataset_id)
        try:
            self.backend.set(key, {k: {"y": v} for k, v in values.items()})
        except _BACKEND_ERRORS as e:
            log.warning("could not save %s: %s", key, e)


def _parse_overrides(key: str, raw: Any) -> dict[str, float]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        log.warning("ignoring malformed overrides under %s", key)
        return {}
    out: dict[str, float] = {}
    for k, v in raw.items():
        y = v.get("y") if isinstance(v, dict) else None
        if isinstance(y, (int, float)) and not isinstance(y, bool):
            out[str(k)] = float(y)
        else:
            log.debug("ignoring override %s under %s: %r", k, key, v)
    return out
