from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Optional

import yaml


CONFIG_ENV_VAR = "FLIGHTMAP_LAYOUT_CONFIG"


@dataclass(frozen=True)
class Margin:
    top: float = 40
    right: float = 150
    bottom: float = 30
    left: float = 150


@dataclass(frozen=True)
class LayoutConfig:
    width: float = 1600
    height: float = 900
    margin: Margin = field(default_factory=Margin)

    node_radius: float = 55
    workstream_area_height: float = 600
    workstream_area_padding: float = 15
    # point-scale range is [band_padding, content_height - band_padding]
    band_padding: float = 100

    undated_x: float = 20
    degenerate_padding_days: int = 14
    tick_count: int = 10
    fan_spread: float = 50
    clamp_to_workstream: bool = True

    # Anchor for the empty-timeline fallback domain; None means date.today().
    today: Optional[date] = None

    @property
    def content_width(self) -> float:
        return self.width - self.margin.left - self.margin.right

    @property
    def content_height(self) -> float:
        return self.height - self.margin.top - self.margin.bottom

    def reference_day(self) -> date:
        return self.today or date.today()


DEFAULT_CONFIG = LayoutConfig()


class LayoutConfigError(ValueError):
    pass


_NUMBER_FIELDS = {
    "width",
    "height",
    "node_radius",
    "workstream_area_height",
    "workstream_area_padding",
    "band_padding",
    "undated_x",
    "fan_spread",
}
_INT_FIELDS = {"degenerate_padding_days", "tick_count"}


def parse_layout_config(raw: Any) -> dict[str, Any]:
    """Check a raw mapping and turn it into LayoutConfig keyword arguments.

    Format (all keys optional):
      width: 1600
      margin: {top: 40, left: 150}
      clamp_to_workstream: false
      today: 2024-01-01
    """
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise LayoutConfigError("layout config must be a mapping")

    known = {f.name for f in dataclasses.fields(LayoutConfig)}
    out: dict[str, Any] = {}
    for k, v in raw.items():
        if k not in known:
            raise LayoutConfigError(f"unknown layout config key: {k}")
        if k in _NUMBER_FIELDS:
            if isinstance(v, bool) or not isinstance(v, (int, float)):
                raise LayoutConfigError(f"'{k}' must be a number")
            out[k] = float(v)
        elif k in _INT_FIELDS:
            if isinstance(v, bool) or not isinstance(v, int) or v < 1:
                raise LayoutConfigError(f"'{k}' must be a positive integer")
            out[k] = v
        elif k == "clamp_to_workstream":
            if not isinstance(v, bool):
                raise LayoutConfigError("'clamp_to_workstream' must be a boolean")
            out[k] = v
        elif k == "today":
            out[k] = _parse_today(v)
        elif k == "margin":
            out[k] = _parse_margin(v)
    return out


def _parse_today(v: Any) -> Optional[date]:
    if v is None or isinstance(v, date):
        return v
    if isinstance(v, str):
        try:
            return date.fromisoformat(v.strip())
        except ValueError as e:
            raise LayoutConfigError(f"'today' must be an ISO date: {v}") from e
    raise LayoutConfigError("'today' must be an ISO date")


def _parse_margin(v: Any) -> Margin:
    if not isinstance(v, dict):
        raise LayoutConfigError("'margin' must be a mapping of top/right/bottom/left")
    sides = {f.name for f in dataclasses.fields(Margin)}
    kwargs: dict[str, float] = {}
    for side, amount in v.items():
        if side not in sides:
            raise LayoutConfigError(f"unknown margin side: {side}")
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise LayoutConfigError(f"margin '{side}' must be a number")
        kwargs[side] = float(amount)
    return Margin(**kwargs)


def load_layout_config(path: str | Path | None = None) -> LayoutConfig:
    """Return DEFAULT_CONFIG merged with an optional YAML override file.

    Resolution order:
      1) path argument
      2) $FLIGHTMAP_LAYOUT_CONFIG
      3) built-in defaults
    """
    if path is None:
        path = (os.getenv(CONFIG_ENV_VAR, "") or "").strip() or None
    if not path:
        return DEFAULT_CONFIG

    p = Path(path)
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise LayoutConfigError(f"invalid YAML in {p}: {e}") from e
    overrides = parse_layout_config(raw)
    return dataclasses.replace(DEFAULT_CONFIG, **overrides)
