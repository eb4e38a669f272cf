"""Horizontal time scale and vertical workstream tracks.

x: deadlines map linearly onto [0, content_width] over a "nice" date domain.
y: workstream baselines are evenly spaced points; same-day placements in one
   workstream are fanned out symmetrically around the baseline.
"""
from __future__ import annotations

import calendar
import logging
import math
from bisect import bisect_right
from datetime import date, timedelta
from typing import Iterable, Optional

from flightmap_layout.core.config import DEFAULT_CONFIG, LayoutConfig
from flightmap_layout.core.model import Coordinate, Milestone, Placement


log = logging.getLogger(__name__)


def add_months(d: date, months: int) -> date:
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


class TimeInterval:
    """Calendar interval with floor/ceil on dates (day resolution).

    unit is one of: day, week, month, year. Filtered intervals follow the
    usual time-scale convention: every(k) days counts from the 1st of the
    month, every(k) months from January, every(k) years from year 0.
    """

    def __init__(self, unit: str, step: int = 1) -> None:
        self.unit = unit
        self.step = step

    def __repr__(self) -> str:
        return f"TimeInterval({self.unit!r}, {self.step})"

    def is_boundary(self, d: date) -> bool:
        if self.unit == "day":
            return (d.day - 1) % self.step == 0
        if self.unit == "week":
            return d.weekday() == 6  # Sunday
        if self.unit == "month":
            return d.day == 1 and (d.month - 1) % self.step == 0
        return d.month == 1 and d.day == 1 and d.year % self.step == 0

    def floor(self, d: date) -> date:
        if self.unit == "day":
            while not self.is_boundary(d):
                d -= timedelta(days=1)
            return d
        if self.unit == "week":
            return d - timedelta(days=(d.weekday() + 1) % 7)
        if self.unit == "month":
            m = date(d.year, d.month, 1)
            while not self.is_boundary(m):
                m = add_months(m, -1)
            return m
        return date(d.year - d.year % self.step, 1, 1)

    def next(self, boundary: date) -> date:
        if self.unit == "day":
            d = boundary + timedelta(days=1)
            while not self.is_boundary(d):
                d += timedelta(days=1)
            return d
        if self.unit == "week":
            return boundary + timedelta(days=7)
        if self.unit == "month":
            m = add_months(boundary, 1)
            while not self.is_boundary(m):
                m = add_months(m, 1)
            return m
        return date(boundary.year + self.step, 1, 1)

    def ceil(self, d: date) -> date:
        f = self.floor(d)
        return f if f == d else self.next(f)

    def range(self, start: date, stop: date) -> list[date]:
        out: list[date] = []
        d = self.ceil(start)
        while d <= stop:
            out.append(d)
            d = self.next(d)
        return out


# (approximate duration in days, interval); None means finer than a day.
_TICK_INTERVALS: list[tuple[float, Optional[TimeInterval]]] = [
    (0.5, None),
    (1, TimeInterval("day", 1)),
    (2, TimeInterval("day", 2)),
    (7, TimeInterval("week")),
    (30, TimeInterval("month", 1)),
    (90, TimeInterval("month", 3)),
    (365, TimeInterval("year", 1)),
]


def _fractional_year(d: date) -> float:
    return d.year + (d.timetuple().tm_yday - 1) / 365.25


def tick_step(start: float, stop: float, count: int) -> float:
    step0 = abs(stop - start) / count
    step1 = 10 ** math.floor(math.log10(step0))
    error = step0 / step1
    if error >= math.sqrt(50):
        step1 *= 10
    elif error >= math.sqrt(10):
        step1 *= 5
    elif error >= math.sqrt(2):
        step1 *= 2
    return step1


def tick_interval(start: date, stop: date, count: int) -> Optional[TimeInterval]:
    """Interval whose duration is closest to span/count; None below a day."""
    target = abs((stop - start).days) / count
    durations = [d for d, _ in _TICK_INTERVALS]
    i = bisect_right(durations, target)
    if i == len(_TICK_INTERVALS):
        years = tick_step(_fractional_year(start), _fractional_year(stop), count)
        return TimeInterval("year", max(1, int(round(years))))
    if i == 0:
        return None
    before, after = _TICK_INTERVALS[i - 1], _TICK_INTERVALS[i]
    return before[1] if target / before[0] < after[0] / target else after[1]


class TimelineScale:
    """Date -> x for one layout pass."""

    def __init__(self, milestones: Iterable[Milestone], config: LayoutConfig = DEFAULT_CONFIG) -> None:
        self.config = config
        self.markers = timeline_markers(milestones, config.reference_day())
        self.raw_domain = _padded_domain(self.markers, config.degenerate_padding_days)
        self.interval = tick_interval(self.raw_domain[0], self.raw_domain[1], config.tick_count)
        self.domain = nice_domain(self.raw_domain, self.interval)
        log.debug("time domain %s..%s niced to %s..%s by %r", *self.raw_domain, *self.domain, self.interval)

    def x(self, d: Optional[date]) -> float:
        if d is None:
            return self.config.undated_x
        d0, d1 = self.domain
        span = (d1 - d0).days
        if span <= 0:
            return self.config.content_width / 2
        return (d - d0).days / span * self.config.content_width

    def ticks(self) -> list[date]:
        if self.interval is None:
            return list(self.markers)
        return self.interval.range(self.domain[0], self.domain[1])

    def snap_deadline(self, x: float) -> date:
        """Timeline marker nearest to a dropped x; ties keep the earlier marker."""
        best = self.markers[0]
        for m in self.markers[1:]:
            if abs(self.x(m) - x) < abs(self.x(best) - x):
                best = m
        return best


def timeline_markers(milestones: Iterable[Milestone], today: date) -> list[date]:
    """Sorted unique deadlines; a three-month window from today when nothing is dated."""
    days = sorted({m.deadline for m in milestones if m.deadline is not None})
    if not days:
        return [today, add_months(today, 1), add_months(today, 2)]
    return days


def _padded_domain(markers: list[date], padding_days: int) -> tuple[date, date]:
    lo, hi = markers[0], markers[-1]
    if lo == hi:
        pad = timedelta(days=padding_days)
        return lo - pad, hi + pad
    return lo, hi


def nice_domain(domain: tuple[date, date], interval: Optional[TimeInterval]) -> tuple[date, date]:
    lo, hi = domain
    if interval is None:
        return lo, hi
    return interval.floor(lo), interval.ceil(hi)


def point_scale(keys: Iterable[str], lo: float, hi: float, padding: float = 1.0) -> dict[str, float]:
    """Evenly spaced points over [lo, hi], outer padding in step units, centred."""
    domain: list[str] = []
    for k in keys:
        if k not in domain:
            domain.append(k)
    n = len(domain)
    if n == 0:
        return {}
    reverse = hi < lo
    start, stop = (hi, lo) if reverse else (lo, hi)
    step = (stop - start) / max(1, n - 1 + padding * 2)
    start += (stop - start - step * (n - 1)) * 0.5
    values = [start + step * i for i in range(n)]
    if reverse:
        values.reverse()
    return dict(zip(domain, values))


def workstream_baselines(workstream_ids: Iterable[str], config: LayoutConfig = DEFAULT_CONFIG) -> dict[str, float]:
    return point_scale(
        workstream_ids,
        config.band_padding,
        config.content_height - config.band_padding,
    )


def stagger_offsets(n: int, config: LayoutConfig = DEFAULT_CONFIG) -> list[float]:
    """Offsets for n same-day placements, symmetric around 0.

    Spacing shrinks with n so the total spread never exceeds the usable
    workstream band.
    """
    if n <= 1:
        return [0.0] * n
    usable = config.workstream_area_height - config.workstream_area_padding * 2
    spacing = min(usable / (n + 1), config.node_radius * 1.5)
    return [(i - (n - 1) / 2) * spacing for i in range(n)]


def default_coordinates(
    placements: list[Placement],
    baselines: dict[str, float],
    scale: TimelineScale,
) -> dict[str, Coordinate]:
    """x from the deadline, y from the workstream baseline plus collision stagger."""
    groups: dict[tuple[str, Optional[date]], list[Placement]] = {}
    for p in placements:
        groups.setdefault((p.placement_workstream_id, p.milestone.deadline), []).append(p)

    coords: dict[str, Coordinate] = {}
    for (ws_id, deadline), group in groups.items():
        base = baselines.get(ws_id, 0.0)
        x = scale.x(deadline)
        for p, offset in zip(group, stagger_offsets(len(group), scale.config)):
            coords[p.id] = Coordinate(x=x, y=base + offset)
    return coords


def constrain_y(y: float, baseline: float, config: LayoutConfig = DEFAULT_CONFIG) -> float:
    """Clamp y into the workstream band around its baseline."""
    half = config.workstream_area_height / 2 - config.workstream_area_padding
    return max(baseline - half, min(baseline + half, y))
