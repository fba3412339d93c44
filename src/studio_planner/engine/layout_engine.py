# studio_planner/engine/layout_engine.py

"""
Scheduling layout: date windows, greedy track packing and bar geometry for
the weekly Gantt and the month calendar.

All range math is by whole day. An entry spans [start day, end day]
inclusive, so two entries that share a boundary day overlap.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from studio_planner.engine.models import PlanningEntry

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7
DAY_WIDTH_PCT = 100.0 / DAYS_PER_WEEK
CALENDAR_ROWS = 6


# ---------------------------------------------------------
# Enums
# ---------------------------------------------------------

class ViewMode(str, Enum):
    LIST = "LIST"
    GANTT = "GANTT"
    CALENDAR = "CALENDAR"


class Grouping(str, Enum):
    STAFF = "STAFF"
    PROJECT = "PROJECT"


class UrgencyTier(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    DONE = "DONE"


_TIER_BY_TRACK = (UrgencyTier.LOW, UrgencyTier.MEDIUM, UrgencyTier.HIGH)


def urgency_tier(track: int, is_done: bool) -> UrgencyTier:
    if is_done:
        return UrgencyTier.DONE
    return _TIER_BY_TRACK[min(max(track, 0), 2)]


# ---------------------------------------------------------
# Day ranges
# ---------------------------------------------------------

def day_range(entry: PlanningEntry) -> Optional[Tuple[date, date]]:
    """(first day, last day) of an entry; None when its start is unreadable."""
    start = entry.start
    if start is None:
        return None
    end = entry.end or start
    first, last = start.date(), end.date()
    if last < first:
        last = first
    return first, last


def entries_overlap(a: PlanningEntry, b: PlanningEntry) -> bool:
    ra, rb = day_range(a), day_range(b)
    if ra is None or rb is None:
        return False
    return ra[0] <= rb[1] and rb[0] <= ra[1]


def intersects_window(entry: PlanningEntry, window_start: date, window_end: date) -> bool:
    rng = day_range(entry)
    return rng is not None and rng[0] <= window_end and rng[1] >= window_start


def sort_for_packing(entries: Iterable[PlanningEntry]) -> List[PlanningEntry]:
    """Start ascending; on equal starts the longer entry goes first."""
    dated = []
    for e in entries:
        rng = day_range(e)
        if rng is None:
            logger.debug("Skipping plan %s with unreadable dates", e.plan_id)
            continue
        dated.append((rng, e))
    dated.sort(key=lambda item: (item[0][0], -(item[0][1] - item[0][0]).days))
    return [e for _, e in dated]


# ---------------------------------------------------------
# Track packing
# ---------------------------------------------------------

def pack_tracks_linear(entries: Iterable[PlanningEntry]) -> Tuple[List[Tuple[PlanningEntry, int]], int]:
    """
    Weekly Gantt packing. Each track only needs its last entry checked:
    entries arrive sorted, so a track's tail has the latest end day.

    Returns ([(entry, track_index)], total_tracks) with total_tracks >= 1.
    """
    tracks: List[List[PlanningEntry]] = []
    placed: List[Tuple[PlanningEntry, int]] = []

    for entry in sort_for_packing(entries):
        start_day = day_range(entry)[0]
        for i, track in enumerate(tracks):
            if start_day > day_range(track[-1])[1]:
                track.append(entry)
                placed.append((entry, i))
                break
        else:
            tracks.append([entry])
            placed.append((entry, len(tracks) - 1))

    return placed, max(1, len(tracks))


def pack_tracks_full(entries: Iterable[PlanningEntry]) -> Tuple[List[Tuple[PlanningEntry, int]], int]:
    """Calendar packing: an entry joins the first track none of whose entries it overlaps."""
    tracks: List[List[PlanningEntry]] = []
    placed: List[Tuple[PlanningEntry, int]] = []

    for entry in sort_for_packing(entries):
        index = 0
        while index < len(tracks) and any(entries_overlap(entry, other) for other in tracks[index]):
            index += 1
        if index == len(tracks):
            tracks.append([])
        tracks[index].append(entry)
        placed.append((entry, index))

    return placed, max(1, len(tracks))


# ---------------------------------------------------------
# Geometry
# ---------------------------------------------------------

@dataclass(frozen=True)
class PlacedEntry:
    entry: PlanningEntry
    track: int
    start_col: int
    span: int
    left_pct: float
    width_pct: float
    starts_in_window: bool
    ends_in_window: bool
    tier: UrgencyTier


def visible_span(entry: PlanningEntry, window_start: date, window_end: date) -> Optional[Dict[str, object]]:
    """
    Clip an entry to a window of whole days.

    Returns {start_col, span, left_pct, width_pct, starts_in_window, ends_in_window}
    or None when the entry lies outside the window.
    """
    rng = day_range(entry)
    if rng is None or rng[0] > window_end or rng[1] < window_start:
        return None

    first, last = rng
    last_col = (window_end - window_start).days
    start_col = max(0, (max(first, window_start) - window_start).days)
    end_col = min(last_col, (min(last, window_end) - window_start).days)
    span = end_col - start_col + 1

    return {
        "start_col": start_col,
        "span": span,
        "left_pct": start_col * DAY_WIDTH_PCT,
        "width_pct": span * DAY_WIDTH_PCT,
        "starts_in_window": first >= window_start,
        "ends_in_window": last <= window_end,
    }


def _place(packed: Sequence[Tuple[PlanningEntry, int]], window_start: date, window_end: date) -> List[PlacedEntry]:
    out: List[PlacedEntry] = []
    for entry, track in packed:
        geo = visible_span(entry, window_start, window_end)
        if geo is None:
            continue
        out.append(PlacedEntry(entry=entry, track=track, tier=urgency_tier(track, entry.is_done), **geo))
    return out


def weekly_row_height(total_tracks: int) -> int:
    return max(60, total_tracks * 40 + 20)


def calendar_row_height(placed: Sequence[PlacedEntry]) -> int:
    max_track = max((p.track for p in placed), default=-1)
    return max(120, (max_track + 1) * 28 + 30)


# ---------------------------------------------------------
# Date helpers
# ---------------------------------------------------------

def iso_week_number(day: date) -> int:
    return day.isocalendar()[1]


def start_of_week(year: int, week: int) -> date:
    """Monday of ISO week ``week``; weeks past the year's last clamp to it."""
    last_week = date(year, 12, 28).isocalendar()[1]
    week = min(max(1, int(week)), last_week)
    return date.fromisocalendar(year, week, 1)


def week_window(year: int, week: int) -> Tuple[date, date]:
    start = start_of_week(year, week)
    return start, start + timedelta(days=DAYS_PER_WEEK - 1)


def week_days(year: int, week: int) -> List[date]:
    start = start_of_week(year, week)
    return [start + timedelta(days=i) for i in range(DAYS_PER_WEEK)]


def week_of_month_start(year: int, month: int) -> int:
    return iso_week_number(date(year, month, 1))


@dataclass(frozen=True)
class CalendarDay:
    day: date
    is_current_month: bool


def calendar_weeks(year: int, month: int) -> List[List[CalendarDay]]:
    """Six Monday-first week rows covering the month."""
    first = date(year, month, 1)
    grid_start = first - timedelta(days=first.weekday())
    weeks = []
    for row in range(CALENDAR_ROWS):
        days = []
        for col in range(DAYS_PER_WEEK):
            d = grid_start + timedelta(days=row * DAYS_PER_WEEK + col)
            days.append(CalendarDay(day=d, is_current_month=(d.month == month and d.year == year)))
        weeks.append(days)
    return weeks


def month_window(year: int, month: int) -> Tuple[date, date]:
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


# ---------------------------------------------------------
# Views
# ---------------------------------------------------------

def group_key(entry: PlanningEntry, grouping: Grouping) -> str:
    if grouping == Grouping.PROJECT:
        return entry.project_code or entry.project_id
    return entry.assigned_to


def group_entries(entries: Iterable[PlanningEntry], grouping: Grouping) -> Dict[str, List[PlanningEntry]]:
    groups: Dict[str, List[PlanningEntry]] = {}
    for e in entries:
        groups.setdefault(group_key(e, grouping), []).append(e)
    return groups


def layout_week(
    entries: Iterable[PlanningEntry],
    window_start: date,
    rows: Sequence[str],
    grouping: Grouping = Grouping.STAFF,
) -> List[Dict[str, object]]:
    """
    Weekly Gantt: one row per member (or project) in ``rows`` order.

    Each row -> {key, task_count, total_tracks, row_height, placed}
    """
    window_end = window_start + timedelta(days=DAYS_PER_WEEK - 1)
    visible = [e for e in entries if intersects_window(e, window_start, window_end)]
    groups = group_entries(visible, grouping)

    out = []
    for key in rows:
        members = groups.get(key, [])
        packed, total_tracks = pack_tracks_linear(members)
        out.append(
            {
                "key": key,
                "task_count": len(members),
                "total_tracks": total_tracks,
                "row_height": weekly_row_height(total_tracks),
                "placed": _place(packed, window_start, window_end),
            }
        )
    return out


def layout_calendar_week_row(entries: Iterable[PlanningEntry], week_start: date) -> Dict[str, object]:
    week_end = week_start + timedelta(days=DAYS_PER_WEEK - 1)
    visible = [e for e in entries if intersects_window(e, week_start, week_end)]
    packed, _ = pack_tracks_full(visible)
    placed = _place(packed, week_start, week_end)
    return {"week_start": week_start, "placed": placed, "row_height": calendar_row_height(placed)}


def layout_month_calendar(entries: Iterable[PlanningEntry], year: int, month: int) -> List[Dict[str, object]]:
    """Six week rows; each row is packed on its own."""
    entries = list(entries)
    rows = []
    for week in calendar_weeks(year, month):
        row = layout_calendar_week_row(entries, week[0].day)
        row["days"] = week
        rows.append(row)
    return rows


@dataclass(frozen=True)
class ViewRequest:
    entries: Tuple[PlanningEntry, ...]
    members: Tuple[str, ...]
    year: int
    month: int
    week: int
    grouping: Grouping = Grouping.STAFF


def resolve_view_mode(mode: ViewMode, selected_members: Sequence[str]) -> ViewMode:
    """The calendar shows one person; any other selection falls back to the Gantt."""
    mode = ViewMode(mode)
    if mode == ViewMode.CALENDAR and len(selected_members) != 1:
        return ViewMode.GANTT
    return mode


def _selected(req: ViewRequest) -> List[PlanningEntry]:
    members = set(req.members)
    return [e for e in req.entries if e.assigned_to in members]


def _compute_list(req: ViewRequest) -> Dict[str, object]:
    selected = _selected(req)
    ordered = sorted(selected, key=lambda e: (e.start_time, e.plan_id))
    return {"mode": ViewMode.LIST, "groups": group_entries(ordered, req.grouping)}


def _compute_gantt(req: ViewRequest) -> Dict[str, object]:
    window_start, window_end = week_window(req.year, req.week)
    selected = _selected(req)
    if req.grouping == Grouping.PROJECT:
        rows = sorted({group_key(e, Grouping.PROJECT) for e in selected
                       if intersects_window(e, window_start, window_end)})
    else:
        rows = list(req.members)
    return {
        "mode": ViewMode.GANTT,
        "window": (window_start, window_end),
        "days": week_days(req.year, req.week),
        "rows": layout_week(selected, window_start, rows, req.grouping),
    }


def _compute_calendar(req: ViewRequest) -> Dict[str, object]:
    return {
        "mode": ViewMode.CALENDAR,
        "member": req.members[0],
        "weeks": layout_month_calendar(_selected(req), req.year, req.month),
    }


_VIEW_COMPUTERS: Dict[ViewMode, Callable[[ViewRequest], Dict[str, object]]] = {
    ViewMode.LIST: _compute_list,
    ViewMode.GANTT: _compute_gantt,
    ViewMode.CALENDAR: _compute_calendar,
}


def compute_view(mode, req: ViewRequest) -> Dict[str, object]:
    try:
        mode = ViewMode(mode)
    except ValueError:
        raise ValueError(f"Unknown view mode: {mode}")
    mode = resolve_view_mode(mode, req.members)
    return _VIEW_COMPUTERS[mode](req)
