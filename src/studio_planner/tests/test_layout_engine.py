from datetime import date

import pytest

from studio_planner.engine.layout_engine import (
    DAY_WIDTH_PCT,
    Grouping,
    UrgencyTier,
    ViewMode,
    ViewRequest,
    calendar_weeks,
    compute_view,
    entries_overlap,
    layout_month_calendar,
    layout_week,
    pack_tracks_full,
    pack_tracks_linear,
    resolve_view_mode,
    start_of_week,
    urgency_tier,
    visible_span,
    week_window,
)
from studio_planner.engine.models import TaskStatus


def assert_no_overlap_within_tracks(placed):
    by_track = {}
    for entry, track in placed:
        by_track.setdefault(track, []).append(entry)
    for entries in by_track.values():
        for i, a in enumerate(entries):
            for b in entries[i + 1:]:
                assert not entries_overlap(a, b), (a.plan_id, b.plan_id)


# ----------------------------------------------------------------
# 1. PACKING
# ----------------------------------------------------------------
def test_linear_packing_reuses_free_track(make_entry):
    """
    A: 3-5, B: 4-6 (overlaps A), C: 6-7 (after A)
    Expected: A -> 0, B -> 1, C -> 0
    """
    a = make_entry("A", "2025-03-03", "2025-03-05")
    b = make_entry("B", "2025-03-04", "2025-03-06")
    c = make_entry("C", "2025-03-06", "2025-03-07")
    placed, total = pack_tracks_linear([c, b, a])
    tracks = {e.plan_id: t for e, t in placed}
    assert tracks == {"A": 0, "B": 1, "C": 0}
    assert total == 2
    assert_no_overlap_within_tracks(placed)


def test_touching_days_do_not_share_a_track(make_entry):
    # Ranges are inclusive: ending on the 5th and starting on the 5th overlap.
    a = make_entry("A", "2025-03-03", "2025-03-05")
    b = make_entry("B", "2025-03-05", "2025-03-06")
    placed, total = pack_tracks_linear([a, b])
    assert total == 2
    placed, total = pack_tracks_full([a, b])
    assert total == 2


def test_longer_entry_first_on_equal_start(make_entry):
    short = make_entry("S", "2025-03-03", "2025-03-03")
    long_ = make_entry("L", "2025-03-03", "2025-03-07")
    placed, _ = pack_tracks_linear([short, long_])
    assert [e.plan_id for e, _ in placed] == ["L", "S"]


def test_full_packing_uses_first_free_track(make_entry):
    """
    B (3-9) is longest and goes first -> track 0.
    A (3-4), D (6-6) and C (8-9) all overlap B but not each other -> track 1.
    """
    entries = [
        make_entry("A", "2025-03-03", "2025-03-04"),
        make_entry("B", "2025-03-03", "2025-03-09"),
        make_entry("C", "2025-03-08", "2025-03-09"),
        make_entry("D", "2025-03-06", "2025-03-06"),
    ]
    placed, total = pack_tracks_full(entries)
    assert_no_overlap_within_tracks(placed)
    assert total == 2
    assert dict((e.plan_id, t) for e, t in placed) == {"B": 0, "A": 1, "D": 1, "C": 1}


def test_empty_and_unreadable_entries(make_entry):
    assert pack_tracks_linear([]) == ([], 1)
    bad = make_entry("X", start=None, end=None)
    placed, total = pack_tracks_full([bad])
    assert placed == [] and total == 1


def test_no_overlap_on_dense_week(make_entry):
    entries = [
        make_entry(f"e{i}", f"2025-03-{3 + i % 5:02d}", f"2025-03-{4 + (i * 3) % 6:02d}")
        for i in range(12)
    ]
    for packer in (pack_tracks_linear, pack_tracks_full):
        placed, total = packer(entries)
        assert len(placed) == 12
        assert total >= 1
        assert_no_overlap_within_tracks(placed)


# ----------------------------------------------------------------
# 2. GEOMETRY
# ----------------------------------------------------------------
def test_visible_span_clips_to_window(make_entry):
    start, end = week_window(2025, 10)  # Mon 3 March .. Sun 9 March
    assert start == date(2025, 3, 3)

    geo = visible_span(make_entry("A", "2025-02-27", "2025-03-04"), start, end)
    assert geo["start_col"] == 0 and geo["span"] == 2
    assert not geo["starts_in_window"] and geo["ends_in_window"]
    assert geo["width_pct"] == pytest.approx(2 * DAY_WIDTH_PCT)

    assert visible_span(make_entry("B", "2025-03-20", "2025-03-21"), start, end) is None


def test_urgency_tiers():
    assert urgency_tier(0, False) == UrgencyTier.LOW
    assert urgency_tier(1, False) == UrgencyTier.MEDIUM
    assert urgency_tier(5, False) == UrgencyTier.HIGH
    assert urgency_tier(0, True) == UrgencyTier.DONE


def test_layout_week_rows_follow_members(make_entry):
    entries = [
        make_entry("A", "2025-03-03", "2025-03-05", assigned_to="HUY"),
        make_entry("B", "2025-03-04", "2025-03-04", assigned_to="HUY", status=TaskStatus.COMPLETED),
        make_entry("C", "2025-04-01", "2025-04-02", assigned_to="HUY"),
    ]
    rows = layout_week(entries, date(2025, 3, 3), ["SƠN", "HUY"])
    assert [r["key"] for r in rows] == ["SƠN", "HUY"]
    assert rows[0]["total_tracks"] == 1 and rows[0]["placed"] == []
    assert rows[1]["task_count"] == 2
    assert rows[1]["total_tracks"] == 2
    assert {p.entry.plan_id: p.tier for p in rows[1]["placed"]}["B"] == UrgencyTier.DONE


# ----------------------------------------------------------------
# 3. CALENDAR
# ----------------------------------------------------------------
def test_calendar_grid_is_six_monday_rows():
    weeks = calendar_weeks(2025, 3)
    assert len(weeks) == 6 and all(len(w) == 7 for w in weeks)
    assert weeks[0][0].day == date(2025, 2, 24)
    assert not weeks[0][0].is_current_month
    assert weeks[0][5].day == date(2025, 3, 1) and weeks[0][5].is_current_month


def test_month_calendar_packs_each_week(make_entry):
    entries = [
        make_entry("A", "2025-03-07", "2025-03-11"),  # spans two week rows
        make_entry("B", "2025-03-10", "2025-03-10"),
    ]
    rows = layout_month_calendar(entries, 2025, 3)
    first = [p.entry.plan_id for p in rows[1]["placed"]]
    second = {p.entry.plan_id: p.track for p in rows[2]["placed"]}
    assert first == ["A"]
    assert second == {"A": 0, "B": 1}


def test_iso_week_start():
    assert start_of_week(2025, 1) == date(2024, 12, 30)
    assert start_of_week(2026, 99) == start_of_week(2026, 53)


# ----------------------------------------------------------------
# 4. VIEW DISPATCH
# ----------------------------------------------------------------
def test_calendar_needs_exactly_one_member():
    assert resolve_view_mode(ViewMode.CALENDAR, ["HUY"]) == ViewMode.CALENDAR
    assert resolve_view_mode(ViewMode.CALENDAR, ["HUY", "SƠN"]) == ViewMode.GANTT
    assert resolve_view_mode(ViewMode.CALENDAR, []) == ViewMode.GANTT
    assert resolve_view_mode(ViewMode.LIST, []) == ViewMode.LIST


def test_compute_view_modes(make_entry):
    entries = (
        make_entry("A", "2025-03-03", "2025-03-05", assigned_to="HUY"),
        make_entry("B", "2025-03-04", "2025-03-04", assigned_to="SƠN", project_code="TP2025-002"),
    )
    req = ViewRequest(entries=entries, members=("HUY", "SƠN"), year=2025, month=3, week=10)

    listed = compute_view(ViewMode.LIST, req)
    assert set(listed["groups"]) == {"HUY", "SƠN"}

    gantt = compute_view("CALENDAR", req)
    assert gantt["mode"] == ViewMode.GANTT
    assert [r["key"] for r in gantt["rows"]] == ["HUY", "SƠN"]

    by_project = compute_view(ViewMode.GANTT, ViewRequest(entries, ("HUY", "SƠN"), 2025, 3, 10, Grouping.PROJECT))
    assert [r["key"] for r in by_project["rows"]] == ["TP2025-001", "TP2025-002"]

    solo = compute_view(ViewMode.CALENDAR, ViewRequest(entries, ("HUY",), 2025, 3, 10))
    assert solo["member"] == "HUY" and len(solo["weeks"]) == 6

    with pytest.raises(ValueError):
        compute_view("TIMELINE", req)
