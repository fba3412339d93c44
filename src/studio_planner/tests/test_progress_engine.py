import pytest

from studio_planner.engine.models import Project, ProjectMetadata, StageProgress
from studio_planner.engine.progress_engine import (
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_NEEDS_ATTENTION,
    apply_metadata,
    calculate_progress,
    derive_status,
    display_name,
    mark_all_complete,
    mark_stage_complete,
    normalize_stage_data,
    pending_count,
    set_item,
    set_stage_owner,
    stage_status,
    toggle_item,
)
from studio_planner.engine.stages import STAGES


# ----------------------------------------------------------------
# 1. PROGRESS
# ----------------------------------------------------------------
def test_weighted_progress_partial_stages(make_project):
    """
    Stage 1 (11%, 4 items) all checked, stage 2 (20.5%, 3 items) 1 of 3:
      11 + 20.5 / 3 = 17.833...
    """
    p = make_project(stages={1: [True] * 4, 2: [True, False, False]})
    assert calculate_progress(p) == pytest.approx(11 + 20.5 / 3)
    assert round(calculate_progress(p), 2) == 17.83


def test_empty_project_is_zero(make_project):
    assert calculate_progress(make_project()) == 0.0


def test_all_checked_is_100(make_project):
    p = mark_all_complete(make_project())
    assert calculate_progress(p) == pytest.approx(100.0)
    assert p.status == STATUS_COMPLETED


def test_short_and_long_checklists_are_normalized(make_project):
    # Stage 1 has 4 items: the surplus is dropped, a short list is padded
    p = make_project(stages={1: [True] * 7, 2: [True]})
    assert calculate_progress(p) == pytest.approx(11 + 20.5 / 3)

    n = normalize_stage_data(p)
    assert set(n.stage_data) == {s.id for s in STAGES}
    assert n.stage_data[1].checked_items == [True] * 4
    assert n.stage_data[2].checked_items == [True, False, False]


def test_unknown_stage_keys_are_ignored(make_project):
    p = make_project(stages={1: [True] * 4, 42: [True, True]})
    assert calculate_progress(p) == pytest.approx(11.0)


def test_progress_is_monotonic_in_checks(make_project):
    p = make_project()
    last = calculate_progress(p)
    for stage in STAGES:
        for i in range(len(stage.items)):
            p = set_item(p, stage.id, i, True)
            now = calculate_progress(p)
            assert now >= last
            last = now
    assert 0.0 <= last <= 100.0


# ----------------------------------------------------------------
# 2. STATUS
# ----------------------------------------------------------------
def test_derive_status_thresholds():
    assert derive_status(100) == STATUS_COMPLETED
    assert derive_status(49.9) == STATUS_NEEDS_ATTENTION
    assert derive_status(50) == STATUS_IN_PROGRESS


def test_stage_status_and_pending(make_project):
    p = make_project(stages={1: [True] * 4, 2: [True]})
    assert stage_status(p, 1) == "green"
    assert stage_status(p, 2) == "red"
    assert stage_status(p, 99) == "red"
    assert pending_count(p, 2) == 2
    assert pending_count(p, 3) == 2


# ----------------------------------------------------------------
# 3. EDITS
# ----------------------------------------------------------------
def test_toggle_returns_new_project(make_project):
    p = make_project()
    q = toggle_item(p, 1, 2)
    assert p.stage_data == {}
    assert q.stage_data[1].checked_items == [False, False, True, False]
    assert toggle_item(q, 1, 2).stage_data[1].checked_items == [False] * 4
    assert q.last_updated


def test_edits_keep_owner(make_project):
    p = set_stage_owner(make_project(), 3, "SƠN")
    p = mark_stage_complete(p, 3)
    assert p.stage_data[3].owner == "SƠN"
    assert p.stage_data[3].checked_items == [True, True]


def test_apply_metadata_renames_project():
    p = Project(id="p1", code="TP2025-001", year="2025", name="old")
    p = apply_metadata(p, ProjectMetadata(client="Anh Minh", address="Q7"), code="TP2025-009")
    assert p.code == "TP2025-009"
    assert p.name == display_name(p)
    assert "Anh Minh" in p.name


def test_stage_progress_roundtrip_keys_are_strings():
    p = Project(id="p1", stage_data={2: StageProgress(owner="A", checked_items=[True])})
    d = p.to_dict()
    assert list(d["stage_data"]) == ["2"]
    assert Project.from_dict(d).stage_data[2].owner == "A"
