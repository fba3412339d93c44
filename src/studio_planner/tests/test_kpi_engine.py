from dataclasses import replace

import pytest

from studio_planner.engine.kpi_engine import (
    attitude_leaderboard,
    calculate_efficiency,
    calculate_monthly_earned_kpi,
    calculate_task_earned_point,
    derive_kpi_base,
    format_kpi_value,
    kpi_leaderboard,
    monthly_kpi_summary,
    plans_frame,
    suggest_kpi_base,
    target_progress,
)
from studio_planner.engine.models import AttitudeScores, Employee, ProjectMetadata, TaskStatus
from studio_planner.engine.stages import STAGE_TASK_MAPPING
from studio_planner.engine.weights import default_weight_config

LAYOUT_2D = STAGE_TASK_MAPPING[1][2]   # 80 % of stage 1
SURVEY = STAGE_TASK_MAPPING[1][0]      # 9 % of stage 1


@pytest.fixture
def march(make_project, make_entry):
    project = make_project(kpi_score="50000")
    plans = [
        make_entry("e1", "2025-03-03", "2025-03-05", task=LAYOUT_2D, status=TaskStatus.COMPLETED),
        make_entry("e2", "2025-03-10", "2025-03-12", task=SURVEY, status=TaskStatus.COMPLETED),
        make_entry("e3", "2025-03-20", "2025-03-21", task=STAGE_TASK_MAPPING[1][3]),
    ]
    return project, plans


# ----------------------------------------------------------------
# 1. EARNED POINTS
# ----------------------------------------------------------------
def test_monthly_points_only_count_completed(march):
    """
    base 50000, stage 1 = 11 %, tasks 80 % and 9 %:
      50000*0.11*0.80 + 50000*0.11*0.09 = 4400 + 495 = 4895
    The PLANNED entry adds nothing.
    """
    project, plans = march
    res = calculate_monthly_earned_kpi("HUY", 3, 2025, plans, [project], default_weight_config())
    assert res["total_points"] == pytest.approx(4895.0)
    assert res["task_count"] == 2


def test_other_month_or_member_earns_nothing(march):
    project, plans = march
    cfg = default_weight_config()
    assert calculate_monthly_earned_kpi("HUY", 4, 2025, plans, [project], cfg)["total_points"] == 0
    assert calculate_monthly_earned_kpi("THỦY", 3, 2025, plans, [project], cfg)["task_count"] == 0


def test_points_follow_end_date_across_months(make_project, make_entry):
    """Moving a completed entry's end from 31/03 to 01/04 moves its 4400 points to April."""
    project = make_project(kpi_score="50000")
    cfg = default_weight_config()
    entry = make_entry("e1", "2025-03-28", "2025-03-31", task=LAYOUT_2D, status=TaskStatus.COMPLETED)

    assert calculate_monthly_earned_kpi("HUY", 3, 2025, [entry], [project], cfg)["total_points"] == pytest.approx(4400.0)

    moved = replace(entry, end_time="2025-04-01T17:00")
    march_res = calculate_monthly_earned_kpi("HUY", 3, 2025, [moved], [project], cfg)
    april_res = calculate_monthly_earned_kpi("HUY", 4, 2025, [moved], [project], cfg)
    assert march_res == {"total_points": 0, "task_count": 0}
    assert april_res["total_points"] == pytest.approx(4400.0)
    assert april_res["task_count"] == 1


def test_missing_project_or_base_is_zero(make_project, make_entry):
    cfg = default_weight_config()
    entry = make_entry(task=LAYOUT_2D, status=TaskStatus.COMPLETED)
    assert calculate_task_earned_point(entry, [], cfg) == 0.0
    assert calculate_task_earned_point(entry, [make_project(kpi_score="abc")], cfg) == 0.0
    assert calculate_task_earned_point(make_entry(task="not a task"), [make_project(kpi_score="100")], cfg) == 0.0


def test_efficiency(march):
    _, plans = march
    eff = calculate_efficiency("HUY", 3, 2025, plans)
    assert eff["completed"] == 2 and eff["total"] == 3
    assert eff["rate"] == pytest.approx(200 / 3)
    assert calculate_efficiency("HUY", 1, 2025, plans)["rate"] == 0.0


# ----------------------------------------------------------------
# 2. KPI BASE
# ----------------------------------------------------------------
def test_derive_kpi_base():
    # (100 + 50 / 5) * 180
    assert derive_kpi_base("100", "50", 180) == pytest.approx(19800.0)
    assert derive_kpi_base("", "x", 180) == 0.0
    assert format_kpi_value(19800.0) == "19800"
    assert format_kpi_value(12.345) == "12.35"


def test_suggestion_only_while_editing():
    meta = ProjectMetadata(usable_area="100", garden_area="50", kpi_score="777")
    assert suggest_kpi_base(meta, 180, editing=False).kpi_score == "777"
    assert suggest_kpi_base(meta, 180, editing=True).kpi_score == "19800"


def test_target_progress_caps():
    assert target_progress(4895, 12000) == pytest.approx(40.79, abs=0.01)
    assert target_progress(50000, 12000) == 100.0
    assert target_progress(10, 0) == 0.0


# ----------------------------------------------------------------
# 3. TABLES
# ----------------------------------------------------------------
def test_summary_and_leaderboards(march):
    project, plans = march
    team = [
        Employee(id="1", name="HUY", role="TRƯỞNG PHÒNG", target_kpi=12000),
        Employee(id="2", name="SƠN", role="TRƯỞNG PHÒNG", target_kpi=12000,
                 attitude=AttitudeScores(10, 10, 10, 10, 10)),
    ]
    summary = monthly_kpi_summary(team, 3, 2025, plans, [project], default_weight_config())
    assert list(summary["Employee"]) == ["HUY", "SƠN"]
    assert summary.loc[0, "Earned"] == pytest.approx(4895.0)

    board = kpi_leaderboard(summary)
    assert board.loc[0, "Employee"] == "HUY"
    assert list(board["Rank"]) == [1, 2]

    att = attitude_leaderboard(team)
    assert att.loc[0, "Employee"] == "SƠN"
    assert att.loc[0, "Score"] == pytest.approx(10.0)


def test_plans_frame_has_points(march):
    project, plans = march
    df = plans_frame(plans, [project], default_weight_config())
    assert len(df) == 3
    assert df["earned_points"].tolist()[:2] == pytest.approx([4400.0, 495.0])
    assert plans_frame([]).empty
