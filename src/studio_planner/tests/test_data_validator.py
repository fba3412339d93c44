import pytest

from studio_planner.config import (
    DEFAULT_ADMIN_KEY,
    AuthorizationError,
    Settings,
    check_admin_password,
    require_admin,
)
from studio_planner.engine.models import TaskStatus
from studio_planner.engine.stages import STAGE_TASK_MAPPING
from studio_planner.engine.weights import default_weight_config, set_stage_weight, set_task_weight
from studio_planner.validation.data_validator import issues_frame, validate_data


def issue_types(issues):
    return sorted(i["IssueType"] for i in issues)


# ----------------------------------------------------------------
# 1. VALIDATOR
# ----------------------------------------------------------------
def test_clean_data_has_no_issues(make_project, make_entry):
    p = make_project(stages={1: [True, False, False, False]}, usable_area="120")
    issues = validate_data([p], [make_entry()], default_weight_config())
    assert issues == []
    assert list(issues_frame(issues).columns) == [
        "Subject", "Name", "Severity", "IssueType", "Description", "SuggestedFix"
    ]


def test_project_problems(make_project):
    projects = [
        make_project("a", code="TP2025-001", stages={1: [True]}),
        make_project("b", code="TP2025-001"),
        make_project("c", code="TP2024-002"),
        make_project("d", code="X-1", stages={12: [True]}),
        make_project("e", code="", usable_area="12,5"),
    ]
    found = issue_types(validate_data(projects, []))
    assert found == sorted(
        ["ChecklistLength", "DuplicateCode", "CodeYearMismatch", "CodeFormat", "UnknownStage", "CodeBlank", "NonNumeric"]
    )


def test_plan_problems(make_project, make_entry):
    p = make_project()
    task = STAGE_TASK_MAPPING[1][0]
    plans = [
        make_entry("e1", task=task),
        make_entry("e2", task=task, start="2025-03-09", end="2025-03-05"),
        make_entry("e3", project_id="deleted", task="made up"),
        make_entry("e4", task=STAGE_TASK_MAPPING[1][1], manager_kpi_score=9, status=TaskStatus.COMPLETED),
    ]
    plans.append(make_entry("e5", task=STAGE_TASK_MAPPING[1][2]))
    plans[-1].start_time = "someday"

    issues = validate_data([p], plans)
    found = issue_types(issues)
    assert found == sorted(
        ["DuplicateAssignment", "InvalidDateOrder", "DanglingPlan", "UnknownTask", "ReviewScoreRange", "InvalidDate"]
    )
    df = issues_frame(issues)
    assert set(df["Severity"]) == {"CRITICAL", "WARNING", "INFO"}


def test_weight_problems():
    cfg = set_task_weight(default_weight_config(), 3, "Old task", 10)
    cfg = set_stage_weight(cfg, 4, 50)
    found = issue_types(validate_data([], [], cfg))
    assert found == ["UnknownTaskWeight", "WeightDrift"]


# ----------------------------------------------------------------
# 2. CONFIG
# ----------------------------------------------------------------
def test_settings_from_env(tmp_path):
    s = Settings.from_env(
        {
            "STUDIO_API_URL": " https://api.example.org ",
            "STUDIO_DATA_DIR": str(tmp_path),
            "STUDIO_LOG_LEVEL": "debug",
            "STUDIO_REQUEST_TIMEOUT": "soon",
        }
    )
    assert s.remote_enabled
    assert s.api_url == "https://api.example.org"
    assert s.data_dir == tmp_path
    assert s.log_level == "DEBUG"
    assert s.request_timeout == 15.0
    assert s.admin_key == DEFAULT_ADMIN_KEY

    assert not Settings.from_env({}).remote_enabled


def test_admin_password():
    assert check_admin_password("KEY", "KEY")
    assert not check_admin_password("KEY", "")
    assert not check_admin_password("KEY", None)
    with pytest.raises(AuthorizationError):
        require_admin("KEY", "nope")
