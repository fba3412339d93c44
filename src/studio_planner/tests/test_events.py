import pytest

from studio_planner.engine.events import (
    TaskCompleted,
    apply_events,
    apply_task_completed,
    completion_events,
    review_entry,
)
from studio_planner.engine.models import TaskStatus
from studio_planner.engine.stages import STAGE_TASK_MAPPING

TASK = STAGE_TASK_MAPPING[2][1]


def test_completion_checks_item(make_project):
    p = make_project(stages={2: [False, False, False]}, owners={2: "THỦY"})
    projects, changed = apply_task_completed([p], TaskCompleted("p1", 2, TASK))
    assert changed is not None
    assert changed.stage_data[2].checked_items == [False, True, False]
    assert changed.stage_data[2].owner == "THỦY"
    assert projects[0] is changed
    assert p.stage_data[2].checked_items == [False, False, False]


def test_completion_is_idempotent(make_project):
    p = make_project(stages={2: [False, True, False]})
    projects, changed = apply_task_completed([p], TaskCompleted("p1", 2, TASK))
    assert changed is None
    assert projects == [p]


def test_referential_gaps_are_no_ops(make_project):
    p = make_project()
    for event in (
        TaskCompleted("deleted", 2, TASK),
        TaskCompleted("p1", 12, TASK),
        TaskCompleted("p1", 2, "not a task"),
    ):
        projects, changed = apply_task_completed([p], event)
        assert changed is None
        assert projects == [p]


def test_only_completed_entries_emit(make_entry):
    assert completion_events(make_entry()) == []
    done = make_entry(stage=2, task=TASK, status=TaskStatus.COMPLETED)
    assert completion_events(done) == [TaskCompleted("p1", 2, TASK)]


def test_apply_events_reports_each_project_once(make_project):
    p = make_project()
    events = [TaskCompleted("p1", 2, STAGE_TASK_MAPPING[2][i]) for i in range(3)]
    projects, changed = apply_events([p], events)
    assert len(changed) == 1
    assert projects[0].stage_data[2].checked_items == [True, True, True]


def test_review_entry(make_entry):
    reviewed = review_entry(make_entry(), 4, "Good")
    assert reviewed.manager_kpi_score == 4
    assert reviewed.manager_kpi_comment == "Good"
    assert reviewed.status == TaskStatus.COMPLETED
    assert reviewed.has_review

    with pytest.raises(ValueError):
        review_entry(make_entry(), 6)
    with pytest.raises(ValueError):
        review_entry(make_entry(), "five")
