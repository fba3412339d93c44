import pytest

from studio_planner.engine.models import (
    PlanningEntry,
    Project,
    ProjectMetadata,
    StageProgress,
    TaskStatus,
)
from studio_planner.engine.stages import STAGE_TASK_MAPPING


@pytest.fixture
def make_project():
    """Factory: make_project('p1', stages={1: [True, True, True, True]}, kpi_score='50000')"""

    def _make(project_id="p1", code="TP2025-001", year="2025", stages=None, owners=None, **meta):
        stage_data = {}
        for sid, items in (stages or {}).items():
            stage_data[sid] = StageProgress(owner=(owners or {}).get(sid, ""), checked_items=list(items))
        return Project(
            id=project_id,
            code=code,
            year=year,
            name=f"Project {project_id}",
            status="In progress",
            metadata=ProjectMetadata(**meta),
            stage_data=stage_data,
        )

    return _make


@pytest.fixture
def make_entry():
    """Factory for planning entries; dates are ISO day strings."""

    def _make(plan_id="e1", start="2025-03-03", end="2025-03-05", assigned_to="HUY",
              project_id="p1", stage=1, task=None, status=TaskStatus.PLANNED, **kw):
        return PlanningEntry(
            plan_id=plan_id,
            assigned_to=assigned_to,
            project_id=project_id,
            project_code=kw.pop("project_code", "TP2025-001"),
            stage_index=stage,
            task_type=task if task is not None else STAGE_TASK_MAPPING[stage][0],
            start_time=f"{start}T08:00" if start else "",
            end_time=f"{end}T17:00" if end else "",
            status=status,
            **kw,
        )

    return _make
