# studio_planner/engine/planning.py

from __future__ import annotations

import uuid
from typing import Any, Dict, Iterable, Optional

from studio_planner.engine.models import PlanningEntry, Project, TaskStatus, complete_time

DEFAULT_START_CLOCK = "08:00"
DEFAULT_END_CLOCK = "17:00"
UNKNOWN_PROJECT_CODE = "???"

REQUIRED_FORM_FIELDS = ("project_id", "assigned_to", "end_time", "task_type")


def new_plan_id() -> str:
    return f"PLAN-{uuid.uuid4().hex[:12]}"


def build_plan_entry(form: Dict[str, Any], projects: Iterable[Project], plan_id: Optional[str] = None) -> PlanningEntry:
    """
    Turn a planning form into an entry ready to save.

    - required: project_id, assigned_to, end_time, task_type
    - date-only start/end are completed to 08:00 / 17:00
    - project_code is copied from the project ('???' if it no longer exists)
    - a missing start defaults to the end date
    """
    missing = [f for f in REQUIRED_FORM_FIELDS if not str(form.get(f) or "").strip()]
    if missing:
        raise ValueError(f"Missing required planning fields: {', '.join(missing)}")

    project = next((p for p in projects if p.id == form["project_id"]), None)
    code = project.code if project is not None and project.code else UNKNOWN_PROJECT_CODE

    end_raw = str(form["end_time"]).strip()
    start_raw = str(form.get("start_time") or "").strip() or end_raw[:10]

    try:
        stage_index = int(form.get("stage_index") or 1)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid stage index: {form.get('stage_index')!r}")

    entry = PlanningEntry(
        plan_id=plan_id or str(form.get("plan_id") or "") or new_plan_id(),
        assigned_to=str(form["assigned_to"]).strip(),
        project_id=str(form["project_id"]),
        project_code=code,
        stage_index=stage_index,
        task_type=str(form["task_type"]),
        detailed_task=str(form.get("detailed_task") or ""),
        start_time=complete_time(start_raw, DEFAULT_START_CLOCK),
        end_time=complete_time(end_raw, DEFAULT_END_CLOCK),
        status=TaskStatus.parse(form.get("status") or TaskStatus.PLANNED.value),
        manager_kpi_score=form.get("manager_kpi_score"),
        manager_kpi_comment=form.get("manager_kpi_comment"),
    )
    if entry.start and entry.end and entry.end < entry.start:
        raise ValueError("End time must not be before start time")
    return entry


def entry_form(entry: PlanningEntry) -> Dict[str, Any]:
    """Editable form values for an existing entry; times are cut back to dates."""
    form = entry.to_dict()
    form["start_time"] = entry.start_time[:10]
    form["end_time"] = entry.end_time[:10]
    return form
