# studio_planner/engine/events.py

"""
Completing a planning entry checks the matching checklist box on its
project. That coupling is modelled as an explicit ``TaskCompleted`` event so
the page code only has to emit it and persist whatever project comes back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple

from studio_planner.engine.models import PlanningEntry, Project, StageProgress, TaskStatus
from studio_planner.engine.progress_engine import refresh_project, normalized_items
from studio_planner.engine.stages import get_stage

logger = logging.getLogger(__name__)

MIN_REVIEW_SCORE = 1
MAX_REVIEW_SCORE = 5


@dataclass(frozen=True)
class TaskCompleted:
    project_id: str
    stage_id: int
    task_name: str


def completion_events(entry: PlanningEntry) -> List[TaskCompleted]:
    if entry.status != TaskStatus.COMPLETED:
        return []
    return [TaskCompleted(project_id=entry.project_id, stage_id=entry.stage_index, task_name=entry.task_type)]


def apply_task_completed(projects: Iterable[Project], event: TaskCompleted) -> Tuple[List[Project], Optional[Project]]:
    """
    Check the item named by ``event``. Never un-checks.

    Returns (projects, changed_project). ``changed_project`` is None when
    nothing changed: the box was already checked, or the project, stage or
    task name does not exist.
    """
    projects = list(projects)
    stage = get_stage(event.stage_id)
    if stage is None or event.task_name not in stage.items:
        logger.debug("TaskCompleted for unknown stage/task: %s", event)
        return projects, None

    for pos, project in enumerate(projects):
        if project.id != event.project_id:
            continue

        current = project.stage_data.get(stage.id)
        items = normalized_items(stage, current)
        idx = stage.items.index(event.task_name)
        if items[idx]:
            return projects, None

        items[idx] = True
        stage_data = dict(project.stage_data)
        stage_data[stage.id] = StageProgress(owner=current.owner if current else "", checked_items=items)
        updated = refresh_project(project, stage_data)
        projects[pos] = updated
        logger.info("Checked '%s' (stage %s) on project %s", event.task_name, stage.id, project.id)
        return projects, updated

    logger.debug("TaskCompleted for missing project %s", event.project_id)
    return projects, None


def apply_events(projects: Iterable[Project], events: Iterable[TaskCompleted]) -> Tuple[List[Project], List[Project]]:
    """Apply several events; returns (projects, changed projects in order)."""
    projects = list(projects)
    changed: List[Project] = []
    for event in events:
        projects, updated = apply_task_completed(projects, event)
        if updated is not None:
            changed = [p for p in changed if p.id != updated.id] + [updated]
    return projects, changed


def review_entry(entry: PlanningEntry, score: int, comment: str = "") -> PlanningEntry:
    """Manager review: store the 1-5 score and comment, and mark the entry completed."""
    try:
        score = int(score)
    except (TypeError, ValueError):
        raise ValueError(f"Review score must be an integer, got {score!r}")
    if not MIN_REVIEW_SCORE <= score <= MAX_REVIEW_SCORE:
        raise ValueError(f"Review score must be between {MIN_REVIEW_SCORE} and {MAX_REVIEW_SCORE}, got {score}")
    return replace(
        entry,
        manager_kpi_score=score,
        manager_kpi_comment=comment or "",
        status=TaskStatus.COMPLETED,
    )
