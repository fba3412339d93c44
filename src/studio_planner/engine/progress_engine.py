# studio_planner/engine/progress_engine.py

"""
Checklist -> progress percentage, and the pure checklist edits built on it.

Progress is always derived from ``stage_data``; the stored ``status`` string
is refreshed from it on every edit but is never read back as a source of truth.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional

from studio_planner.engine.models import Project, ProjectMetadata, StageProgress, now_iso
from studio_planner.engine.stages import STAGES, StageDefinition, get_stage

STATUS_COMPLETED = "Completed"
STATUS_IN_PROGRESS = "In progress"
STATUS_NEEDS_ATTENTION = "Needs attention"


# ---------------------------------------------------------
# Normalization
# ---------------------------------------------------------

def normalized_items(stage: StageDefinition, progress: Optional[StageProgress]) -> List[bool]:
    """Checklist of exactly ``len(stage.items)`` booleans: short arrays padded, surplus dropped."""
    n = len(stage.items)
    items = list(progress.checked_items) if progress else []
    items = items[:n]
    items += [False] * (n - len(items))
    return items


def normalize_stage_data(project: Project) -> Project:
    """Backfill every stage and fix array lengths. Returns a new Project."""
    stage_data: Dict[int, StageProgress] = {}
    for stage in STAGES:
        current = project.stage_data.get(stage.id)
        stage_data[stage.id] = StageProgress(
            owner=current.owner if current else "",
            checked_items=normalized_items(stage, current),
        )
    return replace(project, stage_data=stage_data)


# ---------------------------------------------------------
# Progress
# ---------------------------------------------------------

def stage_fraction(project: Project, stage: StageDefinition) -> float:
    data = project.stage_data.get(stage.id)
    if data is None or not stage.items:
        return 0.0
    return sum(normalized_items(stage, data)) / len(stage.items)


def calculate_progress(project: Project) -> float:
    """
    Weighted checklist completion in [0, 100].

    Stages without stored data contribute nothing. The sum is clamped so a
    configuration whose weights drift past 100 still yields a valid percentage.
    """
    total = 0.0
    for stage in STAGES:
        total += stage_fraction(project, stage) * stage.percentage
    return max(0.0, min(100.0, total))


def derive_status(progress: float) -> str:
    if progress >= 100:
        return STATUS_COMPLETED
    if progress < 50:
        return STATUS_NEEDS_ATTENTION
    return STATUS_IN_PROGRESS


def stage_status(project: Project, stage_id: int) -> str:
    """'green' once every item of the stage is checked, 'red' otherwise."""
    stage = get_stage(stage_id)
    if stage is None:
        return "red"
    items = normalized_items(stage, project.stage_data.get(stage.id))
    return "green" if items and all(items) else "red"


def pending_count(project: Project, stage_id: int) -> int:
    stage = get_stage(stage_id)
    if stage is None:
        return 0
    return sum(1 for done in normalized_items(stage, project.stage_data.get(stage.id)) if not done)


def display_name(project: Project) -> str:
    meta = project.metadata
    if meta.client and meta.address:
        return f"{meta.client} - {meta.address}"
    if meta.client:
        return meta.client
    return project.name


# ---------------------------------------------------------
# Pure edits
# ---------------------------------------------------------

def refresh_project(project: Project, stage_data: Dict[int, StageProgress]) -> Project:
    updated = replace(project, stage_data=stage_data)
    return replace(
        updated,
        status=derive_status(calculate_progress(updated)),
        last_updated=now_iso(),
    )


def _with_stage(project: Project, stage_id: int, progress: StageProgress) -> Project:
    stage_data = dict(project.stage_data)
    stage_data[stage_id] = progress
    return refresh_project(project, stage_data)


def set_item(project: Project, stage_id: int, item_index: int, checked: bool) -> Project:
    stage = get_stage(stage_id)
    if stage is None or not 0 <= item_index < len(stage.items):
        return project
    current = project.stage_data.get(stage.id)
    items = normalized_items(stage, current)
    items[item_index] = bool(checked)
    return _with_stage(
        project, stage.id, StageProgress(owner=current.owner if current else "", checked_items=items)
    )


def toggle_item(project: Project, stage_id: int, item_index: int) -> Project:
    stage = get_stage(stage_id)
    if stage is None or not 0 <= item_index < len(stage.items):
        return project
    items = normalized_items(stage, project.stage_data.get(stage.id))
    return set_item(project, stage.id, item_index, not items[item_index])


def set_stage_owner(project: Project, stage_id: int, owner: str) -> Project:
    stage = get_stage(stage_id)
    if stage is None:
        return project
    current = project.stage_data.get(stage.id)
    return _with_stage(
        project,
        stage.id,
        StageProgress(owner=owner, checked_items=normalized_items(stage, current)),
    )


def mark_stage_complete(project: Project, stage_id: int) -> Project:
    stage = get_stage(stage_id)
    if stage is None:
        return project
    current = project.stage_data.get(stage.id)
    return _with_stage(
        project,
        stage.id,
        StageProgress(owner=current.owner if current else "", checked_items=[True] * len(stage.items)),
    )


def mark_all_complete(project: Project) -> Project:
    stage_data = {
        stage.id: StageProgress(
            owner=project.stage_data[stage.id].owner if stage.id in project.stage_data else "",
            checked_items=[True] * len(stage.items),
        )
        for stage in STAGES
    }
    return refresh_project(project, stage_data)


def apply_metadata(project: Project, metadata: ProjectMetadata, code: Optional[str] = None) -> Project:
    """Save-time edit: new metadata, optional new code, name re-derived from client/address."""
    updated = replace(project, metadata=metadata, code=code if code else project.code)
    updated = replace(updated, name=display_name(updated))
    return refresh_project(updated, dict(updated.stage_data))
