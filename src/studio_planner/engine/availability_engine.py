# studio_planner/engine/availability_engine.py

"""
Which checklist items can still be scheduled, and how urgent each project
and stage is given the monthly scope tags.

Scheduling collisions are detected by task NAME within a stage, matching
how planning entries store their task (``task_type``). Item indices are only
used for the checklist itself and for scope tags.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from studio_planner.engine.models import PlanningEntry, Project
from studio_planner.engine.progress_engine import calculate_progress, display_name, normalized_items
from studio_planner.engine.stages import STAGES, get_stage

SCOPE_SEPARATOR = "::"

Signature = Tuple[str, int, str]


# ---------------------------------------------------------
# Scope tags
# ---------------------------------------------------------

def scope_key(project_id: str, stage_id: int, item_index: int) -> str:
    return f"{project_id}{SCOPE_SEPARATOR}{int(stage_id)}{SCOPE_SEPARATOR}{int(item_index)}"


def parse_scope_key(key: str) -> Optional[Tuple[str, int, int]]:
    """'p1::2::0' -> ('p1', 2, 0); malformed keys -> None."""
    parts = str(key).rsplit(SCOPE_SEPARATOR, 2)
    if len(parts) != 3 or not parts[0]:
        return None
    try:
        return parts[0], int(parts[1]), int(parts[2])
    except ValueError:
        return None


def toggle_scope_tag(tags: Iterable[str], key: str) -> FrozenSet[str]:
    current = set(tags)
    if key in current:
        current.remove(key)
    else:
        current.add(key)
    return frozenset(current)


def scope_candidates(projects: Iterable[Project], year: str, search: str = "") -> List[Project]:
    """Incomplete projects of ``year`` whose client/name or code contains ``search``."""
    term = (search or "").strip().lower()
    out = []
    for p in projects:
        if p.year != str(year) or calculate_progress(p) >= 100:
            continue
        label = (p.metadata.client or p.name).lower()
        if term and term not in label and term not in p.code.lower():
            continue
        out.append(p)
    return out


# ---------------------------------------------------------
# Availability
# ---------------------------------------------------------

def scheduled_signatures(plans: Iterable[PlanningEntry], exclude_plan_id: Optional[str] = None) -> Set[Signature]:
    return {
        (p.project_id, p.stage_index, p.task_type)
        for p in plans
        if not (exclude_plan_id and p.plan_id == exclude_plan_id)
    }


def _index(projects) -> Dict[str, Project]:
    return projects if isinstance(projects, dict) else {p.id: p for p in projects}


def is_task_available(
    project_id: str,
    stage_id: int,
    item_index: int,
    plans: Iterable[PlanningEntry],
    projects,
    exclude_plan_id: Optional[str] = None,
    signatures: Optional[Set[Signature]] = None,
) -> bool:
    """
    False when the item is already checked in the project, or when a planning
    entry other than ``exclude_plan_id`` already claims the same
    (project, stage, task name). Unknown projects, stages or indices are
    never available.

    ``signatures`` lets callers that test many items reuse one
    ``scheduled_signatures`` pass.
    """
    project = _index(projects).get(project_id)
    stage = get_stage(stage_id)
    if project is None or stage is None or not 0 <= item_index < len(stage.items):
        return False

    if normalized_items(stage, project.stage_data.get(stage.id))[item_index]:
        return False

    if signatures is None:
        signatures = scheduled_signatures(plans, exclude_plan_id)
    return (project_id, stage.id, stage.items[item_index]) not in signatures


def _same_stage(a, b: int) -> bool:
    try:
        return int(a) == b
    except (TypeError, ValueError):
        return False


def task_options(
    project_id: str,
    stage_id: int,
    plans: Iterable[PlanningEntry],
    projects,
    scope_tags: Iterable[str] = (),
    current_task: str = "",
    exclude_plan_id: Optional[str] = None,
    current_project_id: Optional[str] = None,
    current_stage_id: Optional[int] = None,
) -> List[Dict[str, object]]:
    """
    Dropdown choices for a planning form: available items only, plus the
    entry's own current task even if it would otherwise be filtered out.

    The current task is only kept while the form still points at the entry's
    own project and stage (``current_project_id`` / ``current_stage_id``);
    elsewhere a task of the same name is filtered like any other.

    Each option -> {item, index, is_tagged, is_current}
    """
    index = _index(projects)
    stage = get_stage(stage_id)
    if project_id not in index or stage is None:
        return []

    tags = set(scope_tags)
    sigs = scheduled_signatures(plans, exclude_plan_id)
    own_place = current_project_id == project_id and _same_stage(current_stage_id, stage.id)
    out = []
    for i, item in enumerate(stage.items):
        is_current = own_place and bool(current_task) and item == current_task
        if not is_current and not is_task_available(project_id, stage.id, i, plans, index, signatures=sigs):
            continue
        out.append(
            {
                "item": item,
                "index": i,
                "is_tagged": scope_key(project_id, stage.id, i) in tags,
                "is_current": is_current,
            }
        )
    return out


# ---------------------------------------------------------
# Urgency counts
# ---------------------------------------------------------

def stage_urgent_count(
    project_id: str,
    stage_id: int,
    plans: Iterable[PlanningEntry],
    projects,
    scope_tags: Iterable[str],
    exclude_plan_id: Optional[str] = None,
) -> int:
    """Tagged items that are still available. 0 when the project has no data for the stage."""
    index = _index(projects)
    project = index.get(project_id)
    stage = get_stage(stage_id)
    if project is None or stage is None or stage.id not in project.stage_data:
        return 0

    tags = set(scope_tags)
    sigs = scheduled_signatures(plans, exclude_plan_id)
    return sum(
        1
        for i in range(len(stage.items))
        if scope_key(project_id, stage.id, i) in tags
        and is_task_available(project_id, stage.id, i, plans, index, signatures=sigs)
    )


def project_urgent_count(project: Project, plans, projects, scope_tags, exclude_plan_id=None) -> int:
    plans = list(plans)
    tags = set(scope_tags)
    return sum(
        stage_urgent_count(project.id, s.id, plans, projects, tags, exclude_plan_id) for s in STAGES
    )


def ordered_stage_options(project_id: str, plans, projects, scope_tags, exclude_plan_id=None) -> List[Dict[str, object]]:
    """Stages with urgent items first, then by id. Each -> {stage_id, title, urgent}."""
    plans = list(plans)
    tags = set(scope_tags)
    options = [
        {
            "stage_id": s.id,
            "title": s.title,
            "urgent": stage_urgent_count(project_id, s.id, plans, projects, tags, exclude_plan_id),
        }
        for s in STAGES
    ]
    return sorted(options, key=lambda o: (o["urgent"] == 0, o["stage_id"]))


def default_stage(project_id: str, plans, projects, scope_tags) -> int:
    plans = list(plans)
    tags = set(scope_tags)
    for s in STAGES:
        if stage_urgent_count(project_id, s.id, plans, projects, tags) > 0:
            return s.id
    return 1


def project_options(projects, plans, scope_tags, selected_project_id: Optional[str] = None) -> List[Dict[str, object]]:
    """
    Projects offered on a planning form: those with urgent items, plus the
    currently selected one.

    Each -> {value, label, pending}
    """
    project_list = list(projects.values()) if isinstance(projects, dict) else list(projects)
    index = _index(project_list)
    plans = list(plans)
    tags = set(scope_tags)

    out = []
    for p in project_list:
        pending = project_urgent_count(p, plans, index, tags)
        if pending > 0 or (selected_project_id and p.id == selected_project_id):
            out.append(
                {
                    "value": p.id,
                    "label": f"[{p.code}] {p.metadata.client or display_name(p)}",
                    "pending": pending,
                }
            )
    return out
