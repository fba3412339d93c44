# studio_planner/engine/kpi_engine.py

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from studio_planner.engine.models import (
    ATTITUDE_FIELDS,
    Employee,
    PlanningEntry,
    Project,
    ProjectMetadata,
    TaskStatus,
    parse_number,
)
from studio_planner.engine.weights import KpiWeightConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# 1. Project KPI base
# ---------------------------------------------------------

def derive_kpi_base(usable_area, garden_area, base_cost) -> float:
    """(usable + garden / 5) × cost per m². Unparseable inputs count as 0."""
    return (parse_number(usable_area) + parse_number(garden_area) / 5.0) * parse_number(base_cost)


def format_kpi_value(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


def suggest_kpi_base(metadata: ProjectMetadata, base_cost, editing: bool) -> ProjectMetadata:
    """
    While the metadata form is being edited, keep ``kpi_score`` in step with
    the area fields. Outside editing the stored value is left untouched so a
    human override survives.
    """
    if not editing:
        return metadata
    suggested = format_kpi_value(
        derive_kpi_base(metadata.usable_area, metadata.garden_area, base_cost)
    )
    if metadata.kpi_score == suggested:
        return metadata
    return replace(metadata, kpi_score=suggested)


# ---------------------------------------------------------
# 2. Earned points
# ---------------------------------------------------------

def _project_index(projects: Iterable[Project]) -> Dict[str, Project]:
    return {p.id: p for p in projects}


def calculate_task_earned_point(
    entry: PlanningEntry,
    projects,
    weight_config: KpiWeightConfig,
) -> float:
    """
    base × stage% × task% for one planning entry.

    ``projects`` may be a list or an id -> Project dict. Missing project,
    zero/unparseable base and unknown stage or task all yield 0.
    """
    index = projects if isinstance(projects, dict) else _project_index(projects)
    project = index.get(entry.project_id)
    if project is None:
        return 0.0

    base = parse_number(project.metadata.kpi_score)
    if base == 0:
        return 0.0

    stage_weight = weight_config.stage_weight(entry.stage_index)
    task_weight = weight_config.task_weight(entry.stage_index, entry.task_type)
    return base * (stage_weight / 100.0) * (task_weight / 100.0)


def _ends_in_month(entry: PlanningEntry, month: int, year: int) -> bool:
    end = entry.end
    return end is not None and end.month == month and end.year == year


def entries_for_month(plans: Iterable[PlanningEntry], employee_name: str, month: int, year: int) -> List[PlanningEntry]:
    return [
        p for p in plans
        if p.assigned_to == employee_name and _ends_in_month(p, month, year)
    ]


def calculate_monthly_earned_kpi(
    employee_name: str,
    month: int,
    year: int,
    plans: Iterable[PlanningEntry],
    projects,
    weight_config: KpiWeightConfig,
) -> Dict[str, Any]:
    """
    Returns:
      {"total_points": float, "task_count": int}

    Only COMPLETED entries whose end time falls in month/year count.
    """
    index = projects if isinstance(projects, dict) else _project_index(projects)
    completed = [
        p for p in entries_for_month(plans, employee_name, month, year)
        if p.status == TaskStatus.COMPLETED
    ]
    total = sum(calculate_task_earned_point(p, index, weight_config) for p in completed)
    return {"total_points": float(total), "task_count": len(completed)}


def calculate_efficiency(employee_name: str, month: int, year: int, plans: Iterable[PlanningEntry]) -> Dict[str, Any]:
    tasks = entries_for_month(plans, employee_name, month, year)
    completed = sum(1 for p in tasks if p.status == TaskStatus.COMPLETED)
    rate = (completed / len(tasks) * 100.0) if tasks else 0.0
    return {"rate": rate, "completed": completed, "total": len(tasks)}


def average_attitude(employee: Employee) -> float:
    scores = employee.attitude
    return float(np.mean([getattr(scores, f) for f in ATTITUDE_FIELDS]))


def target_progress(earned: float, target: float) -> float:
    """Earned as a percentage of target, capped at 100. No target -> 0."""
    target = parse_number(target)
    if target <= 0:
        return 0.0
    return min(100.0, earned / target * 100.0)


# ---------------------------------------------------------
# 3. Team tables
# ---------------------------------------------------------

def monthly_kpi_summary(
    employees: Iterable[Employee],
    month: int,
    year: int,
    plans: Iterable[PlanningEntry],
    projects,
    weight_config: KpiWeightConfig,
) -> pd.DataFrame:
    """
    One row per employee:
      Employee, Role, Target, Earned, Tasks, ProgressPct,
      EfficiencyPct, Attitude
    """
    plans = list(plans)
    index = projects if isinstance(projects, dict) else _project_index(projects)

    rows = []
    for emp in employees:
        kpi = calculate_monthly_earned_kpi(emp.name, month, year, plans, index, weight_config)
        eff = calculate_efficiency(emp.name, month, year, plans)
        rows.append(
            {
                "Employee": emp.name,
                "Role": emp.role,
                "Target": emp.target_kpi,
                "Earned": kpi["total_points"],
                "Tasks": kpi["task_count"],
                "ProgressPct": target_progress(kpi["total_points"], emp.target_kpi),
                "EfficiencyPct": eff["rate"],
                "Attitude": average_attitude(emp),
            }
        )

    columns = ["Employee", "Role", "Target", "Earned", "Tasks", "ProgressPct", "EfficiencyPct", "Attitude"]
    return pd.DataFrame(rows, columns=columns)


def kpi_leaderboard(summary: pd.DataFrame) -> pd.DataFrame:
    if summary.empty:
        return summary
    out = summary[["Employee", "Role", "Earned"]].rename(columns={"Earned": "Score"})
    out = out.sort_values("Score", ascending=False, kind="mergesort").reset_index(drop=True)
    out["Rank"] = np.arange(1, len(out) + 1)
    return out


def attitude_leaderboard(employees: Iterable[Employee]) -> pd.DataFrame:
    rows = [{"Employee": e.name, "Role": e.role, "Score": average_attitude(e)} for e in employees]
    out = pd.DataFrame(rows, columns=["Employee", "Role", "Score"])
    if out.empty:
        return out
    out = out.sort_values("Score", ascending=False, kind="mergesort").reset_index(drop=True)
    out["Rank"] = np.arange(1, len(out) + 1)
    return out


def plans_frame(plans: Iterable[PlanningEntry], projects: Optional[Iterable[Project]] = None,
                weight_config: Optional[KpiWeightConfig] = None) -> pd.DataFrame:
    """Flat table of planning entries, with earned points when a weight config is given."""
    plans = list(plans)
    index = _project_index(projects or [])
    df = pd.DataFrame([p.to_dict() for p in plans])
    if df.empty:
        return df
    df["start_time"] = pd.to_datetime(df["start_time"], errors="coerce")
    df["end_time"] = pd.to_datetime(df["end_time"], errors="coerce")
    if weight_config is not None:
        df["earned_points"] = [calculate_task_earned_point(p, index, weight_config) for p in plans]
    return df
