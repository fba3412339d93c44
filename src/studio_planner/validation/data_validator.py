# studio_planner/validation/data_validator.py

from __future__ import annotations

import math
from collections import Counter
from typing import Dict, Iterable, List, Optional

import pandas as pd

from studio_planner.engine.models import PlanningEntry, Project
from studio_planner.engine.project_catalog import CODE_PATTERN
from studio_planner.engine.stages import STAGES, get_stage
from studio_planner.engine.weights import KpiWeightConfig, weight_warnings

NUMERIC_METADATA_FIELDS = ("usable_area", "garden_area", "kpi_score", "total_cost")

ISSUE_COLUMNS = ["Subject", "Name", "Severity", "IssueType", "Description", "SuggestedFix"]


# ------------------------------------------------------------------
# Helper: make a consistent issue dictionary
# ------------------------------------------------------------------
def make_issue(subject, name, severity, issue_type, description, suggestion):
    return {
        "Subject": subject,
        "Name": name,
        "Severity": severity,
        "IssueType": issue_type,
        "Description": description,
        "SuggestedFix": suggestion,
    }


def _looks_numeric(raw: str) -> bool:
    text = (raw or "").strip()
    if not text:
        return True
    try:
        return math.isfinite(float(text))
    except ValueError:
        return False


# ------------------------------------------------------------------
# 1. Weights
# ------------------------------------------------------------------
def validate_weights(config: KpiWeightConfig) -> List[Dict]:
    issues = []
    for message in weight_warnings(config):
        issues.append(
            make_issue(
                "KPI weights", "", "warning", "WeightDrift", message,
                "Adjust the weights in the KPI center so each level totals 100%."
            )
        )

    for stage in STAGES:
        configured = set((config.task_weights.get(stage.id) or {}).keys())
        unknown = sorted(configured - set(stage.items))
        if unknown:
            issues.append(
                make_issue(
                    "KPI weights", f"Stage {stage.id}", "warning", "UnknownTaskWeight",
                    f"Weights set for tasks that are not in stage {stage.id}: {unknown}",
                    "Remove the stale entries; they never match a planning entry."
                )
            )
    return issues


# ------------------------------------------------------------------
# 2. Projects
# ------------------------------------------------------------------
def validate_projects(projects: Iterable[Project]) -> List[Dict]:
    projects = list(projects)
    issues = []

    # --- Codes ---
    for p in projects:
        if not p.code.strip():
            issues.append(
                make_issue(
                    p.id, p.name, "critical", "CodeBlank",
                    "Project has no code.",
                    "Assign a code of the form TP<year>-<seq>."
                )
            )
            continue

        m = CODE_PATTERN.match(p.code.strip())
        if not m:
            issues.append(
                make_issue(
                    p.code, p.name, "warning", "CodeFormat",
                    f"Code '{p.code}' does not follow TP<year>-<seq>.",
                    "Rename the code; it is skipped when numbering new projects."
                )
            )
        elif m.group(1) != p.year:
            issues.append(
                make_issue(
                    p.code, p.name, "warning", "CodeYearMismatch",
                    f"Code year {m.group(1)} differs from project year {p.year}.",
                    "Move the project to the right year or fix the code."
                )
            )

    counts = Counter((p.year, p.code.strip()) for p in projects if p.code.strip())
    dups = sorted(code for (year, code), n in counts.items() if n > 1)
    if dups:
        issues.append(
            make_issue(
                ", ".join(dups), "", "critical", "DuplicateCode",
                f"Duplicate project codes detected: {dups}",
                "Give every project in a year its own sequence number."
            )
        )

    # --- Checklists ---
    for p in projects:
        for stage_id, progress in p.stage_data.items():
            stage = get_stage(stage_id)
            if stage is None:
                issues.append(
                    make_issue(
                        p.code or p.id, p.name, "warning", "UnknownStage",
                        f"Checklist data stored for unknown stage {stage_id}.",
                        "It is ignored by progress; remove it."
                    )
                )
                continue
            n = len(progress.checked_items)
            if n != len(stage.items):
                issues.append(
                    make_issue(
                        p.code or p.id, p.name, "warning", "ChecklistLength",
                        f"Stage {stage.id} stores {n} item(s); the stage has {len(stage.items)}.",
                        "Save the project once to rewrite the checklist at full length."
                    )
                )

    # --- Numbers ---
    for p in projects:
        for field_name in NUMERIC_METADATA_FIELDS:
            raw = getattr(p.metadata, field_name)
            if not _looks_numeric(raw):
                issues.append(
                    make_issue(
                        p.code or p.id, p.name, "warning", "NonNumeric",
                        f"{field_name} = '{raw}' is not a number and counts as 0.",
                        "Enter a plain number (use '.' for decimals)."
                    )
                )
    return issues


# ------------------------------------------------------------------
# 3. Planning entries
# ------------------------------------------------------------------
def validate_plans(plans: Iterable[PlanningEntry], projects: Iterable[Project]) -> List[Dict]:
    plans = list(plans)
    project_ids = {p.id for p in projects}
    issues = []

    for e in plans:
        if e.project_id not in project_ids:
            issues.append(
                make_issue(
                    e.plan_id, e.task_type, "info", "DanglingPlan",
                    f"Plan references missing project {e.project_id} ({e.project_code}).",
                    "Delete the plan; it no longer counts toward KPI or availability."
                )
            )

        stage = get_stage(e.stage_index)
        if stage is None or e.task_type not in stage.items:
            issues.append(
                make_issue(
                    e.plan_id, e.task_type, "warning", "UnknownTask",
                    f"Task '{e.task_type}' is not an item of stage {e.stage_index}.",
                    "Pick the task from the stage checklist; unknown tasks earn 0 points."
                )
            )

        if e.start is None or e.end is None:
            issues.append(
                make_issue(
                    e.plan_id, e.task_type, "critical", "InvalidDate",
                    f"Unreadable start/end: '{e.start_time}' / '{e.end_time}'.",
                    "Re-enter the dates as YYYY-MM-DD."
                )
            )
        elif e.end < e.start:
            issues.append(
                make_issue(
                    e.plan_id, e.task_type, "critical", "InvalidDateOrder",
                    "End time is before start time.",
                    "Swap or correct the dates."
                )
            )

        if e.manager_kpi_score is not None and not 1 <= e.manager_kpi_score <= 5:
            issues.append(
                make_issue(
                    e.plan_id, e.task_type, "warning", "ReviewScoreRange",
                    f"Review score {e.manager_kpi_score} is outside 1-5.",
                    "Review the entry again."
                )
            )

    sigs = Counter((e.project_id, e.stage_index, e.task_type) for e in plans)
    for (project_id, stage_id, task), n in sorted(sigs.items()):
        if n > 1:
            issues.append(
                make_issue(
                    project_id, task, "warning", "DuplicateAssignment",
                    f"{n} plans claim '{task}' (stage {stage_id}).",
                    "Keep one plan per task; delete or reassign the others."
                )
            )
    return issues


# ------------------------------------------------------------------
# MAIN VALIDATION ENGINE
# ------------------------------------------------------------------
def validate_data(projects: Iterable[Project], plans: Iterable[PlanningEntry],
                  weights: Optional[KpiWeightConfig] = None) -> List[Dict]:
    projects = list(projects)
    issues = []
    if weights is not None:
        issues += validate_weights(weights)
    issues += validate_projects(projects)
    issues += validate_plans(plans, projects)
    return issues


def issues_frame(issues: List[Dict]) -> pd.DataFrame:
    df = pd.DataFrame(issues, columns=ISSUE_COLUMNS)
    df["Severity"] = df["Severity"].str.upper()
    return df
