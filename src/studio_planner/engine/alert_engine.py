# studio_planner/engine/alert_engine.py

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from studio_planner.engine.models import Project, parse_timestamp
from studio_planner.engine.progress_engine import calculate_progress, display_name, normalized_items
from studio_planner.engine.stages import STAGES

logger = logging.getLogger(__name__)

DELAY_PROGRESS_THRESHOLD = 70.0
DELAY_DAYS_THRESHOLD = 30
DESIGN_DELAY_DAYS_THRESHOLD = 90
MAX_DELAY_ALERTS = 5
OVERLOAD_THRESHOLD = 20

# (metadata field, role label) pairs read by role_workload
LEAD_ROLES = (
    ("lead_architect", "Lead architect"),
    ("lead_interior", "Interior"),
    ("lead_construction_docs", "Construction docs"),
    ("sales_consultant", "Consultant"),
)


# ---------------------------------------------------------
# Helpers
# ---------------------------------------------------------

def _as_date(today) -> date:
    if today is None:
        return date.today()
    if isinstance(today, datetime):
        return today.date()
    return today


def reference_date(project: Project) -> Optional[date]:
    """Handoff date, else construction date; None when neither parses."""
    for raw in (project.metadata.handoff_date, project.metadata.construction_date):
        if raw:
            parsed = parse_timestamp(raw)
            if parsed is not None:
                return parsed.date()
    return None


def elapsed_days(project: Project, today=None) -> Optional[int]:
    """Days since the reference date. Future dates give a negative count."""
    ref = reference_date(project)
    if ref is None:
        return None
    return (_as_date(today) - ref).days


# ---------------------------------------------------------
# Delay alerts
# ---------------------------------------------------------

def delay_candidates(projects: Iterable[Project], today=None) -> List[Dict[str, Any]]:
    """
    Projects below 70 % whose reference date is more than 30 days old,
    most overdue first.

    Each -> {project, progress, elapsed_days}
    """
    today = _as_date(today)
    rows = []
    for p in projects:
        progress = calculate_progress(p)
        if progress >= DELAY_PROGRESS_THRESHOLD:
            continue
        days = elapsed_days(p, today)
        if days is None or days <= DELAY_DAYS_THRESHOLD:
            continue
        rows.append({"project": p, "progress": progress, "elapsed_days": days})

    rows.sort(key=lambda r: (-r["elapsed_days"], r["project"].code, r["project"].id))
    return rows


def select_delays(candidates: List[Dict[str, Any]], limit: int = MAX_DELAY_ALERTS,
                  rng: Optional[np.random.Generator] = None) -> List[Dict[str, Any]]:
    """First ``limit`` candidates, or a random rotation of them when a generator is passed."""
    if rng is None or len(candidates) <= limit:
        return candidates[:limit]
    picks = rng.choice(len(candidates), size=limit, replace=False)
    return [candidates[i] for i in sorted(picks)]


# ---------------------------------------------------------
# Personnel overload
# ---------------------------------------------------------

def owner_workload(projects: Iterable[Project]) -> pd.DataFrame:
    """
    Unchecked items per stage owner across every project.

    Columns: Owner, Pending (sorted descending)
    """
    records = []
    for p in projects:
        for stage in STAGES:
            data = p.stage_data.get(stage.id)
            if data is None or not data.owner.strip():
                continue
            pending = sum(1 for done in normalized_items(stage, data) if not done)
            if pending:
                records.append({"Owner": data.owner.strip(), "Pending": pending})

    if not records:
        return pd.DataFrame(columns=["Owner", "Pending"])

    df = pd.DataFrame(records)
    out = df.groupby("Owner", as_index=False)["Pending"].sum()
    return out.sort_values(["Pending", "Owner"], ascending=[False, True]).reset_index(drop=True)


def personnel_overload(projects: Iterable[Project], threshold: int = OVERLOAD_THRESHOLD) -> List[Dict[str, Any]]:
    df = owner_workload(projects)
    flagged = df[df["Pending"] > threshold]
    return [{"name": row.Owner, "count": int(row.Pending)} for row in flagged.itertuples(index=False)]


def generate_alerts(projects: Iterable[Project], today=None,
                    rng: Optional[np.random.Generator] = None) -> Dict[str, List[Dict[str, Any]]]:
    """
    Dashboard alert banner.

    Returns:
      {
        "delays": [{project, progress, elapsed_days}, ...]   (at most 5)
        "personnel_overload": [{name, count}, ...]
      }
    """
    projects = list(projects)
    delays = select_delays(delay_candidates(projects, today), rng=rng)
    overload = personnel_overload(projects)
    if delays or overload:
        logger.info("Alerts: %d delayed project(s), %d overloaded owner(s)", len(delays), len(overload))
    return {"delays": delays, "personnel_overload": overload}


# ---------------------------------------------------------
# Stricter scans
# ---------------------------------------------------------

def scan_design_delays(projects: Iterable[Project], today=None) -> List[Dict[str, Any]]:
    """
    Design work still open more than 90 days after the reference date.
    Projects already under construction are skipped.
    """
    today = _as_date(today)
    out = []
    for p in projects:
        if p.metadata.is_construction:
            continue
        days = elapsed_days(p, today)
        if days is None or days <= DESIGN_DELAY_DAYS_THRESHOLD:
            continue
        progress = calculate_progress(p)
        if progress < 100:
            out.append({"project": p, "name": display_name(p), "progress": progress, "elapsed_days": days})
    out.sort(key=lambda r: -r["elapsed_days"])
    return out


def role_workload(projects: Iterable[Project]) -> Dict[str, List[Dict[str, str]]]:
    """Person named in a lead-role field -> [{project_id, project, role}, ...]."""
    out: Dict[str, List[Dict[str, str]]] = {}
    for p in projects:
        for field_name, label in LEAD_ROLES:
            person = getattr(p.metadata, field_name, "").strip()
            if not person:
                continue
            out.setdefault(person, []).append(
                {"project_id": p.id, "project": p.metadata.client or p.name, "role": label}
            )
    return out
