# studio_planner/engine/project_catalog.py

from __future__ import annotations

import re
import uuid
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional

from studio_planner.engine.models import Project, ProjectMetadata, now_iso
from studio_planner.engine.progress_engine import STATUS_IN_PROGRESS, display_name

BULK_LIMIT = 50
CODE_PATTERN = re.compile(r"^TP(\d{4})-(\d+)$")


# ---------------------------------------------------------
# Codes
# ---------------------------------------------------------

def format_project_code(year, seq: int) -> str:
    return f"TP{year}-{int(seq):03d}"


def code_sequence(code: str, year) -> Optional[int]:
    """Sequence number of ``code`` if it belongs to ``year``."""
    m = CODE_PATTERN.match((code or "").strip())
    if not m or m.group(1) != str(year):
        return None
    return int(m.group(2))


def max_sequence(projects: Iterable[Project], year) -> int:
    seqs = [
        code_sequence(p.code, year)
        for p in projects
        if p.year == str(year)
    ]
    return max((s for s in seqs if s is not None), default=0)


def next_project_code(projects: Iterable[Project], year, offset: int = 1) -> str:
    return format_project_code(year, max_sequence(projects, year) + offset)


def reserve_project_codes(projects: Iterable[Project], year, count: int) -> List[str]:
    """``count`` consecutive codes, all taken from one read of the current maximum."""
    base = max_sequence(projects, year)
    return [format_project_code(year, base + i) for i in range(1, count + 1)]


# ---------------------------------------------------------
# Creation
# ---------------------------------------------------------

def parse_bulk_lines(text: str, limit: int = BULK_LIMIT) -> List[Dict[str, str]]:
    """
    'name | client | address' per line. Blank lines are skipped and only the
    first ``limit`` non-blank lines are read; lines without a name are dropped.
    """
    lines = [line for line in (text or "").splitlines() if line.strip()][:limit]
    rows = []
    for line in lines:
        parts = [part.strip() for part in line.split("|")]
        name = parts[0]
        if not name:
            continue
        rows.append(
            {
                "name": name,
                "client": parts[1] if len(parts) > 1 else "",
                "address": parts[2] if len(parts) > 2 else "",
            }
        )
    return rows


def new_project(year, code: str, name: str = "", metadata: Optional[ProjectMetadata] = None,
                project_id: Optional[str] = None) -> Project:
    if not (code or "").strip():
        raise ValueError("Project code must not be empty")
    year = str(year)
    return Project(
        id=project_id or f"LOCAL-{uuid.uuid4().hex[:12]}",
        code=code.strip(),
        year=year,
        name=name or f"New project {year}",
        status=STATUS_IN_PROGRESS,
        metadata=metadata or ProjectMetadata(),
        stage_data={},
        last_updated=now_iso(),
    )


def bulk_projects(projects: Iterable[Project], year, text: str, now: Optional[datetime] = None) -> List[Project]:
    """Build (unsaved) projects for every bulk line with pre-reserved codes."""
    rows = parse_bulk_lines(text)
    codes = reserve_project_codes(projects, year, len(rows))
    handoff = (now or datetime.now()).isoformat(timespec="seconds")
    return [
        new_project(
            year,
            code,
            name=row["name"],
            metadata=ProjectMetadata(client=row["client"], address=row["address"], handoff_date=handoff),
        )
        for row, code in zip(rows, codes)
    ]


# ---------------------------------------------------------
# Dashboard listing
# ---------------------------------------------------------

class ProjectFilter(str, Enum):
    ALL = "ALL"
    PRIORITY = "PRIORITY"
    CONSTRUCTION = "CONSTRUCTION"
    DESIGN = "DESIGN"


def _matches_filter(project: Project, kind: ProjectFilter) -> bool:
    if kind == ProjectFilter.PRIORITY:
        return project.metadata.is_priority
    if kind == ProjectFilter.CONSTRUCTION:
        return project.metadata.is_construction
    if kind == ProjectFilter.DESIGN:
        return not project.metadata.is_construction
    return True


def filter_projects(projects: Iterable[Project], year, search: str = "",
                    kind: ProjectFilter = ProjectFilter.ALL) -> List[Project]:
    """Projects of ``year`` matching the search and filter, ordered by code."""
    term = (search or "").strip().lower()
    kind = ProjectFilter(kind)
    out = [
        p for p in projects
        if p.year == str(year)
        and (not term or term in display_name(p).lower() or term in p.code.lower())
        and _matches_filter(p, kind)
    ]
    return sorted(out, key=lambda p: p.code)


def with_flags(project: Project, is_priority: Optional[bool] = None, is_construction: Optional[bool] = None) -> Project:
    """Quick dashboard toggles on the metadata flags."""
    meta = project.metadata
    if is_priority is not None:
        meta = replace(meta, is_priority=bool(is_priority))
    if is_construction is not None:
        meta = replace(meta, is_construction=bool(is_construction))
    return replace(project, metadata=meta, last_updated=now_iso())
