# studio_planner/engine/models.py

"""
Typed records for the dashboard state tree.

Everything here is plain data: the engines read these records and return
new ones, nothing mutates in place. Each record round-trips through the
JSON dict shape used by the stores (``from_dict`` / ``to_dict``) and
``from_dict`` tolerates missing keys so partially written rows still load.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# Small helpers
# ---------------------------------------------------------

def parse_number(value: Any) -> float:
    """
    Lenient numeric parse for free-text metadata fields.

    "12.5" -> 12.5, "" -> 0.0, None -> 0.0, "abc" -> 0.0, "1,5" -> 0.0
    NaN / inf are treated as unparseable.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        num = float(str(value).strip())
    except ValueError:
        return 0.0
    if math.isnan(num) or math.isinf(num):
        return 0.0
    return num


def parse_timestamp(value: Any) -> Optional[datetime]:
    """ISO date or date-time string -> datetime, None when unparseable."""
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1]
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    # Range math is date-only; drop tz info so naive/aware values compare.
    return parsed.replace(tzinfo=None)


def now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _known_kwargs(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


# ---------------------------------------------------------
# Projects
# ---------------------------------------------------------

@dataclass
class StageProgress:
    owner: str = ""
    checked_items: List[bool] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "StageProgress":
        data = data or {}
        items = data.get("checked_items") or []
        return cls(
            owner=str(data.get("owner") or ""),
            checked_items=[bool(x) for x in items],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"owner": self.owner, "checked_items": list(self.checked_items)}


@dataclass
class ProjectMetadata:
    client: str = ""
    handoff_date: str = ""
    construction_date: str = ""
    client_source: str = ""
    total_cost: str = ""
    address: str = ""
    lead_architect: str = ""
    lead_interior: str = ""
    lead_construction_docs: str = ""
    sales_consultant: str = ""
    notes: str = ""
    is_priority: bool = False
    is_construction: bool = False
    usable_area: str = ""
    garden_area: str = ""
    kpi_score: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ProjectMetadata":
        kwargs = _known_kwargs(cls, data or {})
        for key in ("is_priority", "is_construction"):
            if key in kwargs:
                kwargs[key] = bool(kwargs[key])
        for key, value in list(kwargs.items()):
            if key not in ("is_priority", "is_construction"):
                kwargs[key] = "" if value is None else str(value)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Project:
    id: str
    code: str = ""
    year: str = ""
    name: str = ""
    status: str = ""
    metadata: ProjectMetadata = field(default_factory=ProjectMetadata)
    stage_data: Dict[int, StageProgress] = field(default_factory=dict)
    last_updated: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        stage_data: Dict[int, StageProgress] = {}
        for key, value in (data.get("stage_data") or {}).items():
            try:
                stage_id = int(key)
            except (TypeError, ValueError):
                logger.warning("Skipping stage key %r on project %s", key, data.get("id"))
                continue
            stage_data[stage_id] = StageProgress.from_dict(value)

        return cls(
            id=str(data.get("id") or ""),
            code=str(data.get("code") or ""),
            year=str(data.get("year") or ""),
            name=str(data.get("name") or ""),
            status=str(data.get("status") or ""),
            metadata=ProjectMetadata.from_dict(data.get("metadata")),
            stage_data=stage_data,
            last_updated=str(data.get("last_updated") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "year": self.year,
            "name": self.name,
            "status": self.status,
            "metadata": self.metadata.to_dict(),
            # JSON object keys are strings
            "stage_data": {str(k): v.to_dict() for k, v in self.stage_data.items()},
            "last_updated": self.last_updated,
        }


# ---------------------------------------------------------
# Planning entries
# ---------------------------------------------------------

class TaskStatus(str, Enum):
    PLANNED = "PLANNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    DELAYED = "DELAYED"

    @classmethod
    def parse(cls, value: Any) -> "TaskStatus":
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.PLANNED


@dataclass
class PlanningEntry:
    plan_id: str
    assigned_to: str = ""
    project_id: str = ""
    project_code: str = ""
    stage_index: int = 1
    task_type: str = ""
    detailed_task: str = ""
    start_time: str = ""
    end_time: str = ""
    status: TaskStatus = TaskStatus.PLANNED
    manager_kpi_score: Optional[int] = None
    manager_kpi_comment: Optional[str] = None

    @property
    def start(self) -> Optional[datetime]:
        return parse_timestamp(self.start_time)

    @property
    def end(self) -> Optional[datetime]:
        return parse_timestamp(self.end_time)

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def has_review(self) -> bool:
        return self.manager_kpi_score is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanningEntry":
        try:
            stage_index = int(data.get("stage_index") or 1)
        except (TypeError, ValueError):
            stage_index = 1
        score = data.get("manager_kpi_score")
        try:
            score = int(score) if score is not None and score != "" else None
        except (TypeError, ValueError):
            score = None
        return cls(
            plan_id=str(data.get("plan_id") or ""),
            assigned_to=str(data.get("assigned_to") or ""),
            project_id=str(data.get("project_id") or ""),
            project_code=str(data.get("project_code") or ""),
            stage_index=stage_index,
            task_type=str(data.get("task_type") or ""),
            detailed_task=str(data.get("detailed_task") or ""),
            start_time=str(data.get("start_time") or ""),
            end_time=str(data.get("end_time") or ""),
            status=TaskStatus.parse(data.get("status")),
            manager_kpi_score=score,
            manager_kpi_comment=data.get("manager_kpi_comment"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["status"] = self.status.value
        return out


def complete_time(value: str, default_clock: str) -> str:
    """'2025-03-04' -> '2025-03-04T08:00'; values that already carry a time pass through."""
    value = (value or "").strip()
    if not value or "T" in value:
        return value
    return f"{value[:10]}T{default_clock}"


# ---------------------------------------------------------
# People & settings aggregates
# ---------------------------------------------------------

ATTITUDE_FIELDS = ("conduct", "activities", "client_feedback", "teamwork", "culture")


@dataclass
class AttitudeScores:
    conduct: float = 8
    activities: float = 8
    client_feedback: float = 8
    teamwork: float = 8
    culture: float = 8

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AttitudeScores":
        data = data or {}
        return cls(**{k: parse_number(data.get(k, 0)) for k in ATTITUDE_FIELDS})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Employee:
    id: str
    name: str
    role: str = ""
    avatar_url: str = ""
    target_kpi: float = 0.0
    attitude: AttitudeScores = field(default_factory=AttitudeScores)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Employee":
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            role=str(data.get("role") or ""),
            avatar_url=str(data.get("avatar_url") or ""),
            target_kpi=parse_number(data.get("target_kpi")),
            attitude=AttitudeScores.from_dict(data.get("attitude")),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["attitude"] = self.attitude.to_dict()
        return out


@dataclass
class AppLink:
    id: str
    name: str
    description: str = ""
    default_url: str = "#"
    image_url: str = ""
    is_favorite: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppLink":
        kwargs = _known_kwargs(cls, data)
        kwargs["is_favorite"] = bool(kwargs.get("is_favorite", False))
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
