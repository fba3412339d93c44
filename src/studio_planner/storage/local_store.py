# studio_planner/storage/local_store.py

from __future__ import annotations

import copy
import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from studio_planner.config import check_admin_password
from studio_planner.engine.models import ProjectMetadata
from studio_planner.engine.progress_engine import STATUS_IN_PROGRESS
from studio_planner.storage.base import ID_FIELDS, Kind, StorageError, error, ok

logger = logging.getLogger(__name__)

FILE_NAMES = {Kind.PROJECTS: "projects.json", Kind.PLANS: "plans.json"}


class LocalStore:
    """
    JSON-file store, one file per kind under ``data_dir``.
    With ``data_dir=None`` everything lives in memory (tests, demo mode).
    """

    def __init__(self, data_dir: Optional[Path] = None, admin_key: str = "TANPHAT"):
        self.data_dir = Path(data_dir) if data_dir is not None else None
        self.admin_key = admin_key
        self._memory: Dict[Kind, List[Dict[str, Any]]] = {Kind.PROJECTS: [], Kind.PLANS: []}

    # ---------------------------------------------------------
    # File I/O
    # ---------------------------------------------------------

    def _path(self, kind: Kind) -> Path:
        return self.data_dir / FILE_NAMES[kind]

    def _load(self, kind: Kind) -> List[Dict[str, Any]]:
        if self.data_dir is None:
            return copy.deepcopy(self._memory[kind])

        path = self._path(kind)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Unreadable local %s file %s: %s", kind.value, path, exc)
            return []
        return data if isinstance(data, list) else []

    def _save(self, kind: Kind, rows: List[Dict[str, Any]]) -> None:
        if self.data_dir is None:
            self._memory[kind] = copy.deepcopy(rows)
            return
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            tmp = self._path(kind).with_suffix(".json.tmp")
            tmp.write_text(json.dumps(rows, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(self._path(kind))
        except OSError as exc:
            raise StorageError(f"Could not write {kind.value} to {self.data_dir}: {exc}") from exc

    # ---------------------------------------------------------
    # Contract
    # ---------------------------------------------------------

    def read(self, kind: Kind) -> List[Dict[str, Any]]:
        return self._load(Kind(kind))

    def create(self, kind: Kind, partial: Dict[str, Any]) -> Dict[str, Any]:
        kind = Kind(kind)
        rows = self._load(kind)
        id_field = ID_FIELDS[kind]
        record = dict(partial)

        if kind == Kind.PROJECTS:
            now = datetime.now()
            year = str(record.get("year") or now.year)
            record.setdefault("year", year)
            record["id"] = record.get("id") or f"LOCAL-{uuid.uuid4().hex[:12]}"
            record.setdefault("code", f"TP{year}-000")
            record.setdefault("name", "New project")
            record.setdefault("status", STATUS_IN_PROGRESS)
            record.setdefault("metadata", ProjectMetadata().to_dict())
            record.setdefault("stage_data", {})
            record["last_updated"] = now.isoformat(timespec="seconds")
        else:
            record[id_field] = record.get(id_field) or f"PLAN-{uuid.uuid4().hex[:12]}"

        rows.append(record)
        self._save(kind, rows)
        return ok(id=record[id_field], data=record)

    def update(self, kind: Kind, entity: Dict[str, Any]) -> Dict[str, Any]:
        kind = Kind(kind)
        rows = self._load(kind)
        id_field = ID_FIELDS[kind]
        record = dict(entity)

        for i, row in enumerate(rows):
            if row.get(id_field) == record.get(id_field):
                if kind == Kind.PROJECTS:
                    record["last_updated"] = datetime.now().isoformat(timespec="seconds")
                rows[i] = record
                self._save(kind, rows)
                return ok(data=record)

        if kind == Kind.PLANS:
            # Updating a plan that was never stored locally creates it.
            rows.append(record)
            self._save(kind, rows)
            return ok(data=record)
        return error("Project not found locally")

    def delete(self, kind: Kind, entity_id: str, auth_token: Optional[str] = None) -> Dict[str, Any]:
        kind = Kind(kind)
        if kind == Kind.PROJECTS and not check_admin_password(self.admin_key, auth_token):
            return error("Invalid security key")

        id_field = ID_FIELDS[kind]
        rows = self._load(kind)
        self._save(kind, [r for r in rows if r.get(id_field) != entity_id])
        return ok()

    def review_plan(self, plan_id: str, score: int, comment: str) -> Dict[str, Any]:
        rows = self._load(Kind.PLANS)
        for row in rows:
            if row.get("plan_id") == plan_id:
                row["manager_kpi_score"] = score
                row["manager_kpi_comment"] = comment
                row["status"] = "COMPLETED"
                self._save(Kind.PLANS, rows)
                return ok()
        return error("Plan not found")
