# studio_planner/storage/settings_store.py

"""
Independently versioned settings aggregates.

Each aggregate is stored as ``{"version": N, "data": ...}``. On load:
  - current version      -> parsed as is
  - a known older shape  -> migrated, then saved back at the current version
  - missing / unknown    -> defaults
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

from studio_planner.engine.models import AppLink, AttitudeScores, Employee, parse_number
from studio_planner.engine.team import avatar_url, default_app_links, initial_employees
from studio_planner.engine.weights import KpiWeightConfig, SystemKpiConfig, default_weight_config
from studio_planner.storage.base import StorageError

logger = logging.getLogger(__name__)

EMPLOYEES = "employees"
APP_LINKS = "app_links"
KPI_WEIGHTS = "kpi_weights"
SYSTEM_KPI_CONFIG = "system_kpi_config"
MONTHLY_SCOPE_TAGS = "monthly_scope_tags"

CURRENT_VERSIONS = {
    EMPLOYEES: 3,
    APP_LINKS: 1,
    KPI_WEIGHTS: 2,
    SYSTEM_KPI_CONFIG: 1,
    MONTHLY_SCOPE_TAGS: 1,
}


# ---------------------------------------------------------
# Migrations: (aggregate, from_version) -> data at the current version
# ---------------------------------------------------------

def _employees_from_names(data: Any) -> List[Dict[str, Any]]:
    """v2 stored only the roster names."""
    seeds = {e.name: e for e in initial_employees()}
    out = []
    for i, name in enumerate(data or [], start=1):
        if not isinstance(name, str) or not name.strip():
            continue
        name = name.strip()
        emp = seeds.get(name.upper()) or Employee(
            id=f"EMP-M{i:03d}", name=name, avatar_url=avatar_url(name), attitude=AttitudeScores()
        )
        out.append(emp.to_dict())
    return out


def _weights_stage_only(data: Any) -> Dict[str, Any]:
    """v1 had stage weights only; task weights come from the defaults."""
    merged = default_weight_config().to_dict()
    merged["stage_weights"].update({str(k): v for k, v in (data or {}).get("stage_weights", {}).items()})
    return merged


def _legacy_system_config(data: Any) -> Dict[str, Any]:
    """v0 kept the numbers as strings under their original form keys."""
    data = data or {}
    return {
        "kpi_coefficient": parse_number(data.get("heSoKPI", 1.7)) or 1.7,
        "base_design_cost": parse_number(data.get("chiPhiThietKe", 180)) or 180.0,
    }


MIGRATIONS: Dict[tuple, Callable[[Any], Any]] = {
    (EMPLOYEES, 2): _employees_from_names,
    (KPI_WEIGHTS, 1): _weights_stage_only,
    (SYSTEM_KPI_CONFIG, 0): _legacy_system_config,
}


def _bare_payload_version(name: str, payload: Any) -> Optional[int]:
    """
    Version of a payload stored without an envelope, judged by its shape.

      employees:         list of names -> 2, list of employee dicts -> current
      system_kpi_config: dict          -> 0
    Anything else is unrecognised (None) and falls back to defaults.
    """
    if name == EMPLOYEES and isinstance(payload, list):
        if all(isinstance(item, str) for item in payload):
            return 2
        if all(isinstance(item, dict) for item in payload):
            return CURRENT_VERSIONS[EMPLOYEES]
        return None
    if name == SYSTEM_KPI_CONFIG and isinstance(payload, dict):
        return 0
    return None


class SettingsStore:
    """One JSON file per aggregate under ``settings_dir``; in memory when it is None."""

    def __init__(self, settings_dir: Optional[Path] = None):
        self.settings_dir = Path(settings_dir) if settings_dir is not None else None
        self._memory: Dict[str, Any] = {}

    # ---------------------------------------------------------
    # Raw envelopes
    # ---------------------------------------------------------

    def _path(self, name: str) -> Path:
        return self.settings_dir / f"{name}.json"

    def read_raw(self, name: str) -> Optional[Any]:
        if self.settings_dir is None:
            return copy.deepcopy(self._memory.get(name))
        path = self._path(name)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Unreadable settings file %s: %s", path, exc)
            return None

    def write_raw(self, name: str, envelope: Any) -> None:
        if self.settings_dir is None:
            self._memory[name] = copy.deepcopy(envelope)
            return
        try:
            self.settings_dir.mkdir(parents=True, exist_ok=True)
            self._path(name).write_text(json.dumps(envelope, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not save settings '{name}': {exc}") from exc

    def _load(self, name: str, default: Callable[[], Any]) -> Any:
        envelope = self.read_raw(name)
        current = CURRENT_VERSIONS[name]

        if not isinstance(envelope, dict) or "version" not in envelope:
            legacy_version = _bare_payload_version(name, envelope)
            if legacy_version is None:
                return default()
            envelope = {"version": legacy_version, "data": envelope}
            if legacy_version == current:
                # Already the current shape, just missing its envelope.
                self._save(name, envelope["data"])

        version = envelope.get("version")
        data = envelope.get("data")
        if version == current:
            return data

        migrate = MIGRATIONS.get((name, version))
        if migrate is None:
            logger.warning("Settings '%s' at unsupported version %r; using defaults", name, version)
            return default()

        migrated = migrate(data)
        logger.info("Migrated settings '%s' from v%s to v%s", name, version, current)
        self._save(name, migrated)
        return migrated

    def _save(self, name: str, data: Any) -> None:
        self.write_raw(name, {"version": CURRENT_VERSIONS[name], "data": data})

    # ---------------------------------------------------------
    # Typed aggregates
    # ---------------------------------------------------------

    def load_employees(self) -> List[Employee]:
        rows = self._load(EMPLOYEES, lambda: [e.to_dict() for e in initial_employees()])
        return [Employee.from_dict(r) for r in rows or []]

    def save_employees(self, employees: Iterable[Employee]) -> None:
        self._save(EMPLOYEES, [e.to_dict() for e in employees])

    def load_app_links(self) -> List[AppLink]:
        rows = self._load(APP_LINKS, lambda: [l.to_dict() for l in default_app_links()])
        return [AppLink.from_dict(r) for r in rows or []]

    def save_app_links(self, links: Iterable[AppLink]) -> None:
        self._save(APP_LINKS, [l.to_dict() for l in links])

    def load_kpi_weights(self) -> KpiWeightConfig:
        data = self._load(KPI_WEIGHTS, lambda: default_weight_config().to_dict())
        return KpiWeightConfig.from_dict(data or {})

    def save_kpi_weights(self, config: KpiWeightConfig) -> None:
        self._save(KPI_WEIGHTS, config.to_dict())

    def load_system_kpi_config(self) -> SystemKpiConfig:
        data = self._load(SYSTEM_KPI_CONFIG, lambda: SystemKpiConfig().to_dict())
        return SystemKpiConfig.from_dict(data or {})

    def save_system_kpi_config(self, config: SystemKpiConfig) -> None:
        self._save(SYSTEM_KPI_CONFIG, config.to_dict())

    def load_scope_tags(self) -> FrozenSet[str]:
        data = self._load(MONTHLY_SCOPE_TAGS, list)
        return frozenset(str(k) for k in (data or []))

    def save_scope_tags(self, tags: Iterable[str]) -> None:
        self._save(MONTHLY_SCOPE_TAGS, sorted(tags))
