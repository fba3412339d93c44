# studio_planner/engine/weights.py

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from studio_planner.engine.models import parse_number
from studio_planner.engine.stages import STAGES, STAGE_TASK_MAPPING, get_stage

logger = logging.getLogger(__name__)

# Totals within this distance of 100 are treated as rounding, not drift.
WEIGHT_TOLERANCE = 1.0


# ---------------------------------------------------------
# DEFAULT TASK WEIGHTS (percent of the stage, per item name)
# ---------------------------------------------------------

_DEFAULT_TASK_PERCENTS: Dict[int, List[float]] = {
    1: [9, 2, 80, 9],
    2: [82, 9, 9],
    3: [65, 35],
    4: [40, 60],
    5: [25, 25, 25, 25],
    6: [16.6, 16.6, 16.6, 16.6, 16.6, 17],
    7: [7.6] + [7.7] * 12,
    8: [50, 50],
    9: [33.3, 33.3, 33.4],
}


@dataclass
class KpiWeightConfig:
    """
    Stage weights (percent of a project) and task weights (percent of a stage,
    keyed by item name). Neither level is forced to sum to 100; see
    ``weight_warnings`` for the drift report shown to admins.
    """

    stage_weights: Dict[int, float] = field(default_factory=dict)
    task_weights: Dict[int, Dict[str, float]] = field(default_factory=dict)

    def stage_weight(self, stage_id) -> float:
        try:
            return float(self.stage_weights.get(int(stage_id), 0) or 0)
        except (TypeError, ValueError):
            return 0.0

    def task_weight(self, stage_id, task: str) -> float:
        try:
            tasks = self.task_weights.get(int(stage_id)) or {}
        except (TypeError, ValueError):
            return 0.0
        return float(tasks.get(task, 0) or 0)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KpiWeightConfig":
        """Load from JSON, where every mapping key arrives as a string."""
        stage_weights: Dict[int, float] = {}
        for key, value in (data.get("stage_weights") or {}).items():
            try:
                stage_weights[int(key)] = parse_number(value)
            except (TypeError, ValueError):
                logger.warning("Ignoring stage weight with key %r", key)

        task_weights: Dict[int, Dict[str, float]] = {}
        for key, tasks in (data.get("task_weights") or {}).items():
            try:
                sid = int(key)
            except (TypeError, ValueError):
                logger.warning("Ignoring task weights with stage key %r", key)
                continue
            task_weights[sid] = {str(name): parse_number(v) for name, v in (tasks or {}).items()}

        return cls(stage_weights=stage_weights, task_weights=task_weights)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage_weights": {str(k): v for k, v in self.stage_weights.items()},
            "task_weights": {str(k): dict(v) for k, v in self.task_weights.items()},
        }


@dataclass
class SystemKpiConfig:
    # Shown on the settings page only; it does not enter any formula.
    kpi_coefficient: float = 1.7
    base_design_cost: float = 180.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemKpiConfig":
        defaults = cls()
        coef = data.get("kpi_coefficient")
        cost = data.get("base_design_cost")
        return cls(
            kpi_coefficient=parse_number(coef) if coef is not None else defaults.kpi_coefficient,
            base_design_cost=parse_number(cost) if cost is not None else defaults.base_design_cost,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"kpi_coefficient": self.kpi_coefficient, "base_design_cost": self.base_design_cost}


def default_weight_config() -> KpiWeightConfig:
    stage_weights = {s.id: s.percentage for s in STAGES}
    task_weights = {
        sid: dict(zip(STAGE_TASK_MAPPING[sid], percents))
        for sid, percents in _DEFAULT_TASK_PERCENTS.items()
    }
    return KpiWeightConfig(stage_weights=stage_weights, task_weights=task_weights)


# ---------------------------------------------------------
# Totals & drift
# ---------------------------------------------------------

def stage_weight_total(config: KpiWeightConfig) -> float:
    return round(sum(config.stage_weight(s.id) for s in STAGES), 4)


def task_weight_total(config: KpiWeightConfig, stage_id: int) -> float:
    stage = get_stage(stage_id)
    if stage is None:
        return 0.0
    return round(sum(config.task_weight(stage_id, item) for item in stage.items), 4)


def weight_warnings(config: KpiWeightConfig) -> List[str]:
    """
    Human-readable drift messages. Never blocks a save:
    calculators keep working with whatever weights are stored.
    """
    warnings: List[str] = []

    total = stage_weight_total(config)
    if abs(total - 100) > WEIGHT_TOLERANCE:
        warnings.append(f"Stage weights sum to {total:g}% (expected 100%).")

    for stage in STAGES:
        stage_total = task_weight_total(config, stage.id)
        if abs(stage_total - 100) > WEIGHT_TOLERANCE:
            warnings.append(
                f"Stage {stage.id}: task weights sum to {stage_total:g}% (expected 100%)."
            )

    if warnings:
        logger.warning("KPI weight drift: %d issue(s)", len(warnings))
    return warnings


# ---------------------------------------------------------
# Admin edits (return new configs)
# ---------------------------------------------------------

def set_stage_weight(config: KpiWeightConfig, stage_id: int, value) -> KpiWeightConfig:
    updated = copy.deepcopy(config)
    updated.stage_weights[int(stage_id)] = parse_number(value)
    return updated


def set_task_weight(config: KpiWeightConfig, stage_id: int, task: str, value) -> KpiWeightConfig:
    updated = copy.deepcopy(config)
    updated.task_weights.setdefault(int(stage_id), {})[task] = parse_number(value)
    return updated
