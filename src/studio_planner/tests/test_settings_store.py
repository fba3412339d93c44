import json

import pytest

from studio_planner.engine.team import initial_employees
from studio_planner.engine.weights import (
    KpiWeightConfig,
    SystemKpiConfig,
    default_weight_config,
    set_stage_weight,
    set_task_weight,
    stage_weight_total,
    weight_warnings,
)
from studio_planner.storage.settings_store import (
    APP_LINKS,
    CURRENT_VERSIONS,
    EMPLOYEES,
    KPI_WEIGHTS,
    SYSTEM_KPI_CONFIG,
    SettingsStore,
)


# ----------------------------------------------------------------
# 1. DEFAULTS & ROUND TRIPS
# ----------------------------------------------------------------
def test_defaults_when_empty():
    store = SettingsStore()
    assert len(store.load_employees()) == 8
    assert len(store.load_app_links()) == 7
    assert store.load_system_kpi_config() == SystemKpiConfig(1.7, 180)
    assert store.load_scope_tags() == frozenset()
    assert store.load_kpi_weights().stage_weight(4) == 31.5


def test_saved_aggregates_are_versioned(tmp_path):
    store = SettingsStore(tmp_path)
    store.save_scope_tags({"p1::1::0"})
    store.save_system_kpi_config(SystemKpiConfig(2.0, 200))

    raw = json.loads((tmp_path / "monthly_scope_tags.json").read_text(encoding="utf-8"))
    assert raw == {"version": 1, "data": ["p1::1::0"]}
    assert SettingsStore(tmp_path).load_system_kpi_config().base_design_cost == 200


def test_weights_keys_survive_json(tmp_path):
    store = SettingsStore(tmp_path)
    cfg = set_task_weight(default_weight_config(), 2, "Phối cảnh sân vườn", 12)
    store.save_kpi_weights(cfg)
    loaded = SettingsStore(tmp_path).load_kpi_weights()
    assert loaded.task_weight(2, "Phối cảnh sân vườn") == 12
    assert loaded.stage_weight("2") == 20.5


# ----------------------------------------------------------------
# 2. MIGRATIONS
# ----------------------------------------------------------------
def test_bare_name_list_migrates_employees(tmp_path):
    (tmp_path / "employees.json").write_text(json.dumps(["HUY", "Lan", ""]), encoding="utf-8")
    store = SettingsStore(tmp_path)
    team = store.load_employees()
    assert [e.name for e in team] == ["HUY", "Lan"]
    assert team[0].target_kpi == 24000
    # written back at the current version
    assert store.read_raw(EMPLOYEES)["version"] == CURRENT_VERSIONS[EMPLOYEES]


def test_bare_employee_dicts_load_as_current_shape(tmp_path):
    """A plain list of employee records (no envelope) is read as is, not as names."""
    seeded = [e.to_dict() for e in initial_employees()[:2]]
    (tmp_path / "employees.json").write_text(json.dumps(seeded, ensure_ascii=False), encoding="utf-8")

    store = SettingsStore(tmp_path)
    team = store.load_employees()
    assert [e.name for e in team] == ["HUY", "THỦY"]
    assert team[0].target_kpi == 24000
    assert store.read_raw(EMPLOYEES) == {"version": CURRENT_VERSIONS[EMPLOYEES], "data": seeded}


def test_mixed_bare_employee_list_falls_back_to_defaults():
    store = SettingsStore()
    store.write_raw(EMPLOYEES, ["HUY", {"name": "Lan"}, 7])
    assert len(store.load_employees()) == 8
    # unrecognised data is left untouched on disk
    assert store.read_raw(EMPLOYEES) == ["HUY", {"name": "Lan"}, 7]


def test_stage_only_weights_merge_defaults():
    store = SettingsStore()
    store.write_raw(KPI_WEIGHTS, {"version": 1, "data": {"stage_weights": {"1": 15}}})
    cfg = store.load_kpi_weights()
    assert cfg.stage_weight(1) == 15
    assert cfg.task_weight(1, "Chuẩn bị ý tưởng") == 9


def test_legacy_system_config():
    store = SettingsStore()
    store.write_raw(SYSTEM_KPI_CONFIG, {"heSoKPI": "1.9", "chiPhiThietKe": "abc"})
    cfg = store.load_system_kpi_config()
    assert cfg.kpi_coefficient == pytest.approx(1.9)
    assert cfg.base_design_cost == 180


def test_unknown_version_falls_back_to_defaults():
    store = SettingsStore()
    store.write_raw(APP_LINKS, {"version": 99, "data": []})
    assert len(store.load_app_links()) == 7


# ----------------------------------------------------------------
# 3. WEIGHT DRIFT
# ----------------------------------------------------------------
def test_weight_warnings_report_drift():
    cfg = default_weight_config()
    assert weight_warnings(cfg) == []

    drifted = set_stage_weight(cfg, 1, 30)
    messages = weight_warnings(drifted)
    assert len(messages) == 1
    assert "Stage weights sum to" in messages[0]
    assert stage_weight_total(drifted) == pytest.approx(119.5)
    # the original config is untouched
    assert cfg.stage_weight(1) == 11


def test_weight_config_from_dict_tolerates_junk():
    cfg = KpiWeightConfig.from_dict({"stage_weights": {"x": 5, "2": "7"}})
    assert cfg.stage_weight(2) == 7
    assert cfg.stage_weight("x") == 0.0
