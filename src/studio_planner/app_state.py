# studio_planner/app_state.py

"""
Session glue shared by Menu.py and the pages: one state tree per browser
session in ``st.session_state``, loaded once and replaced wholesale after
each successful (or rolled back) change.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

import streamlit as st

from studio_planner.config import Settings, configure_logging
from studio_planner.engine.models import PlanningEntry, Project
from studio_planner.storage.base import ConnectionFailedError
from studio_planner.storage.repository import Repository, optimistic_update
from studio_planner.storage.settings_store import SettingsStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------

def init_state(force: bool = False) -> None:
    ss = st.session_state
    if "settings" not in ss:
        settings = Settings.from_env()
        configure_logging(settings)
        ss["settings"] = settings
        ss["repository"] = Repository.from_settings(settings)
        ss["settings_store"] = SettingsStore(settings.data_dir / "settings")

    if force or "projects" not in ss:
        reload_projects()
    if force or "plans" not in ss:
        reload_plans()

    if force or "employees" not in ss:
        store: SettingsStore = ss["settings_store"]
        ss["employees"] = store.load_employees()
        ss["app_links"] = store.load_app_links()
        ss["kpi_weights"] = store.load_kpi_weights()
        ss["system_kpi"] = store.load_system_kpi_config()
        ss["scope_tags"] = store.load_scope_tags()


def settings() -> Settings:
    return st.session_state["settings"]


def repository() -> Repository:
    return st.session_state["repository"]


def settings_store() -> SettingsStore:
    return st.session_state["settings_store"]


def projects() -> List[Project]:
    return st.session_state.get("projects", [])


def plans() -> List[PlanningEntry]:
    return st.session_state.get("plans", [])


def reload_projects() -> None:
    ss = st.session_state
    try:
        ss["projects"] = repository().load_projects()
        ss["load_error"] = None
    except ConnectionFailedError as exc:
        ss["projects"] = []
        ss["load_error"] = str(exc)


def reload_plans() -> None:
    st.session_state["plans"] = repository().load_plans()


def stop_on_load_error() -> None:
    """Render the connection error with a retry button and stop the page."""
    err = st.session_state.get("load_error")
    if not err:
        return
    st.error(f"⚠️ {err}")
    if st.button("Retry connection"):
        reload_projects()
        st.rerun()
    st.stop()


# ---------------------------------------------------------
# Persisted changes
# ---------------------------------------------------------

def commit(key: str, proposed, persist: Callable[[], object], success: Optional[str] = None) -> bool:
    """
    Save with ``persist``, then set ``st.session_state[key]`` to ``proposed``.
    On failure the previous value stays and the error is shown.
    """
    current = st.session_state.get(key)
    kept, error = optimistic_update(current, proposed, persist)
    st.session_state[key] = kept
    if error is not None:
        st.error(f"Could not save: {error}. The change was undone; try again.")
        return False
    if success:
        st.success(success)
    return True


def replace_project(items: List[Project], project: Project) -> List[Project]:
    return [project if p.id == project.id else p for p in items]


def replace_plan(items: List[PlanningEntry], entry: PlanningEntry) -> List[PlanningEntry]:
    if any(p.plan_id == entry.plan_id for p in items):
        return [entry if p.plan_id == entry.plan_id else p for p in items]
    return items + [entry]
