# studio_planner/pages/06_Settings.py

import os
import sys

# -----------------------------------------------------------
# Make sure "studio_planner" package is importable
# -----------------------------------------------------------
THIS_FILE = os.path.abspath(__file__)
PROJECT_SRC = os.path.abspath(os.path.join(THIS_FILE, "../../../"))

if PROJECT_SRC not in sys.path:
    sys.path.insert(0, PROJECT_SRC)

import streamlit as st

from studio_planner import app_state
from studio_planner.config import check_admin_password
from studio_planner.engine.team import reset_link, toggle_favorite, update_link
from studio_planner.engine.weights import SystemKpiConfig
from studio_planner.validation.data_validator import issues_frame, validate_data

st.set_page_config(
    page_title="Settings & Data Check",
    layout="wide"
)

st.title("⚙️ Settings & Data Check")
st.caption("Studio apps, KPI constants and a consistency report of the stored data.")

app_state.init_state()
app_state.stop_on_load_error()

store = app_state.settings_store()
links = st.session_state["app_links"]
system_kpi = st.session_state["system_kpi"]

tab1, tab2, tab3 = st.tabs(["Data check", "Studio apps", "KPI constants"])

# -----------------------------------------------------------
# Data check
# -----------------------------------------------------------
with tab1:
    issues = issues_frame(
        validate_data(app_state.projects(), app_state.plans(), st.session_state["kpi_weights"])
    )

    critical = issues[issues["Severity"] == "CRITICAL"]
    warnings = issues[issues["Severity"] == "WARNING"]
    info = issues[issues["Severity"] == "INFO"]

    col1, col2, col3 = st.columns(3)
    col1.metric("Critical Issues", len(critical))
    col2.metric("Warnings", len(warnings))
    col3.metric("Info", len(info))

    st.divider()

    st.subheader("❌ Critical Issues")
    if critical.empty:
        st.success("No critical issues found.")
    else:
        st.error("These records break progress, planning or KPI calculations.")
        st.dataframe(critical, use_container_width=True, hide_index=True)

    st.subheader("⚠️ Warnings")
    if warnings.empty:
        st.success("No warnings.")
    else:
        st.dataframe(warnings, use_container_width=True, hide_index=True)

    if not info.empty:
        st.subheader("ℹ️ Info")
        st.dataframe(info, use_container_width=True, hide_index=True)

    if not issues.empty:
        st.download_button(
            "Download report (CSV)",
            issues.to_csv(index=False).encode("utf-8"),
            file_name="data_check.csv",
            mime="text/csv",
        )

# -----------------------------------------------------------
# Studio apps
# -----------------------------------------------------------
with tab2:
    for link in links:
        with st.expander(("⭐ " if link.is_favorite else "") + link.name):
            name = st.text_input("Name", value=link.name, key=f"ln_{link.id}")
            description = st.text_input("Description", value=link.description, key=f"ld_{link.id}")
            url = st.text_input("URL", value=link.default_url, key=f"lu_{link.id}")
            image = st.text_input("Image URL", value=link.image_url, key=f"li_{link.id}")

            col_s, col_f, col_r = st.columns(3)
            if col_s.button("Save", key=f"ls_{link.id}"):
                updated = update_link(links, link.id, name=name, description=description,
                                      default_url=url or "#", image_url=image)
                app_state.commit("app_links", updated, lambda: store.save_app_links(updated), success="Saved.")
            if col_f.button("Toggle favorite", key=f"lf_{link.id}"):
                updated = toggle_favorite(links, link.id)
                if app_state.commit("app_links", updated, lambda: store.save_app_links(updated)):
                    st.rerun()
            if col_r.button("Reset", key=f"lr_{link.id}"):
                updated = reset_link(links, link.id)
                if app_state.commit("app_links", updated, lambda: store.save_app_links(updated)):
                    for prefix in ("ln_", "ld_", "lu_", "li_"):
                        st.session_state.pop(f"{prefix}{link.id}", None)
                    st.rerun()

# -----------------------------------------------------------
# KPI constants
# -----------------------------------------------------------
with tab3:
    password = st.text_input("Admin password", type="password", key="system_password")
    unlocked = check_admin_password(app_state.settings().admin_key, password)

    coef = st.number_input("KPI coefficient", value=float(system_kpi.kpi_coefficient), step=0.1,
                           disabled=not unlocked)
    cost = st.number_input("Design cost per m²", value=float(system_kpi.base_design_cost), step=10.0,
                           disabled=not unlocked)
    st.caption("KPI base of a project = (usable area + garden area / 5) × design cost per m².")

    if st.button("Save constants", disabled=not unlocked):
        config = SystemKpiConfig(kpi_coefficient=coef, base_design_cost=cost)
        app_state.commit("system_kpi", config, lambda: store.save_system_kpi_config(config), success="Saved.")
