# studio_planner/pages/01_Project_Dashboard.py

import os
import sys

# -------------------------------------------------------------------
# Path bootstrap: same pattern as other pages
# -------------------------------------------------------------------
THIS_FILE = os.path.abspath(__file__)
PROJECT_SRC = os.path.abspath(os.path.join(THIS_FILE, "../../../"))

if PROJECT_SRC not in sys.path:
    sys.path.insert(0, PROJECT_SRC)

from datetime import datetime

import numpy as np
import pandas as pd
import plotly.express as px
import streamlit as st

from studio_planner import app_state
from studio_planner.engine.alert_engine import generate_alerts, owner_workload
from studio_planner.engine.progress_engine import (
    calculate_progress,
    display_name,
    stage_status,
)
from studio_planner.engine.project_catalog import (
    BULK_LIMIT,
    ProjectFilter,
    bulk_projects,
    filter_projects,
    new_project,
    next_project_code,
    with_flags,
)
from studio_planner.engine.stages import STAGES, short_title

# -------------------------------------------------------------------
# Page config
# -------------------------------------------------------------------
st.set_page_config(page_title="Project Dashboard", layout="wide")

st.title("📁 Project Dashboard")
st.caption("Every project of the year, how far along it is, and what needs attention.")

app_state.init_state()
app_state.stop_on_load_error()

projects = app_state.projects()
repo = app_state.repository()

# -------------------------------------------------------------------
# Sidebar filters
# -------------------------------------------------------------------
st.sidebar.header("Filters")

this_year = str(datetime.now().year)
years = sorted({p.year for p in projects if p.year} | {this_year}, reverse=True)
year = st.sidebar.selectbox("Year", years, index=years.index(this_year))
search = st.sidebar.text_input("Search name or code", "")

filter_labels = {
    "All": ProjectFilter.ALL,
    "Priority": ProjectFilter.PRIORITY,
    "Under construction": ProjectFilter.CONSTRUCTION,
    "Design only": ProjectFilter.DESIGN,
}
sel_filter = st.sidebar.radio("Show", list(filter_labels.keys()), index=0)

visible = filter_projects(projects, year, search, filter_labels[sel_filter])

# -------------------------------------------------------------------
# Alerts
# -------------------------------------------------------------------
rotate = st.sidebar.checkbox("Rotate delay alerts", value=False)
rng = np.random.default_rng() if rotate else None
alerts = generate_alerts([p for p in projects if p.year == year], rng=rng)

if alerts["delays"] or alerts["personnel_overload"]:
    with st.expander("🚨 Alerts", expanded=True):
        for d in alerts["delays"]:
            st.error(
                f"{display_name(d['project'])}: {d['progress']:.1f}% after "
                f"{d['elapsed_days']} days"
            )
        for o in alerts["personnel_overload"]:
            st.warning(f"{o['name']} has {o['count']} open checklist items.")

# -------------------------------------------------------------------
# KPI strip
# -------------------------------------------------------------------
progress = [calculate_progress(p) for p in visible]

c1, c2, c3, c4 = st.columns(4)
c1.metric("Projects", len(visible))
c2.metric("Completed", sum(1 for v in progress if v >= 100))
c3.metric("Priority", sum(1 for p in visible if p.metadata.is_priority))
c4.metric("Avg progress", f"{(np.mean(progress) if progress else 0.0):.1f}%")

st.divider()

tab1, tab2, tab3 = st.tabs(["Projects", "Workload", "New projects"])

# -------------------------------------------------------------------
# TAB 1: Project list
# -------------------------------------------------------------------
with tab1:
    if not visible:
        st.info("No projects match the current filters.")
    else:
        df = pd.DataFrame(
            {
                "Code": [p.code for p in visible],
                "Project": [display_name(p) for p in visible],
                "Progress": progress,
                "Status": [p.status for p in visible],
            }
        )
        fig = px.bar(
            df,
            x="Progress",
            y="Code",
            orientation="h",
            color="Status",
            hover_data=["Project"],
            range_x=[0, 100],
        )
        fig.update_layout(margin=dict(l=20, r=20, t=40, b=20), yaxis=dict(autorange="reversed"))
        st.plotly_chart(fig, use_container_width=True)

        stage_grid = pd.DataFrame(
            [
                {"Code": p.code, **{short_title(s): stage_status(p, s.id) for s in STAGES}}
                for p in visible
            ]
        )
        st.subheader("Stage status")
        st.dataframe(stage_grid, use_container_width=True, hide_index=True)

        st.subheader("Quick flags")
        for p in visible:
            col_a, col_b, col_c = st.columns([4, 1, 1])
            col_a.markdown(f"**{p.code}** {display_name(p)}")
            prio = col_b.checkbox("Priority", value=p.metadata.is_priority, key=f"prio_{p.id}")
            cons = col_c.checkbox("Construction", value=p.metadata.is_construction, key=f"cons_{p.id}")
            if prio != p.metadata.is_priority or cons != p.metadata.is_construction:
                updated = with_flags(p, is_priority=prio, is_construction=cons)
                if app_state.commit(
                    "projects",
                    app_state.replace_project(projects, updated),
                    lambda: repo.update_project(updated),
                ):
                    st.rerun()

        st.download_button(
            "Download project list (CSV)",
            df.to_csv(index=False).encode("utf-8"),
            file_name=f"projects_{year}.csv",
            mime="text/csv",
        )

        with st.expander("🗑️ Delete a project"):
            target = st.selectbox(
                "Project",
                visible,
                format_func=lambda p: f"{p.code} {display_name(p)}",
                key="delete_target",
            )
            password = st.text_input("Admin password", type="password", key="delete_password")
            if st.button("Delete project", type="primary"):
                remaining = [p for p in projects if p.id != target.id]
                app_state.commit(
                    "projects",
                    remaining,
                    lambda: repo.delete_project(target.id, password),
                    success=f"Deleted {target.code}.",
                )

# -------------------------------------------------------------------
# TAB 2: Owner workload
# -------------------------------------------------------------------
with tab2:
    wl = owner_workload([p for p in projects if p.year == year])
    if wl.empty:
        st.info("No stage owners with open items.")
    else:
        fig_wl = px.bar(wl, x="Owner", y="Pending")
        fig_wl.update_layout(margin=dict(l=20, r=20, t=40, b=20))
        st.plotly_chart(fig_wl, use_container_width=True)

# -------------------------------------------------------------------
# TAB 3: Create projects
# -------------------------------------------------------------------
with tab3:
    st.subheader("Single project")
    code = next_project_code(projects, year)
    st.caption(f"Next code: {code}")
    name = st.text_input("Name (optional)", key="new_name")
    if st.button("Create project"):
        project = new_project(year, code, name=name)
        if app_state.commit(
            "projects",
            projects + [project],
            lambda: repo.create_project(project),
            success=f"Created {code}.",
        ):
            app_state.reload_projects()

    st.subheader("Bulk create")
    st.caption(f"One project per line: name | client | address (max {BULK_LIMIT} lines).")
    text = st.text_area("Projects", key="bulk_text", height=160)
    if st.button("Create all"):
        batch = bulk_projects(projects, year, text)
        if not batch:
            st.warning("No lines with a project name.")
        elif app_state.commit(
            "projects",
            projects + batch,
            lambda: [repo.create_project(p) for p in batch],
            success=f"Created {len(batch)} project(s): {batch[0].code} .. {batch[-1].code}",
        ):
            app_state.reload_projects()
