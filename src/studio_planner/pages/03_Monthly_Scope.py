# studio_planner/pages/03_Monthly_Scope.py

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

import pandas as pd
import streamlit as st

from studio_planner import app_state
from studio_planner.engine.availability_engine import (
    is_task_available,
    parse_scope_key,
    project_urgent_count,
    scheduled_signatures,
    scope_candidates,
    scope_key,
    toggle_scope_tag,
)
from studio_planner.engine.progress_engine import display_name
from studio_planner.engine.stages import STAGES, task_name

st.set_page_config(page_title="Monthly Scope", layout="wide")

st.title("🎯 Monthly Scope")
st.caption("Tag the checklist items the studio commits to this month. Tagged items that are still open drive the planning form.")

app_state.init_state()
app_state.stop_on_load_error()

projects = app_state.projects()
plans = app_state.plans()
store = app_state.settings_store()
tags = st.session_state["scope_tags"]

# -------------------------------------------------------------------
# Sidebar filters
# -------------------------------------------------------------------
st.sidebar.header("Filters")
this_year = str(datetime.now().year)
years = sorted({p.year for p in projects if p.year} | {this_year}, reverse=True)
year = st.sidebar.selectbox("Year", years, index=years.index(this_year))
search = st.sidebar.text_input("Search client or code", "")

candidates = scope_candidates(projects, year, search)

if st.sidebar.button("Clear all tags"):
    if app_state.commit("scope_tags", frozenset(), lambda: store.save_scope_tags([])):
        for widget_key in [k for k in st.session_state.keys() if str(k).startswith("tagbox_")]:
            del st.session_state[widget_key]
        st.rerun()

c1, c2 = st.columns(2)
c1.metric("Tagged items", len(tags))
c2.metric("Open projects", len(candidates))

st.divider()

# -------------------------------------------------------------------
# Tagging
# -------------------------------------------------------------------
if not candidates:
    st.info("No incomplete projects match the filters.")
    st.stop()

sigs = scheduled_signatures(plans)
by_id = {p.id: p for p in projects}

for p in candidates:
    urgent = project_urgent_count(p, plans, by_id, tags)
    with st.expander(f"[{p.code}] {display_name(p)} · {urgent} waiting"):
        for stage in STAGES:
            st.markdown(f"**{stage.title}**")
            for i, item in enumerate(stage.items):
                key = scope_key(p.id, stage.id, i)
                available = is_task_available(p.id, stage.id, i, plans, by_id, signatures=sigs)
                label = item if available else f"{item} (done or scheduled)"
                tagged = st.checkbox(label, value=key in tags, key=f"tagbox_{key}")
                if tagged != (key in tags):
                    new_tags = toggle_scope_tag(tags, key)
                    if app_state.commit("scope_tags", new_tags, lambda: store.save_scope_tags(new_tags)):
                        st.rerun()

# -------------------------------------------------------------------
# Summary
# -------------------------------------------------------------------
st.subheader("Tagged this month")
rows = []
for key in sorted(tags):
    parsed = parse_scope_key(key)
    if parsed is None or parsed[0] not in by_id:
        continue
    project_id, stage_id, index = parsed
    rows.append(
        {
            "Project": by_id[project_id].code,
            "Stage": stage_id,
            "Task": task_name(stage_id, index) or "?",
            "Available": is_task_available(project_id, stage_id, index, plans, by_id, signatures=sigs),
        }
    )
st.dataframe(pd.DataFrame(rows, columns=["Project", "Stage", "Task", "Available"]),
             use_container_width=True, hide_index=True)
