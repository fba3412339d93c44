import os, sys

# Absolute path to this file
THIS_FILE = os.path.abspath(__file__)

# Go up TWO directories:
#   Menu.py → studio_planner/ → src/
PROJECT_SRC = os.path.abspath(os.path.join(THIS_FILE, "../../"))

# Ensure src folder is on PYTHONPATH
if PROJECT_SRC not in sys.path:
    sys.path.insert(0, PROJECT_SRC)

import streamlit as st

from studio_planner import app_state
from studio_planner.engine.progress_engine import calculate_progress

st.set_page_config(page_title="Design Studio Dashboard", layout="wide")

st.title("🏛️ Design Studio Dashboard")

st.markdown("""
Projects, planning and KPI for the studio. Data is loaded once per session;
every page below works on the same copy.
""")

app_state.init_state()
app_state.stop_on_load_error()

settings = app_state.settings()
projects = app_state.projects()
plans = app_state.plans()

# ---------------------------------------------------------
# Status
# ---------------------------------------------------------
col1, col2, col3, col4 = st.columns(4)
col1.metric("Projects", len(projects))
col2.metric("Planning entries", len(plans))
avg = sum(calculate_progress(p) for p in projects) / len(projects) if projects else 0.0
col3.metric("Average progress", f"{avg:.1f}%")
col4.metric("Store", "Remote" if settings.remote_enabled else "Local")

if st.button("🔄 Reload data"):
    app_state.init_state(force=True)
    st.rerun()

st.divider()

# ---------------------------------------------------------
# App links
# ---------------------------------------------------------
st.subheader("🔗 Studio apps")

links = sorted(st.session_state["app_links"], key=lambda l: (not l.is_favorite, l.name))
cols = st.columns(3)
for i, link in enumerate(links):
    with cols[i % 3]:
        star = "⭐ " if link.is_favorite else ""
        if link.image_url:
            st.image(link.image_url, use_container_width=True)
        st.markdown(f"**{star}{link.name}**")
        st.caption(link.description)
        if link.default_url and link.default_url != "#":
            st.link_button("Open", link.default_url)
