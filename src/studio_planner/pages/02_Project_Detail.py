# studio_planner/pages/02_Project_Detail.py

import os
import sys

# -------------------------------------------------------------------
# Path bootstrap: same pattern as other pages
# -------------------------------------------------------------------
THIS_FILE = os.path.abspath(__file__)
PROJECT_SRC = os.path.abspath(os.path.join(THIS_FILE, "../../../"))

if PROJECT_SRC not in sys.path:
    sys.path.insert(0, PROJECT_SRC)

from dataclasses import replace

import streamlit as st

from studio_planner import app_state
from studio_planner.engine.kpi_engine import suggest_kpi_base
from studio_planner.engine.progress_engine import (
    apply_metadata,
    calculate_progress,
    display_name,
    mark_all_complete,
    mark_stage_complete,
    normalize_stage_data,
    normalized_items,
    pending_count,
    set_item,
    set_stage_owner,
)
from studio_planner.engine.stages import STAGES

st.set_page_config(page_title="Project Detail", layout="wide")

st.title("📝 Project Detail")
st.caption("Stage checklists, owners and project information. Changes are kept as a draft until saved.")

app_state.init_state()
app_state.stop_on_load_error()

projects = app_state.projects()
repo = app_state.repository()
system_kpi = st.session_state["system_kpi"]

if not projects:
    st.warning("No projects yet. Create one on the Project Dashboard first.")
    st.stop()

# -------------------------------------------------------------------
# Select project / draft
# -------------------------------------------------------------------
by_id = {p.id: p for p in projects}
project_id = st.sidebar.selectbox(
    "Project",
    sorted(by_id, key=lambda i: (by_id[i].year, by_id[i].code)),
    format_func=lambda i: f"{by_id[i].code} {display_name(by_id[i])}",
)


def reset_checklist_widgets(pid):
    """Drop cached widget values so the checkboxes re-read the draft."""
    for key in list(st.session_state.keys()):
        if key.startswith((f"owner_{pid}_", f"item_{pid}_")):
            del st.session_state[key]


draft = st.session_state.get("detail_draft")
if draft is None or draft.id != project_id:
    draft = normalize_stage_data(by_id[project_id])
    st.session_state["detail_draft"] = draft

st.metric("Progress", f"{calculate_progress(draft):.2f}%", help=draft.status)
st.progress(min(1.0, calculate_progress(draft) / 100.0))

col_save, col_all, col_reset = st.columns(3)
if col_save.button("💾 Save project", type="primary"):
    saved = draft
    if app_state.commit(
        "projects",
        app_state.replace_project(projects, saved),
        lambda: repo.update_project(saved),
        success="Project saved.",
    ):
        st.session_state["detail_draft"] = saved
if col_all.button("✅ Mark all complete"):
    st.session_state["detail_draft"] = mark_all_complete(draft)
    reset_checklist_widgets(draft.id)
    st.rerun()
if col_reset.button("↩️ Discard draft"):
    st.session_state["detail_draft"] = None
    reset_checklist_widgets(draft.id)
    st.rerun()

tab1, tab2 = st.tabs(["Checklist", "Information"])

# -------------------------------------------------------------------
# TAB 1: Stage checklists
# -------------------------------------------------------------------
with tab1:
    for stage in STAGES:
        data = draft.stage_data.get(stage.id)
        open_items = pending_count(draft, stage.id)
        label = f"{stage.title} ({stage.percentage:g}%) · {open_items} open"
        with st.expander(label, expanded=False):
            owner = st.text_input(
                "Owner",
                value=data.owner if data else "",
                key=f"owner_{draft.id}_{stage.id}",
            )
            if owner != (data.owner if data else ""):
                draft = set_stage_owner(draft, stage.id, owner)

            items = normalized_items(stage, draft.stage_data.get(stage.id))
            for i, item in enumerate(stage.items):
                checked = st.checkbox(item, value=items[i], key=f"item_{draft.id}_{stage.id}_{i}")
                if checked != items[i]:
                    draft = set_item(draft, stage.id, i, checked)

            if st.button("Mark stage complete", key=f"stage_done_{draft.id}_{stage.id}"):
                draft = mark_stage_complete(draft, stage.id)
                st.session_state["detail_draft"] = draft
                reset_checklist_widgets(draft.id)
                st.rerun()

    st.session_state["detail_draft"] = draft

# -------------------------------------------------------------------
# TAB 2: Metadata
# -------------------------------------------------------------------
with tab2:
    meta = draft.metadata
    code = st.text_input("Code", value=draft.code)

    col_a, col_b = st.columns(2)
    with col_a:
        client = st.text_input("Client", value=meta.client)
        address = st.text_input("Address", value=meta.address)
        client_source = st.text_input("Client source", value=meta.client_source)
        sales = st.text_input("Sales consultant", value=meta.sales_consultant)
        handoff = st.text_input("Handoff date (YYYY-MM-DD)", value=meta.handoff_date)
        construction = st.text_input("Construction date (YYYY-MM-DD)", value=meta.construction_date)
    with col_b:
        lead_arch = st.text_input("Lead architect", value=meta.lead_architect)
        lead_int = st.text_input("Lead interior", value=meta.lead_interior)
        lead_docs = st.text_input("Lead construction documents", value=meta.lead_construction_docs)
        total_cost = st.text_input("Total cost", value=meta.total_cost)
        usable = st.text_input("Usable area (m²)", value=meta.usable_area)
        garden = st.text_input("Garden area (m²)", value=meta.garden_area)

    auto_kpi = st.checkbox("Fill KPI base from areas", value=True)
    edited = replace(
        meta,
        client=client,
        address=address,
        client_source=client_source,
        sales_consultant=sales,
        handoff_date=handoff,
        construction_date=construction,
        lead_architect=lead_arch,
        lead_interior=lead_int,
        lead_construction_docs=lead_docs,
        total_cost=total_cost,
        usable_area=usable,
        garden_area=garden,
    )
    edited = suggest_kpi_base(edited, system_kpi.base_design_cost, editing=auto_kpi)
    kpi_score = st.text_input("KPI base", value=edited.kpi_score, disabled=auto_kpi)
    notes = st.text_area("Notes", value=meta.notes)

    col_p, col_c = st.columns(2)
    is_priority = col_p.checkbox("Priority", value=meta.is_priority)
    is_construction = col_c.checkbox("Under construction", value=meta.is_construction)

    if st.button("Apply information"):
        edited = replace(
            edited,
            kpi_score=edited.kpi_score if auto_kpi else kpi_score,
            notes=notes,
            is_priority=is_priority,
            is_construction=is_construction,
        )
        st.session_state["detail_draft"] = apply_metadata(draft, edited, code=code)
        st.success("Applied to the draft. Save the project to keep it.")
