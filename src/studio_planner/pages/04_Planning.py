# studio_planner/pages/04_Planning.py

import os
import sys

# -------------------------------------------------------------------
# Path bootstrap: same pattern as other pages
# -------------------------------------------------------------------
THIS_FILE = os.path.abspath(__file__)
PROJECT_SRC = os.path.abspath(os.path.join(THIS_FILE, "../../../"))

if PROJECT_SRC not in sys.path:
    sys.path.insert(0, PROJECT_SRC)

from datetime import date, timedelta

import pandas as pd
import plotly.express as px
import streamlit as st

from studio_planner import app_state
from studio_planner.engine.availability_engine import (
    default_stage,
    ordered_stage_options,
    project_options,
    task_options,
)
from studio_planner.engine.events import apply_events, completion_events, review_entry
from studio_planner.engine.kpi_engine import plans_frame
from studio_planner.engine.layout_engine import (
    Grouping,
    ViewMode,
    ViewRequest,
    compute_view,
    iso_week_number,
    resolve_view_mode,
    week_of_month_start,
)
from studio_planner.engine.models import TaskStatus, parse_timestamp
from studio_planner.engine.planning import build_plan_entry, entry_form

st.set_page_config(page_title="Planning", layout="wide")

st.title("🗓️ Planning")
st.caption("Who works on what, and when. Completing an entry checks the task on its project.")

app_state.init_state()
app_state.stop_on_load_error()

projects = app_state.projects()
plans = app_state.plans()
repo = app_state.repository()
employees = st.session_state["employees"]
tags = st.session_state["scope_tags"]
weights = st.session_state["kpi_weights"]


def persist_completion(entry):
    """Check the entry's task on its project once it is completed."""
    current = app_state.projects()
    updated, changed = apply_events(current, completion_events(entry))
    if changed:
        app_state.commit(
            "projects",
            updated,
            lambda: [repo.update_project(p) for p in changed],
            success=f"Checked '{entry.task_type}' on {entry.project_code}.",
        )


# -------------------------------------------------------------------
# Sidebar: view controls
# -------------------------------------------------------------------
st.sidebar.header("View")

today = date.today()
mode_labels = {"List": ViewMode.LIST, "Gantt (week)": ViewMode.GANTT, "Calendar (month)": ViewMode.CALENDAR}
sel_mode = st.sidebar.radio("Mode", list(mode_labels.keys()), index=1)

names = [e.name for e in employees]
members = st.sidebar.multiselect("Team members", names, default=names)

year = int(st.sidebar.number_input("Year", min_value=2000, max_value=2100, value=today.year, step=1))
month = int(st.sidebar.selectbox("Month", list(range(1, 13)), index=today.month - 1))
default_week = iso_week_number(today) if year == today.year and month == today.month else week_of_month_start(year, month)
week = int(st.sidebar.number_input("ISO week", min_value=1, max_value=53, value=default_week, step=1))
grouping = Grouping.PROJECT if st.sidebar.radio("Group by", ["Staff", "Project"]) == "Project" else Grouping.STAFF

mode = resolve_view_mode(mode_labels[sel_mode], members)
if mode != mode_labels[sel_mode]:
    st.sidebar.info("The calendar shows one person; showing the Gantt instead.")

req = ViewRequest(
    entries=tuple(plans),
    members=tuple(members),
    year=year,
    month=month,
    week=week,
    grouping=grouping,
)
view = compute_view(mode, req)


def timeline_frame(rows, window_start, lane_of):
    records = []
    for row in rows:
        for pe in row["placed"]:
            start = window_start + timedelta(days=pe.start_col)
            records.append(
                {
                    "Lane": lane_of(row, pe),
                    "Start": start,
                    "Finish": start + timedelta(days=pe.span),
                    "Task": pe.entry.task_type,
                    "Project": pe.entry.project_code,
                    "Member": pe.entry.assigned_to,
                    "Tier": pe.tier.value,
                }
            )
    return pd.DataFrame(records)


def draw_timeline(df, height):
    fig = px.timeline(
        df,
        x_start="Start",
        x_end="Finish",
        y="Lane",
        color="Tier",
        hover_data=["Task", "Project", "Member"],
        color_discrete_map={"LOW": "#2563eb", "MEDIUM": "#f59e0b", "HIGH": "#dc2626", "DONE": "#9ca3af"},
    )
    fig.update_yaxes(autorange="reversed")
    fig.update_layout(margin=dict(l=20, r=20, t=40, b=20), height=height)
    st.plotly_chart(fig, use_container_width=True)


# -------------------------------------------------------------------
# View
# -------------------------------------------------------------------
if view["mode"] == ViewMode.LIST:
    if not view["groups"]:
        st.info("No planning entries for the selected members.")
    for key, entries in view["groups"].items():
        st.subheader(key or "Unassigned")
        st.dataframe(plans_frame(entries, projects, weights), use_container_width=True, hide_index=True)

elif view["mode"] == ViewMode.GANTT:
    window_start, window_end = view["window"]
    st.subheader(f"Week {week}: {window_start:%d/%m} - {window_end:%d/%m/%Y}")
    df = timeline_frame(view["rows"], window_start, lambda row, pe: f"{row['key']} · {pe.track + 1}")
    if df.empty:
        st.info("Nothing scheduled this week.")
    else:
        draw_timeline(df, sum(r["row_height"] for r in view["rows"]) + 80)
    st.dataframe(
        pd.DataFrame([{"Row": r["key"], "Tasks": r["task_count"], "Tracks": r["total_tracks"]} for r in view["rows"]]),
        use_container_width=True,
        hide_index=True,
    )

else:
    st.subheader(f"{view['member']}: {month:02d}/{year}")
    frames = [
        timeline_frame([row], row["week_start"], lambda r, pe, i=i: f"W{i + 1} · {pe.track + 1}")
        for i, row in enumerate(view["weeks"])
    ]
    non_empty = [f for f in frames if not f.empty]
    if not non_empty:
        st.info("Nothing scheduled this month.")
    else:
        draw_timeline(pd.concat(non_empty, ignore_index=True), sum(r["row_height"] for r in view["weeks"]))

st.divider()

# -------------------------------------------------------------------
# Plan form
# -------------------------------------------------------------------
tab_new, tab_edit, tab_review = st.tabs(["New entry", "Edit / delete", "Review"])


def _as_day(text):
    parsed = parse_timestamp(text)
    return parsed.date() if parsed else today


def plan_form(prefix, form, exclude_plan_id=None):
    """Form widgets; returns the filled form dict or None when there is nothing to plan."""
    opts = project_options(projects, plans, tags, selected_project_id=form.get("project_id"))
    if not opts:
        st.info("No tagged tasks waiting. Tag work on the Monthly Scope page first.")
        return None
    values = [o["value"] for o in opts]
    labels = {o["value"]: f"{o['label']} ({o['pending']} waiting)" for o in opts}
    idx = values.index(form["project_id"]) if form.get("project_id") in values else 0
    project_id = st.selectbox("Project", values, index=idx, format_func=labels.get, key=f"{prefix}_project")

    stages = ordered_stage_options(project_id, plans, projects, tags, exclude_plan_id)
    stage_ids = [s["stage_id"] for s in stages]
    current_stage = form.get("stage_index") or default_stage(project_id, plans, projects, tags)
    stage_id = st.selectbox(
        "Stage",
        stage_ids,
        index=stage_ids.index(current_stage) if current_stage in stage_ids else 0,
        format_func=lambda s: next(f"{o['title']} · {o['urgent']} tagged" for o in stages if o["stage_id"] == s),
        key=f"{prefix}_stage",
    )

    tasks = task_options(project_id, stage_id, plans, projects, tags,
                         current_task=form.get("task_type", ""), exclude_plan_id=exclude_plan_id,
                         current_project_id=form.get("project_id"), current_stage_id=form.get("stage_index"))
    if not tasks:
        st.warning("Every task of this stage is done or already scheduled.")
        return None
    task_names = [t["item"] for t in tasks]
    marks = {t["item"]: ("⭐ " if t["is_tagged"] else "") + t["item"] for t in tasks}
    task = st.selectbox(
        "Task",
        task_names,
        index=task_names.index(form["task_type"]) if form.get("task_type") in task_names else 0,
        format_func=marks.get,
        key=f"{prefix}_task",
    )

    member_names = [e.name for e in employees]
    assigned = st.selectbox(
        "Assigned to",
        member_names,
        index=member_names.index(form["assigned_to"]) if form.get("assigned_to") in member_names else 0,
        key=f"{prefix}_member",
    )
    col_s, col_e = st.columns(2)
    start = col_s.date_input("Start", value=_as_day(form.get("start_time")),
                             key=f"{prefix}_start")
    end = col_e.date_input("End", value=_as_day(form.get("end_time")),
                           key=f"{prefix}_end")
    detail = st.text_input("Details", value=form.get("detailed_task", ""), key=f"{prefix}_detail")
    statuses = [s.value for s in TaskStatus]
    status = st.selectbox("Status", statuses, index=statuses.index(form.get("status", TaskStatus.PLANNED.value)),
                          key=f"{prefix}_status")
    return {
        **form,
        "project_id": project_id,
        "stage_index": stage_id,
        "task_type": task,
        "assigned_to": assigned,
        "start_time": start.isoformat(),
        "end_time": end.isoformat(),
        "detailed_task": detail,
        "status": status,
    }


with tab_new:
    form = plan_form("new", {})
    if form is not None and st.button("Add entry", type="primary"):
        try:
            entry = build_plan_entry(form, projects)
        except ValueError as e:
            st.error(str(e))
        else:
            if app_state.commit("plans", plans + [entry], lambda: repo.create_plan(entry), success="Entry added."):
                persist_completion(entry)

with tab_edit:
    if not plans:
        st.info("No planning entries yet.")
    else:
        by_plan = {p.plan_id: p for p in plans}
        plan_id = st.selectbox(
            "Entry",
            list(by_plan),
            format_func=lambda i: f"{by_plan[i].project_code} · {by_plan[i].task_type} · {by_plan[i].assigned_to}",
        )
        current = by_plan[plan_id]
        form = plan_form(f"edit_{plan_id}", entry_form(current), exclude_plan_id=plan_id)
        col_u, col_d = st.columns(2)
        if form is not None and col_u.button("Update entry"):
            try:
                entry = build_plan_entry(form, projects, plan_id=plan_id)
            except ValueError as e:
                st.error(str(e))
            else:
                if app_state.commit("plans", app_state.replace_plan(plans, entry),
                                    lambda: repo.update_plan(entry), success="Entry updated."):
                    persist_completion(entry)
        if col_d.button("Delete entry"):
            app_state.commit(
                "plans",
                [p for p in plans if p.plan_id != plan_id],
                lambda: repo.delete_plan(plan_id),
                success="Entry deleted.",
            )

with tab_review:
    waiting = [p for p in plans if not p.has_review]
    if not waiting:
        st.info("Every entry has been reviewed.")
    else:
        by_plan = {p.plan_id: p for p in waiting}
        plan_id = st.selectbox(
            "Entry to review",
            list(by_plan),
            format_func=lambda i: f"{by_plan[i].assigned_to} · {by_plan[i].project_code} · {by_plan[i].task_type}",
        )
        score = st.slider("Score", min_value=1, max_value=5, value=4)
        comment = st.text_area("Comment", key="review_comment")
        if st.button("Submit review", type="primary"):
            reviewed = review_entry(by_plan[plan_id], score, comment)
            if app_state.commit(
                "plans",
                app_state.replace_plan(plans, reviewed),
                lambda: repo.review_plan(plan_id, score, comment),
                success="Review saved.",
            ):
                persist_completion(reviewed)
