# studio_planner/pages/05_KPI_Center.py

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
from datetime import date

import pandas as pd
import plotly.express as px
import streamlit as st

from studio_planner import app_state
from studio_planner.config import check_admin_password
from studio_planner.engine.kpi_engine import (
    attitude_leaderboard,
    entries_for_month,
    kpi_leaderboard,
    monthly_kpi_summary,
    plans_frame,
)
from studio_planner.engine.models import ATTITUDE_FIELDS
from studio_planner.engine.stages import STAGES
from studio_planner.engine.team import (
    DEFAULT_ROLE,
    EMPLOYEE_ROLES,
    NEW_EMPLOYEE_TARGET,
    clamp_attitude,
    new_employee,
    remove_employee,
    save_employee,
    set_attitude,
)
from studio_planner.engine.weights import (
    default_weight_config,
    set_stage_weight,
    set_task_weight,
    stage_weight_total,
    task_weight_total,
    weight_warnings,
)

st.set_page_config(page_title="KPI Center", layout="wide")

st.title("🏆 KPI Center")
st.caption("Points earned from completed planning entries, weighted by stage and task.")

app_state.init_state()
app_state.stop_on_load_error()

projects = app_state.projects()
plans = app_state.plans()
store = app_state.settings_store()
employees = st.session_state["employees"]
weights = st.session_state["kpi_weights"]

# -------------------------------------------------------------------
# Sidebar filters
# -------------------------------------------------------------------
st.sidebar.header("Period")
today = date.today()
year = int(st.sidebar.number_input("Year", min_value=2000, max_value=2100, value=today.year, step=1))
month = int(st.sidebar.selectbox("Month", list(range(1, 13)), index=today.month - 1))

summary = monthly_kpi_summary(employees, month, year, plans, projects, weights)

# -------------------------------------------------------------------
# KPI strip
# -------------------------------------------------------------------
c1, c2, c3, c4 = st.columns(4)
c1.metric("Points earned", f"{summary['Earned'].sum():,.1f}" if not summary.empty else "0")
c2.metric("Completed tasks", int(summary["Tasks"].sum()) if not summary.empty else 0)
c3.metric("Avg efficiency", f"{summary['EfficiencyPct'].mean():.1f}%" if not summary.empty else "0%")
c4.metric("Avg attitude", f"{summary['Attitude'].mean():.2f}" if not summary.empty else "-")

st.divider()

tab1, tab2, tab3, tab4 = st.tabs(["Team KPI", "Leaderboards", "Weights", "Team"])

# -------------------------------------------------------------------
# TAB 1: Team KPI
# -------------------------------------------------------------------
with tab1:
    if summary.empty:
        st.info("No team members yet.")
    else:
        fig = px.bar(
            summary,
            x="Employee",
            y=["Earned", "Target"],
            barmode="group",
            labels={"value": "Points", "variable": ""},
        )
        fig.update_layout(margin=dict(l=20, r=20, t=40, b=20))
        st.plotly_chart(fig, use_container_width=True)

        st.dataframe(
            summary.style.format(
                {"Earned": "{:,.1f}", "Target": "{:,.0f}", "ProgressPct": "{:.1f}%",
                 "EfficiencyPct": "{:.1f}%", "Attitude": "{:.2f}"}
            ),
            use_container_width=True,
            hide_index=True,
        )

        member = st.selectbox("Entries of", summary["Employee"].tolist())
        month_plans = entries_for_month(plans, member, month, year)
        detail = plans_frame(month_plans, projects, weights)
        if detail.empty:
            st.info(f"No entries for {member} ending in {month:02d}/{year}.")
        else:
            st.dataframe(detail, use_container_width=True, hide_index=True)

        st.download_button(
            "Download KPI summary (CSV)",
            summary.to_csv(index=False).encode("utf-8"),
            file_name=f"kpi_{year}_{month:02d}.csv",
            mime="text/csv",
        )

# -------------------------------------------------------------------
# TAB 2: Leaderboards
# -------------------------------------------------------------------
with tab2:
    col_a, col_b = st.columns(2)
    with col_a:
        st.subheader("KPI points")
        board = kpi_leaderboard(summary)
        if board.empty:
            st.info("Nothing earned yet this month.")
        else:
            fig_k = px.bar(board, x="Score", y="Employee", orientation="h", color="Role")
            fig_k.update_layout(margin=dict(l=20, r=20, t=40, b=20), yaxis=dict(autorange="reversed"))
            st.plotly_chart(fig_k, use_container_width=True)
            st.dataframe(board, use_container_width=True, hide_index=True)
    with col_b:
        st.subheader("Attitude")
        att = attitude_leaderboard(employees)
        if att.empty:
            st.info("No team members yet.")
        else:
            st.dataframe(att, use_container_width=True, hide_index=True)

# -------------------------------------------------------------------
# TAB 3: Weights (admin)
# -------------------------------------------------------------------
with tab3:
    for message in weight_warnings(weights):
        st.warning(message)

    password = st.text_input("Admin password", type="password", key="weights_password")
    unlocked = check_admin_password(app_state.settings().admin_key, password)
    if not unlocked:
        st.info("Enter the admin password to edit weights.")

    st.metric("Stage weight total", f"{stage_weight_total(weights):g}%")
    edited = weights
    for stage in STAGES:
        with st.expander(f"{stage.title} · tasks total {task_weight_total(weights, stage.id):g}%"):
            value = st.number_input(
                "Stage weight (%)",
                value=float(weights.stage_weight(stage.id)),
                step=0.5,
                disabled=not unlocked,
                key=f"sw_{stage.id}",
            )
            if value != weights.stage_weight(stage.id):
                edited = set_stage_weight(edited, stage.id, value)
            for item in stage.items:
                tv = st.number_input(
                    item,
                    value=float(weights.task_weight(stage.id, item)),
                    step=0.1,
                    disabled=not unlocked,
                    key=f"tw_{stage.id}_{item}",
                )
                if tv != weights.task_weight(stage.id, item):
                    edited = set_task_weight(edited, stage.id, item, tv)

    col_s, col_r = st.columns(2)
    if col_s.button("Save weights", disabled=not unlocked):
        app_state.commit("kpi_weights", edited, lambda: store.save_kpi_weights(edited), success="Weights saved.")
    if col_r.button("Restore defaults", disabled=not unlocked):
        defaults = default_weight_config()
        if app_state.commit("kpi_weights", defaults, lambda: store.save_kpi_weights(defaults)):
            for widget_key in [k for k in st.session_state.keys() if str(k).startswith(("sw_", "tw_"))]:
                del st.session_state[widget_key]
            st.rerun()

# -------------------------------------------------------------------
# TAB 4: Team management
# -------------------------------------------------------------------
with tab4:
    st.subheader("Add member")
    col_n, col_r, col_t = st.columns(3)
    name = col_n.text_input("Name", key="emp_name")
    role = col_r.selectbox("Role", EMPLOYEE_ROLES, index=EMPLOYEE_ROLES.index(DEFAULT_ROLE), key="emp_role")
    target = col_t.number_input("Monthly target", value=NEW_EMPLOYEE_TARGET, step=100.0, key="emp_target")
    if st.button("Add member"):
        try:
            member = new_employee(name, role, target)
        except ValueError as e:
            st.error(str(e))
        else:
            team = save_employee(employees, member)
            app_state.commit("employees", team, lambda: store.save_employees(team), success=f"Added {member.name}.")

    st.subheader("Edit member")
    if employees:
        by_id = {e.id: e for e in employees}
        emp_id = st.selectbox("Member", list(by_id), format_func=lambda i: f"{by_id[i].name} ({by_id[i].role})")
        emp = by_id[emp_id]
        role_idx = EMPLOYEE_ROLES.index(emp.role) if emp.role in EMPLOYEE_ROLES else 0
        new_role = st.selectbox("Role", EMPLOYEE_ROLES, index=role_idx, key=f"role_{emp_id}")
        new_target = st.number_input("Monthly target", value=float(emp.target_kpi), step=100.0, key=f"target_{emp_id}")

        updated = emp
        cols = st.columns(len(ATTITUDE_FIELDS))
        for col, field_name in zip(cols, ATTITUDE_FIELDS):
            score = col.slider(
                field_name.replace("_", " ").title(),
                min_value=1.0,
                max_value=10.0,
                value=clamp_attitude(getattr(emp.attitude, field_name)),
                step=0.5,
                key=f"att_{emp_id}_{field_name}",
            )
            updated = set_attitude(updated, field_name, score)

        col_u, col_d = st.columns(2)
        if col_u.button("Save member"):
            updated = replace(updated, role=new_role, target_kpi=float(new_target))
            team = save_employee(employees, updated)
            app_state.commit("employees", team, lambda: store.save_employees(team), success="Member saved.")
        if col_d.button("Remove member"):
            team = remove_employee(employees, emp_id)
            app_state.commit("employees", team, lambda: store.save_employees(team), success=f"Removed {emp.name}.")

    roster = pd.DataFrame(
        [{"Name": e.name, "Role": e.role, "Target": e.target_kpi, **e.attitude.to_dict()} for e in employees]
    )
    st.dataframe(roster, use_container_width=True, hide_index=True)
