from studio_planner.engine.availability_engine import (
    default_stage,
    is_task_available,
    ordered_stage_options,
    parse_scope_key,
    project_options,
    project_urgent_count,
    scope_candidates,
    scope_key,
    stage_urgent_count,
    task_options,
    toggle_scope_tag,
)
from studio_planner.engine.stages import STAGE_TASK_MAPPING


# ----------------------------------------------------------------
# 1. SCOPE TAGS
# ----------------------------------------------------------------
def test_scope_key_roundtrip_with_separator_in_id():
    key = scope_key("LOCAL::abc", 2, 1)
    assert parse_scope_key(key) == ("LOCAL::abc", 2, 1)
    assert parse_scope_key("garbage") is None
    assert parse_scope_key("p1::x::1") is None


def test_toggle_scope_tag():
    tags = toggle_scope_tag(frozenset(), "p1::1::0")
    assert tags == {"p1::1::0"}
    assert toggle_scope_tag(tags, "p1::1::0") == frozenset()


def test_scope_candidates_skip_finished_and_other_years(make_project):
    done = make_project("done", stages={sid: [True] * len(items) for sid, items in STAGE_TASK_MAPPING.items()})
    open_ = make_project("open", client="Anh Minh")
    old = make_project("old", year="2024")
    assert [p.id for p in scope_candidates([done, open_, old], "2025")] == ["open"]
    assert scope_candidates([open_], "2025", "minh") == [open_]
    assert scope_candidates([open_], "2025", "zzz") == []


# ----------------------------------------------------------------
# 2. AVAILABILITY
# ----------------------------------------------------------------
def test_checked_or_scheduled_items_are_unavailable(make_project, make_entry):
    p = make_project(stages={1: [True, False, False, False]})
    plans = [make_entry(task=STAGE_TASK_MAPPING[1][1])]

    assert not is_task_available("p1", 1, 0, plans, [p])   # checked
    assert not is_task_available("p1", 1, 1, plans, [p])   # scheduled
    assert is_task_available("p1", 1, 2, plans, [p])
    # the entry being edited does not block its own task
    assert is_task_available("p1", 1, 1, plans, [p], exclude_plan_id="e1")


def test_unknown_references_are_unavailable(make_project):
    p = make_project()
    assert not is_task_available("missing", 1, 0, [], [p])
    assert not is_task_available("p1", 10, 0, [], [p])
    assert not is_task_available("p1", 1, 4, [], [p])
    assert not is_task_available("p1", 1, -1, [], [p])


def test_task_options_keep_current_task(make_project, make_entry):
    p = make_project(stages={1: [False] * 4})
    taken = STAGE_TASK_MAPPING[1][0]
    plans = [make_entry(task=taken)]
    tags = {scope_key("p1", 1, 2)}

    opts = task_options("p1", 1, plans, [p], tags)
    assert [o["index"] for o in opts] == [1, 2, 3]
    assert [o["is_tagged"] for o in opts] == [False, True, False]

    editing = task_options("p1", 1, plans, [p], tags, current_task=taken,
                           current_project_id="p1", current_stage_id=1)
    assert editing[0] == {"item": taken, "index": 0, "is_tagged": False, "is_current": True}

    assert task_options("missing", 1, plans, [p]) == []


def test_current_task_is_not_carried_to_another_project(make_project, make_entry):
    """
    Editing e1 (p1, stage 1, item 0) and switching the form to p2, where
    item 0 is already checked: the old task name is not offered there.
    """
    taken = STAGE_TASK_MAPPING[1][0]
    p1 = make_project("p1", stages={1: [False] * 4})
    p2 = make_project("p2", code="TP2025-002", stages={1: [True, False, False, False]})
    plans = [make_entry("e1", project_id="p1", task=taken)]

    moved = task_options("p2", 1, plans, [p1, p2], current_task=taken, exclude_plan_id="e1",
                         current_project_id="p1", current_stage_id=1)
    assert taken not in [o["item"] for o in moved]
    assert [o["index"] for o in moved] == [1, 2, 3]
    assert not any(o["is_current"] for o in moved)

    # same project, other stage: no exemption either
    other_stage = task_options("p1", 2, plans, [p1, p2], current_task=taken, exclude_plan_id="e1",
                               current_project_id="p1", current_stage_id=1)
    assert not any(o["is_current"] for o in other_stage)

    # back on its own project and stage the task is kept and marked current
    own = task_options("p1", 1, plans, [p1, p2], current_task=taken, exclude_plan_id="e1",
                       current_project_id="p1", current_stage_id=1)
    assert own[0]["item"] == taken and own[0]["is_current"]


# ----------------------------------------------------------------
# 3. URGENCY
# ----------------------------------------------------------------
def test_urgent_counts_and_stage_order(make_project, make_entry):
    p = make_project(stages={1: [False] * 4, 3: [False, False]})
    tags = {scope_key("p1", 3, 0), scope_key("p1", 3, 1), scope_key("p1", 1, 0), scope_key("p1", 2, 0)}
    plans = [make_entry(stage=1, task=STAGE_TASK_MAPPING[1][0])]

    assert stage_urgent_count("p1", 1, plans, [p], tags) == 0   # tagged but scheduled
    assert stage_urgent_count("p1", 2, plans, [p], tags) == 0   # no stage data
    assert stage_urgent_count("p1", 3, plans, [p], tags) == 2
    assert project_urgent_count(p, plans, [p], tags) == 2

    order = ordered_stage_options("p1", plans, [p], tags)
    assert order[0]["stage_id"] == 3 and order[0]["urgent"] == 2
    assert [o["stage_id"] for o in order[1:]] == [1, 2, 4, 5, 6, 7, 8, 9]

    assert default_stage("p1", plans, [p], tags) == 3
    assert default_stage("p1", plans, [p], set()) == 1


def test_project_options_show_pending_or_selected(make_project):
    a = make_project("a", code="TP2025-001", stages={1: [False] * 4}, client="Chị Lan")
    b = make_project("b", code="TP2025-002", stages={1: [False] * 4})
    tags = {scope_key("a", 1, 0)}

    opts = project_options([a, b], [], tags)
    assert [o["value"] for o in opts] == ["a"]
    assert opts[0]["label"] == "[TP2025-001] Chị Lan"
    assert opts[0]["pending"] == 1

    assert [o["value"] for o in project_options([a, b], [], tags, selected_project_id="b")] == ["a", "b"]


def test_dangling_entries_do_not_break_checks(make_project, make_entry):
    """Plans whose project was deleted are ignored everywhere."""
    p = make_project()
    ghost = make_entry("g1", project_id="deleted")
    assert is_task_available("p1", 1, 0, [ghost], [p])
    assert project_urgent_count(p, [ghost], [p], {scope_key("deleted", 1, 0)}) == 0
