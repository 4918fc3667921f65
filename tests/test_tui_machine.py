"""Transition tests for the terminal UI controller.

Everything runs against in-memory stores and a fake clock; no terminal.
"""
from __future__ import annotations

import pytest

from biz_db.tui.confirm import NO, YES
from biz_db.tui.keys import UNRECOGNIZED, Key, LogicalKey, iter_keys
from biz_db.tui.machine import MAIN_MENU, Effect, ViewStateMachine
from biz_db.tui.state import ConfirmAction, Entity, PendingReturn, View

UP = LogicalKey(Key.UP)
DOWN = LogicalKey(Key.DOWN)
LEFT = LogicalKey(Key.LEFT)
RIGHT = LogicalKey(Key.RIGHT)
ENTER = LogicalKey(Key.ENTER)
TAB = LogicalKey(Key.TAB)
ESC = LogicalKey(Key.ESCAPE)
BACKSPACE = LogicalKey(Key.BACKSPACE)
CTRL_C = LogicalKey(Key.CTRL_C)
CTRL_S = LogicalKey(Key.CTRL_S)
CTRL_D = LogicalKey(Key.CTRL_D)
CTRL_N = LogicalKey(Key.CTRL_N)


def press(machine: ViewStateMachine, *keys) -> Effect:
    """Feed keys (LogicalKey or text to type) and return the last effect."""
    effect = Effect.NONE
    for key in keys:
        if isinstance(key, str):
            for k in iter_keys(key):
                effect = machine.handle(k)
        else:
            effect = machine.handle(key)
    return effect


def open_customers(machine: ViewStateMachine) -> None:
    assert press(machine, ENTER) is Effect.REPAINT
    assert machine.state.view is View.CUSTOMER_LIST


# ---------------------------------------------------------------------------
# Main menu and global keys
# ---------------------------------------------------------------------------


def test_every_view_has_a_handler(machine):
    assert set(machine._handlers) == set(View)


def test_main_menu_cursor_is_clamped(machine):
    st = machine.state
    assert press(machine, UP) is Effect.NONE
    assert press(machine, DOWN, DOWN, DOWN) is Effect.REPAINT
    assert st.selected_index == len(MAIN_MENU) - 1
    assert press(machine, DOWN) is Effect.NONE
    assert st.selected_index == len(MAIN_MENU) - 1


def test_main_menu_exit_and_escape_terminate(machine):
    assert press(machine, ESC) is Effect.TERMINATE
    press(machine, DOWN, DOWN, DOWN)
    assert press(machine, ENTER) is Effect.TERMINATE


def test_ctrl_c_terminates_from_any_view(machine, customer_records):
    assert press(machine, CTRL_C) is Effect.TERMINATE
    open_customers(machine)
    assert press(machine, CTRL_C) is Effect.TERMINATE
    press(machine, ENTER)
    assert machine.state.view is View.CUSTOMER_FORM
    assert press(machine, CTRL_C) is Effect.TERMINATE


def test_unrecognized_keys_change_nothing(machine):
    open_customers(machine)
    before = (machine.state.view, machine.state.selected_index, machine.state.search_filter)
    assert press(machine, UNRECOGNIZED) is Effect.NONE
    assert (machine.state.view, machine.state.selected_index, machine.state.search_filter) == before


def test_products_menu_entry_loads_products(machine, stores):
    press(machine, DOWN, ENTER)
    assert machine.state.view is View.PRODUCT_LIST
    assert [r["id"] for r in machine.state.records] == ["p1"]
    assert stores[Entity.PRODUCT].calls == [("get_all",)]


# ---------------------------------------------------------------------------
# Lists and search
# ---------------------------------------------------------------------------


def test_list_navigation_is_clamped(machine):
    open_customers(machine)
    st = machine.state
    assert len(st.records) == 2
    assert press(machine, UP) is Effect.NONE
    assert press(machine, DOWN) is Effect.REPAINT
    assert st.selected_index == 1
    assert press(machine, DOWN) is Effect.NONE
    assert st.selected_index == 1


def test_typing_in_a_list_starts_a_live_search(machine):
    open_customers(machine)
    st = machine.state
    press(machine, DOWN)
    press(machine, "alan")

    assert st.is_searching
    assert st.input_buffer == "alan"
    assert st.search_filter == "alan"
    assert st.selected_index == 0
    assert [r["id"] for r in machine.filtered_records] == ["c2"]


def test_search_enter_keeps_filter_and_opens_match(machine):
    open_customers(machine)
    st = machine.state
    press(machine, "alan", ENTER)
    assert not st.is_searching
    assert st.search_filter == "alan"
    assert st.input_buffer == ""

    assert press(machine, ENTER) is Effect.REPAINT
    assert st.view is View.CUSTOMER_FORM
    assert st.editing_id == "c2"
    assert st.input_buffer == "Alan Turing"


def test_search_with_no_matches(machine):
    open_customers(machine)
    st = machine.state
    press(machine, "zzz999")
    assert machine.filtered_records == []

    press(machine, ENTER)
    assert st.search_filter == "zzz999"
    assert press(machine, DOWN) is Effect.NONE
    assert press(machine, ENTER) is Effect.NONE
    assert st.view is View.CUSTOMER_LIST


def test_search_backspace(machine):
    open_customers(machine)
    st = machine.state
    press(machine, "a")
    assert press(machine, BACKSPACE) is Effect.REPAINT
    assert st.is_searching
    assert st.search_filter == ""
    assert press(machine, BACKSPACE) is Effect.NONE


def test_escape_clears_search_then_leaves_list(machine):
    open_customers(machine)
    st = machine.state
    press(machine, "ada")
    assert press(machine, ESC) is Effect.REPAINT
    assert st.view is View.CUSTOMER_LIST
    assert not st.is_searching
    assert st.search_filter == ""

    assert press(machine, ESC) is Effect.REPAINT
    assert st.view is View.MAIN
    assert st.records == []


def test_list_load_failure_shows_empty_list(machine, stores):
    def boom():
        raise OSError("disk gone")

    stores[Entity.CUSTOMER].get_all = boom
    open_customers(machine)
    assert machine.state.records == []


# ---------------------------------------------------------------------------
# Forms and confirmation
# ---------------------------------------------------------------------------


def test_new_customer_flow(machine, stores, clock):
    open_customers(machine)
    st = machine.state

    assert press(machine, CTRL_N) is Effect.REPAINT
    assert st.view is View.CUSTOMER_FORM
    assert st.editing_id is None
    assert st.form_step == 0

    press(machine, "Ada", ENTER, ENTER, ENTER)
    assert st.form_step == 3
    assert st.form_data["CustomerName"] == "Ada"

    press(machine, CTRL_S)
    assert st.view is View.CONFIRM_ACTION
    assert st.confirm_message == "Create Ada?"
    assert st.confirm_index == YES

    press(machine, ENTER)
    assert st.view is View.MESSAGE
    assert st.message == "Customer created"
    assert not st.message_is_error
    created = stores[Entity.CUSTOMER].writes()[0]
    assert created[0] == "create"
    assert created[1]["CustomerName"] == "Ada"

    clock.advance(1.5)
    assert machine.tick() is Effect.NONE
    clock.advance(0.5)
    assert machine.tick() is Effect.REPAINT
    assert st.view is View.CUSTOMER_LIST
    assert len(st.records) == 3
    assert st.pending is None


def test_form_navigation_keys(machine):
    open_customers(machine)
    st = machine.state
    press(machine, ENTER)
    press(machine, TAB, DOWN)
    assert st.form_step == 2
    press(machine, UP)
    assert st.form_step == 1
    assert st.input_buffer == "555-0101"
    assert press(machine, BACKSPACE) is Effect.REPAINT
    assert st.input_buffer == "555-010"


def test_form_escape_discards_edits(machine, stores):
    open_customers(machine)
    st = machine.state
    press(machine, ENTER, "xyz", DOWN, "123")

    assert press(machine, ESC) is Effect.REPAINT
    assert st.view is View.CUSTOMER_LIST
    assert st.editing_id is None
    assert st.form_data == {}
    assert stores[Entity.CUSTOMER].writes() == []
    assert stores[Entity.CUSTOMER].records["c1"]["CustomerName"] == "Ada Lovelace"


def test_ctrl_d_is_ignored_for_new_records(machine):
    open_customers(machine)
    press(machine, CTRL_N)
    assert press(machine, CTRL_D) is Effect.NONE
    assert machine.state.view is View.CUSTOMER_FORM


def test_delete_defaults_to_no(machine, stores):
    open_customers(machine)
    st = machine.state
    press(machine, ENTER, CTRL_D)
    assert st.view is View.CONFIRM_ACTION
    assert st.confirm_action is ConfirmAction.DELETE
    assert st.confirm_message == "Delete Ada Lovelace?"
    assert st.confirm_index == NO

    press(machine, ENTER)
    assert st.view is View.CUSTOMER_FORM
    assert stores[Entity.CUSTOMER].writes() == []


def test_delete_confirmed(machine, stores, clock):
    open_customers(machine)
    st = machine.state
    press(machine, ENTER, CTRL_D)
    assert press(machine, LEFT) is Effect.NONE
    assert press(machine, RIGHT) is Effect.REPAINT
    press(machine, ENTER)

    assert st.message == "Customer deleted"
    assert stores[Entity.CUSTOMER].writes() == [("delete", "c1")]
    clock.advance(2.0)
    machine.tick()
    assert [r["id"] for r in st.records] == ["c2"]


def test_cancel_confirmation_restores_form(machine, stores):
    open_customers(machine)
    st = machine.state
    press(machine, ENTER, DOWN, "9", CTRL_S)
    assert st.view is View.CONFIRM_ACTION
    assert st.confirm_message == "Update Ada Lovelace?"

    press(machine, ESC)
    assert st.view is View.CUSTOMER_FORM
    assert st.form_step == 1
    assert st.input_buffer == "555-01019"
    assert stores[Entity.CUSTOMER].writes() == []


def test_update_is_written_on_confirm(machine, stores):
    open_customers(machine)
    press(machine, DOWN, ENTER, DOWN, BACKSPACE, "3", CTRL_S, ENTER)

    assert machine.state.message == "Customer updated"
    assert stores[Entity.CUSTOMER].records["c2"]["CustomerPhone"] == "555-0203"
    # Untouched values keep their stored types.
    assert stores[Entity.CUSTOMER].records["c2"]["CustomerDebt"] == 10.5


def test_failed_save_shows_error_and_returns_to_list(machine, stores, clock):
    stores[Entity.PRODUCT].fail_with = RuntimeError("UNIQUE constraint failed")
    press(machine, DOWN, ENTER, CTRL_N, "AB-100", CTRL_S, ENTER)
    st = machine.state

    assert st.view is View.MESSAGE
    assert st.message_is_error
    assert st.message == "Error: UNIQUE constraint failed"
    clock.advance(2.0)
    machine.tick()
    assert st.view is View.PRODUCT_LIST


# ---------------------------------------------------------------------------
# Transient screens and timers
# ---------------------------------------------------------------------------


def test_stats_screen_returns_to_main(machine, clock):
    st = machine.state
    press(machine, DOWN, DOWN, ENTER)
    assert st.view is View.STATS
    assert st.stats["customers"] == 2
    assert st.stats["payments"] is None
    assert machine.time_until_pending() == pytest.approx(3.0)

    clock.advance(1.0)
    assert machine.time_until_pending() == pytest.approx(2.0)
    clock.advance(2.0)
    assert machine.tick() is Effect.REPAINT
    assert st.view is View.MAIN
    assert machine.time_until_pending() is None


def test_stats_screen_keys(machine):
    press(machine, DOWN, DOWN, ENTER)
    assert press(machine, "x") is Effect.NONE
    assert machine.state.view is View.STATS
    assert press(machine, ENTER) is Effect.REPAINT
    assert machine.state.view is View.MAIN
    assert machine.state.pending is None


def test_leaving_stats_early_cancels_its_timer(machine, clock):
    press(machine, DOWN, DOWN, ENTER, ESC)
    open_customers(machine)

    clock.advance(10.0)
    assert machine.tick() is Effect.NONE
    assert machine.state.view is View.CUSTOMER_LIST


def test_message_enter_returns_immediately(machine, clock):
    open_customers(machine)
    press(machine, CTRL_N, "Bob", CTRL_S, ENTER)
    st = machine.state
    assert st.view is View.MESSAGE
    assert press(machine, "q") is Effect.NONE

    assert press(machine, ENTER) is Effect.REPAINT
    assert st.view is View.CUSTOMER_LIST
    assert len(st.records) == 3

    press(machine, ENTER)
    clock.advance(5.0)
    assert machine.tick() is Effect.NONE
    assert st.view is View.CUSTOMER_FORM


def test_stale_pending_return_is_dropped(machine, clock):
    open_customers(machine)
    machine.state.pending = PendingReturn(deadline=clock.now, target=View.MAIN, source=View.MESSAGE)
    assert machine.tick() is Effect.NONE
    assert machine.state.pending is None
    assert machine.state.view is View.CUSTOMER_LIST
