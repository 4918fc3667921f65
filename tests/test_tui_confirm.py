from __future__ import annotations

import sqlite3

import pytest

from biz_db.tui.confirm import NO, YES, ConfirmationGate
from biz_db.tui.forms import FormController
from biz_db.tui.state import ConfirmAction, Entity, SessionState, View


def _gate(stores, entity=Entity.CUSTOMER, record=None, step=0):
    st = SessionState()
    form = FormController(st)
    form.open(entity, record)
    while st.form_step < step:
        form.advance()
    return st, form, ConfirmationGate(st, stores)


def test_open_save_for_new_record(stores):
    st, form, gate = _gate(stores)
    for ch in "Ada":
        form.type_char(ch)
    form.commit_field()
    gate.open(ConfirmAction.SAVE)

    assert st.view is View.CONFIRM_ACTION
    assert st.previous_view is View.CUSTOMER_FORM
    assert st.confirm_action is ConfirmAction.SAVE
    assert st.confirm_message == "Create Ada?"
    assert st.confirm_index == YES


def test_open_save_for_existing_record(stores, customer_records):
    st, _, gate = _gate(stores, record=customer_records[0])
    gate.open(ConfirmAction.SAVE)
    assert st.confirm_message == "Update Ada Lovelace?"


def test_open_delete_defaults_to_no(stores, product_records):
    st, _, gate = _gate(stores, Entity.PRODUCT, product_records[0])
    gate.open(ConfirmAction.DELETE)
    assert st.confirm_message == "Delete AB-100?"
    assert st.confirm_index == NO


def test_open_without_a_name_uses_fallback(stores):
    st, _, gate = _gate(stores, Entity.PRODUCT)
    gate.open(ConfirmAction.SAVE)
    assert st.confirm_message == "Create this product?"


def test_choose_reports_changes():
    st = SessionState(confirm_index=NO)
    gate = ConfirmationGate(st, {})
    assert gate.choose(YES) is True
    assert gate.choose(YES) is False
    assert st.confirm_index == YES


def test_back_to_form_restores_step_and_buffer(stores, customer_records):
    st, _, gate = _gate(stores, record=customer_records[1], step=5)
    gate.open(ConfirmAction.SAVE)
    st.input_buffer = "garbage"
    gate.back_to_form()

    assert st.view is View.CUSTOMER_FORM
    assert st.form_step == 5
    assert st.input_buffer == "10.5"


def test_execute_create(stores):
    st, form, gate = _gate(stores)
    for ch in "Ada":
        form.type_char(ch)
    form.advance()
    gate.open(ConfirmAction.SAVE)

    assert gate.execute() == ("Customer created", False)
    store = stores[Entity.CUSTOMER]
    assert store.writes() == [("create", {"CustomerName": "Ada"})]


def test_execute_update_sends_form_fields(stores, customer_records):
    st, form, gate = _gate(stores, record=customer_records[0])
    form.advance()
    st.input_buffer = "555-9999"
    form.commit_field()
    gate.open(ConfirmAction.SAVE)

    assert gate.execute() == ("Customer updated", False)
    store = stores[Entity.CUSTOMER]
    kind, record_id, fields = store.writes()[0]
    assert (kind, record_id) == ("update", "c1")
    assert fields["CustomerPhone"] == "555-9999"
    assert "id" not in fields
    assert store.records["c1"]["CustomerPhone"] == "555-9999"


def test_execute_delete(stores, product_records):
    _, _, gate = _gate(stores, Entity.PRODUCT, product_records[0])
    gate.open(ConfirmAction.DELETE)
    assert gate.execute() == ("Product deleted", False)
    assert "p1" not in stores[Entity.PRODUCT].records


def test_execute_reports_missing_record(stores, customer_records):
    st, _, gate = _gate(stores, record=customer_records[0])
    del stores[Entity.CUSTOMER].records["c1"]
    gate.open(ConfirmAction.SAVE)
    assert gate.execute() == ("Error: customer c1 not found", True)

    gate.back_to_form()
    gate.open(ConfirmAction.DELETE)
    assert gate.execute() == ("Error: customer c1 not found", True)


def test_execute_turns_store_failures_into_messages(stores):
    stores[Entity.PRODUCT].fail_with = sqlite3.IntegrityError("UNIQUE constraint failed: products.ProductCode")
    st, form, gate = _gate(stores, Entity.PRODUCT)
    gate.open(ConfirmAction.SAVE)

    message, is_error = gate.execute()
    assert is_error is True
    assert message == "Error: UNIQUE constraint failed: products.ProductCode"


def test_back_to_form_requires_a_form():
    gate = ConfirmationGate(SessionState(view=View.CONFIRM_ACTION, previous_view=View.MAIN), {})
    with pytest.raises(RuntimeError):
        gate.back_to_form()


def test_delete_without_a_stored_record_is_an_error(stores):
    st, _, gate = _gate(stores)
    gate.open(ConfirmAction.DELETE)

    message, is_error = gate.execute()
    assert is_error is True
    assert message == "Error: only a stored record can be deleted"
    assert stores[Entity.CUSTOMER].writes() == []
