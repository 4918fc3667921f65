"""Multi-step record form: edit buffer, step cursor, commit-on-navigate."""
from __future__ import annotations

import math
from typing import Any

from .state import Entity, FormStep, SessionState, View, form_steps


def parse_number(text: str) -> int | float:
    """Parse a decimal number; empty or invalid input becomes 0."""
    s = (text or "").strip()
    if not s:
        return 0
    try:
        return int(s)
    except ValueError:
        pass
    try:
        value = float(s)
    except ValueError:
        return 0
    if not math.isfinite(value):
        return 0
    return value


def format_value(value: Any) -> str:
    """Stringify a stored value for the edit buffer.

    Missing, empty and zero values give an empty buffer; integral floats
    drop their fractional part.
    """
    if value is None or value == "" or value == 0:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class FormController:
    """Operates on the form fields of a SessionState.

    The live input buffer is the source of truth for the current step until
    the next commit; every step change goes through `_move`, which commits
    first.
    """

    def __init__(self, state: SessionState):
        self.state = state

    @property
    def entity(self) -> Entity:
        view = self.state.view if self.state.view.is_form else self.state.previous_view
        entity = view.entity if view is not None and view.is_form else None
        if entity is None:
            raise RuntimeError(f"no active form in view {self.state.view.value}")
        return entity

    @property
    def steps(self) -> tuple[FormStep, ...]:
        return form_steps(self.entity)

    @property
    def current_step(self) -> FormStep:
        return self.steps[self.state.form_step]

    @property
    def title(self) -> str:
        verb = "Edit" if self.state.editing_id else "New"
        return f"{verb} {self.entity.value}"

    def open(self, entity: Entity, record: dict[str, Any] | None = None) -> None:
        """Enter the form for `entity`, editing `record` or creating a new one."""
        st = self.state
        st.view = View.form_for(entity)
        st.form_step = 0
        if record is None:
            st.form_data = {}
            st.editing_id = None
        else:
            st.form_data = dict(record)
            st.editing_id = record.get("id")
        self.reseed()

    def reseed(self) -> None:
        """Load the input buffer from the committed value of the current step."""
        st = self.state
        st.input_buffer = format_value(st.form_data.get(self.current_step.field))

    def commit_field(self) -> None:
        """Coerce the input buffer into form_data for the current step."""
        st = self.state
        step = self.current_step
        # An untouched buffer keeps the stored value as-is (e.g. None, 42.0).
        if step.field in st.form_data and st.input_buffer == format_value(st.form_data[step.field]):
            return
        if step.is_number:
            st.form_data[step.field] = parse_number(st.input_buffer)
        else:
            st.form_data[step.field] = st.input_buffer or ""

    def _move(self, delta: int) -> None:
        self.commit_field()
        st = self.state
        st.form_step = max(0, min(st.form_step + delta, len(self.steps) - 1))
        self.reseed()

    def advance(self) -> None:
        self._move(+1)

    def retreat(self) -> None:
        self._move(-1)

    def type_char(self, ch: str) -> None:
        self.state.input_buffer += ch

    def backspace(self) -> bool:
        """Drop the last buffered character; False when the buffer was empty."""
        if not self.state.input_buffer:
            return False
        self.state.input_buffer = self.state.input_buffer[:-1]
        return True

    def record_name(self) -> str:
        field = self.steps[0].field
        name = self.state.form_data.get(field)
        if name:
            return str(name)
        return f"this {self.entity.value}"

    def payload(self) -> dict[str, Any]:
        """The committed values for this form's fields."""
        return {s.field: self.state.form_data[s.field] for s in self.steps if s.field in self.state.form_data}
