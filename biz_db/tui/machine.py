"""View state machine: one transition per (view, key) pair.

The machine never touches the terminal. `handle()` mutates the session
state and returns a single Effect telling the event loop whether to
repaint or to end the session; store calls happen synchronously inside the
transitions that commit.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Protocol

from ..repositories import EntityStore
from .confirm import NO, YES, ConfirmationGate
from .filtering import clamp_index, filter_records
from .forms import FormController
from .keys import Key, LogicalKey
from .state import ConfirmAction, Entity, PendingReturn, SessionState, View

logger = logging.getLogger(__name__)


class Effect(Enum):
    NONE = "none"
    REPAINT = "repaint"
    TERMINATE = "terminate"


class StatsSource(Protocol):
    def table_counts(self) -> dict[str, int | None]: ...


MAIN_MENU = ("Customers", "Products", "Statistics", "Exit")
MENU_CUSTOMERS, MENU_PRODUCTS, MENU_STATS, MENU_EXIT = range(len(MAIN_MENU))


def _repaint_if(changed: bool) -> Effect:
    return Effect.REPAINT if changed else Effect.NONE


class ViewStateMachine:
    def __init__(
        self,
        stores: Mapping[Entity, EntityStore],
        stats: StatsSource,
        *,
        message_delay: float = 2.0,
        stats_delay: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        state: SessionState | None = None,
    ):
        self.state = state or SessionState()
        self.stores = stores
        self.stats_source = stats
        self.message_delay = message_delay
        self.stats_delay = stats_delay
        self.clock = clock
        self.form = FormController(self.state)
        self.gate = ConfirmationGate(self.state, stores)

        self._handlers: dict[View, Callable[[LogicalKey], Effect]] = {
            View.MAIN: self._on_main,
            View.CUSTOMER_LIST: self._on_list,
            View.PRODUCT_LIST: self._on_list,
            View.CUSTOMER_FORM: self._on_form,
            View.PRODUCT_FORM: self._on_form,
            View.CONFIRM_ACTION: self._on_confirm,
            View.MESSAGE: self._on_message,
            View.STATS: self._on_stats,
        }
        missing = set(View) - set(self._handlers)
        if missing:
            raise RuntimeError(f"no key handler for views: {sorted(v.value for v in missing)}")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def entity(self) -> Entity | None:
        return self.state.view.entity

    @property
    def filtered_records(self) -> list[dict[str, Any]]:
        entity = self.entity
        if entity is None or not self.state.view.is_list:
            return []
        return filter_records(self.state.records, self.state.search_filter, entity)

    def _require_entity(self) -> Entity:
        entity = self.entity
        if entity is None:
            raise RuntimeError(f"view {self.state.view.value} has no entity")
        return entity

    def time_until_pending(self) -> float | None:
        """Seconds until the scheduled auto-return fires, or None."""
        pending = self.state.pending
        if pending is None:
            return None
        return pending.remaining(self.clock())

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def handle(self, key: LogicalKey) -> Effect:
        """Apply one decoded key to the session."""
        if key.key is Key.UNRECOGNIZED:
            return Effect.NONE
        if key.key is Key.CTRL_C:
            return Effect.TERMINATE

        effect = self._handlers[self.state.view](key)
        self._drop_stale_pending()
        return effect

    def tick(self) -> Effect:
        """Fire the scheduled auto-return if it is due."""
        self._drop_stale_pending()
        pending = self.state.pending
        if pending is None or not pending.is_due(self.clock()):
            return Effect.NONE
        self.state.cancel_pending()
        self._return_to(pending.target)
        return Effect.REPAINT

    def _drop_stale_pending(self) -> None:
        pending = self.state.pending
        if pending is not None and self.state.view is not pending.source:
            logger.debug("cancelled auto-return from %s", pending.source.value)
            self.state.cancel_pending()

    # ------------------------------------------------------------------
    # Transitions shared by several views
    # ------------------------------------------------------------------

    def enter_main(self) -> None:
        st = self.state
        st.view = View.MAIN
        st.reset_list_session()
        st.records = []

    def enter_list(self, entity: Entity) -> None:
        st = self.state
        st.view = View.list_for(entity)
        st.reset_list_session()
        st.records = self._load_records(entity)

    def _load_records(self, entity: Entity) -> list[dict[str, Any]]:
        try:
            return list(self.stores[entity].get_all())
        except Exception:
            logger.exception("loading %s records failed", entity.value)
            return []

    def _return_to(self, target: View) -> None:
        entity = target.entity
        if target.is_list and entity is not None:
            self.enter_list(entity)
        else:
            self.enter_main()

    def _schedule_return(self, delay: float, target: View) -> None:
        self.state.pending = PendingReturn(
            deadline=self.clock() + delay,
            target=target,
            source=self.state.view,
        )

    def _move_cursor(self, index: int) -> Effect:
        if index == self.state.selected_index:
            return Effect.NONE
        self.state.selected_index = index
        return Effect.REPAINT

    def _leave_form_for(self, action: ConfirmAction) -> None:
        self.form.commit_field()
        self.gate.open(action)

    def show_message(self, message: str, is_error: bool, return_to: View) -> None:
        st = self.state
        st.view = View.MESSAGE
        st.message = message
        st.message_is_error = is_error
        self._schedule_return(self.message_delay, return_to)

    def show_stats(self) -> None:
        st = self.state
        try:
            counts = self.stats_source.table_counts()
        except Exception:
            logger.exception("reading table counts failed")
            counts = {}
        st.view = View.STATS
        st.stats = counts
        self._schedule_return(self.stats_delay, View.MAIN)

    # ------------------------------------------------------------------
    # Per-view key handlers
    # ------------------------------------------------------------------

    def _on_main(self, key: LogicalKey) -> Effect:
        st = self.state
        k = key.key
        if k is Key.ESCAPE:
            return Effect.TERMINATE
        if k is Key.UP:
            return self._move_cursor(max(0, st.selected_index - 1))
        if k is Key.DOWN:
            return self._move_cursor(min(len(MAIN_MENU) - 1, st.selected_index + 1))
        if k is Key.ENTER:
            choice = st.selected_index
            if choice == MENU_CUSTOMERS:
                self.enter_list(Entity.CUSTOMER)
            elif choice == MENU_PRODUCTS:
                self.enter_list(Entity.PRODUCT)
            elif choice == MENU_STATS:
                self.show_stats()
            else:
                return Effect.TERMINATE
            return Effect.REPAINT
        return Effect.NONE

    def _on_list(self, key: LogicalKey) -> Effect:
        st = self.state
        entity = self._require_entity()
        k = key.key

        if k is Key.CTRL_N:
            self.form.open(entity)
            return Effect.REPAINT

        if k is Key.ESCAPE:
            if st.is_searching:
                st.is_searching = False
                st.input_buffer = ""
                st.search_filter = ""
                st.selected_index = 0
            else:
                self.enter_main()
            return Effect.REPAINT

        if st.is_searching:
            return self._on_search_key(key)

        filtered = self.filtered_records
        if k in (Key.UP, Key.DOWN):
            if not filtered:
                return Effect.NONE
            step = -1 if k is Key.UP else 1
            return self._move_cursor(clamp_index(st.selected_index + step, len(filtered)))
        if k is Key.ENTER:
            if not filtered:
                return Effect.NONE
            record = filtered[clamp_index(st.selected_index, len(filtered))]
            self.form.open(entity, record)
            return Effect.REPAINT
        if key.is_printable:
            st.is_searching = True
            st.input_buffer = key.char
            st.search_filter = key.char
            st.selected_index = 0
            return Effect.REPAINT
        return Effect.NONE

    def _on_search_key(self, key: LogicalKey) -> Effect:
        st = self.state
        k = key.key
        if k is Key.ENTER:
            st.search_filter = st.input_buffer
            st.is_searching = False
            st.input_buffer = ""
            st.selected_index = 0
            return Effect.REPAINT
        if k is Key.BACKSPACE:
            if not st.input_buffer:
                return Effect.NONE
            st.input_buffer = st.input_buffer[:-1]
        elif key.is_printable:
            st.input_buffer += key.char
        else:
            return Effect.NONE
        # Live filter: the committed filter follows the buffer on every edit.
        st.search_filter = st.input_buffer
        st.selected_index = 0
        return Effect.REPAINT

    def _on_form(self, key: LogicalKey) -> Effect:
        st = self.state
        entity = self._require_entity()
        k = key.key

        if k is Key.CTRL_S:
            self._leave_form_for(ConfirmAction.SAVE)
            return Effect.REPAINT
        if k is Key.CTRL_D:
            if not st.editing_id:
                return Effect.NONE
            self._leave_form_for(ConfirmAction.DELETE)
            return Effect.REPAINT
        if k is Key.ESCAPE:
            # Discard the in-progress edits; nothing is written to the store.
            self.enter_list(entity)
            return Effect.REPAINT
        if k is Key.UP:
            self.form.retreat()
            return Effect.REPAINT
        if k in (Key.DOWN, Key.TAB, Key.ENTER):
            self.form.advance()
            return Effect.REPAINT
        if k is Key.BACKSPACE:
            return _repaint_if(self.form.backspace())
        if key.is_printable:
            self.form.type_char(key.char)
            return Effect.REPAINT
        return Effect.NONE

    def _on_confirm(self, key: LogicalKey) -> Effect:
        st = self.state
        k = key.key
        if k is Key.ESCAPE:
            self.gate.back_to_form()
            return Effect.REPAINT
        if k is Key.LEFT:
            return _repaint_if(self.gate.choose(NO))
        if k is Key.RIGHT:
            return _repaint_if(self.gate.choose(YES))
        if k is Key.ENTER:
            if st.confirm_index != YES:
                self.gate.back_to_form()
                return Effect.REPAINT
            entity = self.form.entity
            message, is_error = self.gate.execute()
            self.show_message(message, is_error, View.list_for(entity))
            return Effect.REPAINT
        return Effect.NONE

    def _on_message(self, key: LogicalKey) -> Effect:
        pending = self.state.pending
        if key.key in (Key.ENTER, Key.ESCAPE):
            target = pending.target if pending is not None else View.MAIN
            self.state.cancel_pending()
            self._return_to(target)
            return Effect.REPAINT
        return Effect.NONE

    def _on_stats(self, key: LogicalKey) -> Effect:
        if key.key in (Key.ENTER, Key.ESCAPE):
            self.state.cancel_pending()
            self.enter_main()
            return Effect.REPAINT
        return Effect.NONE
