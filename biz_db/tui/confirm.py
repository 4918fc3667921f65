"""Yes/no modal that gates saving and deleting a record."""
from __future__ import annotations

import logging
from collections.abc import Mapping

from ..repositories import EntityStore, RecordNotFound
from .forms import FormController
from .state import ConfirmAction, Entity, SessionState, View

logger = logging.getLogger(__name__)

NO = 0
YES = 1

# Deletes default to "no" so a stray Enter never destroys a record.
DEFAULT_CHOICE = {ConfirmAction.SAVE: YES, ConfirmAction.DELETE: NO}


class ConfirmationGate:
    def __init__(self, state: SessionState, stores: Mapping[Entity, EntityStore]):
        self.state = state
        self.stores = stores
        self.form = FormController(state)

    def open(self, action: ConfirmAction) -> None:
        """Leave the active form for the confirmation modal."""
        st = self.state
        name = self.form.record_name()
        if action is ConfirmAction.DELETE:
            message = f"Delete {name}?"
        elif st.editing_id:
            message = f"Update {name}?"
        else:
            message = f"Create {name}?"
        st.previous_view = st.view
        st.view = View.CONFIRM_ACTION
        st.confirm_action = action
        st.confirm_message = message
        st.confirm_index = DEFAULT_CHOICE[action]

    def choose(self, index: int) -> bool:
        """Set the highlighted option; False if it was already selected."""
        if self.state.confirm_index == index:
            return False
        self.state.confirm_index = index
        return True

    def back_to_form(self) -> None:
        """Return to the originating form at the same step."""
        st = self.state
        if st.previous_view is None or not st.previous_view.is_form:
            raise RuntimeError("confirmation was not opened from a form")
        st.view = st.previous_view
        self.form.reseed()

    def execute(self) -> tuple[str, bool]:
        """Run the pending action against the store.

        Returns (message, is_error). Store failures never escape: they are
        logged and turned into a failure message for the user.
        """
        st = self.state
        entity = self.form.entity
        store = self.stores[entity]
        label = entity.label
        try:
            if st.confirm_action is ConfirmAction.DELETE:
                record_id = st.editing_id
                if record_id is None:
                    raise RuntimeError("only a stored record can be deleted")
                if not store.delete(record_id):
                    raise RecordNotFound(entity.value, record_id)
                logger.info("%s deleted (id=%s)", label, record_id)
                return f"{label} deleted", False

            payload = self.form.payload()
            if st.editing_id:
                updated = store.update(st.editing_id, payload)
                if updated is None:
                    raise RecordNotFound(entity.value, st.editing_id)
                logger.info("%s updated (id=%s)", label, st.editing_id)
                return f"{label} updated", False

            created = store.create(payload)
            logger.info("%s created (id=%s)", label, created.get("id"))
            return f"{label} created", False
        except Exception as e:
            logger.exception("%s %s failed", label, st.confirm_action.value)
            return f"Error: {e}", True
