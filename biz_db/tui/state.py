"""Session state for the terminal UI.

Pure dataclasses and enums, no terminal or rich imports, so every transition
can be constructed and tested without a TTY.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Entity(Enum):
    CUSTOMER = "customer"
    PRODUCT = "product"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class ConfirmAction(Enum):
    SAVE = "save"
    DELETE = "delete"


class View(Enum):
    """The mutually exclusive screen the controller is showing."""

    MAIN = "main"
    CUSTOMER_LIST = "customer-list"
    PRODUCT_LIST = "product-list"
    CUSTOMER_FORM = "customer-form"
    PRODUCT_FORM = "product-form"
    CONFIRM_ACTION = "confirm-action"
    # Transient screens that return on their own after a delay.
    MESSAGE = "message"
    STATS = "stats"

    @property
    def is_list(self) -> bool:
        return self in (View.CUSTOMER_LIST, View.PRODUCT_LIST)

    @property
    def is_form(self) -> bool:
        return self in (View.CUSTOMER_FORM, View.PRODUCT_FORM)

    @property
    def entity(self) -> Entity | None:
        return _VIEW_ENTITY.get(self)

    @staticmethod
    def list_for(entity: Entity) -> View:
        return View.CUSTOMER_LIST if entity is Entity.CUSTOMER else View.PRODUCT_LIST

    @staticmethod
    def form_for(entity: Entity) -> View:
        return View.CUSTOMER_FORM if entity is Entity.CUSTOMER else View.PRODUCT_FORM


_VIEW_ENTITY = {
    View.CUSTOMER_LIST: Entity.CUSTOMER,
    View.CUSTOMER_FORM: Entity.CUSTOMER,
    View.PRODUCT_LIST: Entity.PRODUCT,
    View.PRODUCT_FORM: Entity.PRODUCT,
}


@dataclass(frozen=True)
class FormStep:
    field: str
    label: str
    required: bool = False
    kind: str = "text"  # "text" | "number"

    @property
    def is_number(self) -> bool:
        return self.kind == "number"


CUSTOMER_FORM_STEPS: tuple[FormStep, ...] = (
    FormStep("CustomerName", "Customer name", required=True),
    FormStep("CustomerPhone", "Phone"),
    FormStep("CustomerAddress", "Address"),
    FormStep("CustomerTCKN", "National ID"),
    FormStep("CustomerVD", "Tax office"),
    FormStep("CustomerDebt", "Debt", kind="number"),
    FormStep("CustomerBalance", "Balance", kind="number"),
)

PRODUCT_FORM_STEPS: tuple[FormStep, ...] = (
    FormStep("ProductCode", "Product code", required=True),
    FormStep("Details", "Details"),
    FormStep("Barcode", "Barcode"),
    FormStep("Price", "Price", required=True, kind="number"),
    FormStep("Category", "Category"),
    FormStep("ActualInventory", "Stock on hand", kind="number"),
    FormStep("ReservedInventory", "Reserved stock", kind="number"),
    FormStep("AwaitingInventory", "Awaited stock", kind="number"),
)


def form_steps(entity: Entity) -> tuple[FormStep, ...]:
    return CUSTOMER_FORM_STEPS if entity is Entity.CUSTOMER else PRODUCT_FORM_STEPS


@dataclass
class PendingReturn:
    """A scheduled auto-return from a transient screen.

    Only valid while the session is still on `source`; leaving that screen
    cancels it.
    """

    deadline: float
    target: View
    source: View

    def is_due(self, now: float) -> bool:
        return now >= self.deadline

    def remaining(self, now: float) -> float:
        return max(0.0, self.deadline - now)


@dataclass
class SessionState:
    """The single mutable aggregate the controller owns for a session."""

    view: View = View.MAIN
    selected_index: int = 0

    # List views
    search_filter: str = ""
    is_searching: bool = False
    records: list[dict[str, Any]] = field(default_factory=list)

    # Forms
    form_data: dict[str, Any] = field(default_factory=dict)
    form_step: int = 0
    editing_id: str | None = None
    input_buffer: str = ""

    # Confirmation modal
    confirm_index: int = 0
    confirm_action: ConfirmAction = ConfirmAction.SAVE
    confirm_message: str = ""
    previous_view: View | None = None

    # Transient screens
    message: str = ""
    message_is_error: bool = False
    stats: dict[str, int | None] = field(default_factory=dict)
    pending: PendingReturn | None = None

    def reset_list_session(self) -> None:
        """Fields a list view expects to start from."""
        self.selected_index = 0
        self.search_filter = ""
        self.is_searching = False
        self.input_buffer = ""
        self.editing_id = None
        self.form_data = {}

    def cancel_pending(self) -> None:
        self.pending = None
