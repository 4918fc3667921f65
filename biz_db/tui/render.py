"""Screen painting for the terminal UI.

Stateless: every function builds a rich renderable from the session state.
The event loop hands the result to the live screen.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .confirm import NO, YES
from .forms import format_value
from .machine import MAIN_MENU
from .state import ConfirmAction, Entity, SessionState, View, form_steps

if TYPE_CHECKING:
    from .machine import ViewStateMachine


SELECTED = "white on blue"

LIST_TITLES = {
    Entity.CUSTOMER: "Customers",
    Entity.PRODUCT: "Products",
}

STATS_LABELS = {
    "customers": "Customers",
    "products": "Products",
    "orders": "Orders",
    "payments": "Payments",
}

# Header, search line, separator, table header and the key hint footer.
LIST_CHROME_ROWS = 8


def _money(value: Any) -> str:
    try:
        return f"{float(value or 0):,.2f}"
    except (TypeError, ValueError):
        return "0.00"


def render_main(state: SessionState, server_url: str | None = None) -> RenderableType:
    lines: list[RenderableType] = []
    if server_url:
        lines.append(Text(f"Server: {server_url}", style="dim"))
        lines.append(Text(""))
    for i, item in enumerate(MAIN_MENU):
        if i == state.selected_index:
            lines.append(Text(f" > {item} ", style=SELECTED))
        else:
            lines.append(Text(f"   {item}"))
    lines.append(Text(""))
    lines.append(Text("↑↓ move  Enter select  Esc/Ctrl+C quit", style="dim"))
    return Panel.fit(Group(*lines), title="[bold cyan]Database Manager[/bold cyan]", border_style="cyan")


def _record_row(entity: Entity, record: dict[str, Any]) -> tuple[str, ...]:
    if entity is Entity.CUSTOMER:
        return (
            str(record.get("CustomerName") or "(no name)"),
            str(record.get("CustomerPhone") or ""),
            _money(record.get("CustomerBalance")),
        )
    return (
        str(record.get("ProductCode") or "(no code)"),
        str(record.get("Details") or "")[:30],
        _money(record.get("Price")),
        str(int(record.get("ActualInventory") or 0)),
    )


def render_list(
    state: SessionState,
    filtered: list[dict[str, Any]],
    *,
    height: int = 24,
) -> RenderableType:
    entity = state.view.entity
    if entity is None:
        raise RuntimeError(f"not a list view: {state.view.value}")
    total = len(state.records)
    header = Text(f"{LIST_TITLES[entity]} ({len(filtered)}/{total} records)", style="bold cyan")

    search = Text("Search: ")
    if state.is_searching:
        search.append(f"{state.input_buffer}█", style="bold black on yellow")
    else:
        search.append(state.search_filter or "(type to search)", style="dim")

    parts: list[RenderableType] = [header, search, Text("─" * 40, style="dim")]

    if not filtered:
        if state.search_filter:
            parts.append(Text(f'No results for "{state.search_filter}"', style="yellow"))
        else:
            parts.append(Text("No records yet", style="yellow"))
    else:
        table = Table(box=None, show_edge=False, pad_edge=False)
        table.add_column("")
        if entity is Entity.CUSTOMER:
            table.add_column("Name", max_width=25, no_wrap=True)
            table.add_column("Phone", max_width=15, no_wrap=True)
            table.add_column("Balance", justify="right")
        else:
            table.add_column("Code", max_width=15, no_wrap=True)
            table.add_column("Details", max_width=32, no_wrap=True)
            table.add_column("Price", justify="right")
            table.add_column("Stock", justify="right")

        max_rows = max(1, height - LIST_CHROME_ROWS)
        start = max(0, state.selected_index - max_rows // 2)
        for offset, record in enumerate(filtered[start : start + max_rows]):
            index = start + offset
            is_selected = index == state.selected_index and not state.is_searching
            table.add_row(
                ">" if is_selected else " ",
                *_record_row(entity, record),
                style=SELECTED if is_selected else None,
            )
        parts.append(table)

    parts.append(Text(""))
    if state.is_searching:
        parts.append(Text("Search: Enter apply  Esc clear", style="yellow"))
    else:
        parts.append(Text("↑↓ move  Enter edit  Ctrl+N new  [type to search]  Esc main menu", style="dim"))
    return Group(*parts)


def render_form(state: SessionState, *, title: str) -> RenderableType:
    view = state.view if state.view.is_form else state.previous_view
    entity = view.entity if view is not None and view.is_form else None
    if entity is None:
        raise RuntimeError(f"no active form in view {state.view.value}")
    steps = form_steps(entity)

    grid = Table.grid(padding=(0, 1))
    grid.add_column(width=1)
    grid.add_column(no_wrap=True)
    grid.add_column()
    for i, step in enumerate(steps):
        marker = Text("*", style="red") if step.required else Text(" ")
        if i == state.form_step:
            grid.add_row(
                marker,
                Text(f"{step.label}:", style=SELECTED),
                Text(f"{state.input_buffer}█", style=SELECTED),
            )
            continue
        value = format_value(state.form_data.get(step.field))
        if not value:
            value = "(empty)" if i < state.form_step else "..."
        grid.add_row(marker, Text(f"{step.label}:"), Text(value, style="dim"))

    footer = [Text(""), Text("↑↓ field  Tab/Enter next  Ctrl+S save  Esc back", style="dim")]
    if state.editing_id:
        footer.append(Text("Ctrl+D delete", style="red"))

    return Panel(
        Group(grid, *footer),
        title=f"[bold cyan]{title}[/bold cyan]",
        subtitle=f"{state.form_step + 1}/{len(steps)}",
        border_style="cyan",
        expand=False,
    )


def render_confirm(state: SessionState) -> RenderableType:
    deleting = state.confirm_action is ConfirmAction.DELETE
    color = "red" if deleting else "green"
    title = "Confirm delete" if deleting else "Confirm save"

    options = Text("    ")
    for index, label in ((NO, "No"), (YES, "Yes")):
        if index == state.confirm_index:
            options.append(f" {label} ", style=f"bold white on {color}")
        else:
            options.append(f" {label} ")
        options.append("      ")

    body = Group(
        Text(state.confirm_message),
        Text(""),
        options,
        Text(""),
        Text("←→ choose  Enter confirm  Esc cancel", style="dim"),
    )
    return Panel.fit(body, title=f"[bold {color}]{title}[/bold {color}]", border_style=color)


def render_message(state: SessionState) -> RenderableType:
    style = "bold red" if state.message_is_error else "bold green"
    icon = "✗" if state.message_is_error else "✓"
    body = Group(
        Text(f"{icon} {state.message}", style=style),
        Text(""),
        Text("Returning automatically...", style="dim"),
    )
    return Panel.fit(body, title="Error" if state.message_is_error else "Result")


def render_stats(state: SessionState) -> RenderableType:
    table = Table(title="[bold]Database statistics[/bold]", show_header=False)
    table.add_column("Table", style="bold")
    table.add_column("Records", justify="right")
    for name, label in STATS_LABELS.items():
        count = state.stats.get(name)
        if count is None:
            table.add_row(label, Text("table not found", style="red"))
        else:
            table.add_row(label, Text(f"{count:,}", style="cyan"))
    return Group(table, Text(""), Text("Esc/Enter main menu (returns automatically)", style="dim"))


class Renderer:
    """Builds the renderable for whatever view the machine is in."""

    def __init__(self, server_url: str | None = None):
        self.server_url = server_url
        self._painters: dict[View, Callable[[ViewStateMachine, int], RenderableType]] = {
            View.MAIN: lambda m, h: render_main(m.state, self.server_url),
            View.CUSTOMER_LIST: lambda m, h: render_list(m.state, m.filtered_records, height=h),
            View.PRODUCT_LIST: lambda m, h: render_list(m.state, m.filtered_records, height=h),
            View.CUSTOMER_FORM: lambda m, h: render_form(m.state, title=m.form.title),
            View.PRODUCT_FORM: lambda m, h: render_form(m.state, title=m.form.title),
            View.CONFIRM_ACTION: lambda m, h: render_confirm(m.state),
            View.MESSAGE: lambda m, h: render_message(m.state),
            View.STATS: lambda m, h: render_stats(m.state),
        }
        missing = set(View) - set(self._painters)
        if missing:
            raise RuntimeError(f"no painter for views: {sorted(v.value for v in missing)}")

    def build(self, machine: ViewStateMachine, *, height: int = 24) -> RenderableType:
        return self._painters[machine.state.view](machine, height)
