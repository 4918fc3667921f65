"""Entry point that takes over the terminal for one session."""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from rich.console import Console

from ..repositories import SqliteStats, customer_store, product_store
from ..settings import Settings
from .keys import iter_keys
from .machine import Effect, ViewStateMachine
from .render import Renderer
from .state import Entity
from .terminal import RawTerminal, TerminalEvent

logger = logging.getLogger(__name__)


class EventSource(Protocol):
    def read(self, timeout: float | None = None) -> TerminalEvent: ...


def build_machine(settings: Settings) -> ViewStateMachine:
    stores = {
        Entity.CUSTOMER: customer_store(settings),
        Entity.PRODUCT: product_store(settings),
    }
    return ViewStateMachine(
        stores,
        SqliteStats(settings),
        message_delay=settings.BIZ_TUI_MESSAGE_DELAY,
        stats_delay=settings.BIZ_TUI_STATS_DELAY,
    )


def run_loop(machine: ViewStateMachine, events: EventSource, paint: Callable[[], None]) -> None:
    """Process events one at a time until the session ends.

    Each read is fully handled (decoded, dispatched, repainted) before the
    next one; the read timeout doubles as the auto-return timer.
    """
    paint()
    while True:
        event = events.read(machine.time_until_pending())
        if event.kind == "eof":
            logger.info("input closed; ending session")
            return
        if event.kind == "resize":
            paint()
            continue
        if event.kind == "input":
            for key in iter_keys(event.data):
                effect = machine.handle(key)
                if effect is Effect.TERMINATE:
                    return
                if effect is Effect.REPAINT:
                    paint()
        if machine.tick() is Effect.REPAINT:
            paint()


def run_tui(settings: Settings, *, server_url: str | None = None, console: Console | None = None) -> None:
    """Run the terminal UI until the user quits; the terminal is always restored."""
    console = console or Console()
    machine = build_machine(settings)
    renderer = Renderer(server_url)
    logger.info("terminal UI started (db=%s)", settings.BIZ_DB_PATH)
    try:
        with RawTerminal() as term, console.screen(hide_cursor=True) as screen:

            def paint() -> None:
                screen.update(renderer.build(machine, height=console.size.height))

            run_loop(machine, term, paint)
    except KeyboardInterrupt:
        logger.info("terminal UI interrupted")
    finally:
        logger.info("terminal UI stopped")
