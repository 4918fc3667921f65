"""Terminal UI for biz_db.

A hand-rolled, raw-keystroke controller: lists with live search, multi-step
record forms and a confirmation gate before anything is written.
"""
from .app import run_tui
from .machine import Effect, ViewStateMachine
from .state import SessionState, View

__all__ = ["Effect", "SessionState", "View", "ViewStateMachine", "run_tui"]
