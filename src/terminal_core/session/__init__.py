"""Viewer sessions — cancellable polling loops for signals, prices and presence."""

from terminal_core.session.runner import TerminalSession, run_session

__all__ = ["TerminalSession", "run_session"]
