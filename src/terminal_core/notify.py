"""Notification sink — where operator-facing success/failure messages go."""

from __future__ import annotations

from typing import Literal

import structlog

Severity = Literal["success", "info", "error"]

_LEVELS = {"success": "info", "info": "info", "error": "warning"}


class Notifier:
    """Accepts ``(severity, message)``. Subclass to route to a UI or queue."""

    def notify(self, severity: Severity, message: str) -> None:
        raise NotImplementedError


class LogNotifier(Notifier):
    """Writes every notice to the structured log."""

    def __init__(self, name: str = "notices") -> None:
        self._log = structlog.get_logger(name)

    def notify(self, severity: Severity, message: str) -> None:
        method = getattr(self._log, _LEVELS.get(severity, "info"))
        method("notice", severity=severity, message=message)
