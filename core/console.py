"""Console output used by the packaging pipeline."""
from __future__ import annotations

from typing import Any, List, Tuple
import sys


def _format(message: str, fields: dict[str, Any]) -> str:
    if not fields:
        return message
    rendered = " ".join(f"{key}={value}" for key, value in fields.items() if value is not None)
    return f"{message} {rendered}" if rendered else message


class Console:
    """Simple console output handler with configurable log level.

    Levels: none < error < warn < info < debug
    Default: 'info'

    Keyword arguments passed to any of the output methods are rendered as
    ``key=value`` pairs after the message.
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "warn": 2,
        "info": 3,
        "debug": 4,
    }

    def __init__(self, level: str = "info"):
        if level not in self.LEVELS:
            raise ValueError(f"Unknown console level '{level}'. Expected one of: {', '.join(self.LEVELS)}")
        self.level_name = level
        self.level = self.LEVELS[level]

    def enabled(self, level: str) -> bool:
        return self.level >= self.LEVELS[level]

    def _emit(self, level: str, message: str) -> None:
        stream = sys.stderr if level in ("error", "warn") else sys.stdout
        print(f"[{level.upper()}] {message}", file=stream)

    def info(self, message: str, **fields: Any) -> None:
        if self.enabled("info"):
            self._emit("info", _format(message, fields))

    def warn(self, message: str, **fields: Any) -> None:
        if self.enabled("warn"):
            self._emit("warn", _format(message, fields))

    def error(self, message: str, **fields: Any) -> None:
        if self.enabled("error"):
            self._emit("error", _format(message, fields))

    def debug(self, message: str, **fields: Any) -> None:
        if self.enabled("debug"):
            self._emit("debug", _format(message, fields))


class RecordingConsole(Console):
    """Console that records messages instead of printing them."""

    def __init__(self, level: str = "debug") -> None:
        super().__init__(level)
        self.records: List[Tuple[str, str]] = []

    def _emit(self, level: str, message: str) -> None:
        self.records.append((level, message))

    def messages(self, level: str | None = None) -> List[str]:
        return [message for record_level, message in self.records if level is None or record_level == level]


__all__ = ["Console", "RecordingConsole"]
