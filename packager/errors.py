"""Error types raised by the packaging pipeline.

Hooks (framework or user supplied) are never wrapped: whatever they raise
reaches the caller unchanged.
"""
from __future__ import annotations

from pathlib import Path

from core.tasks import TaskBatchError


class PackagerError(Exception):
    """Base class for packaging errors."""


class ConfigurationError(PackagerError, ValueError):
    """Invalid, missing or unsupported configuration."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code


class SanityCheckError(PackagerError):
    """The produced application tree is missing something it must contain."""

    def __init__(self, message: str, path: Path | str | None = None):
        super().__init__(message)
        self.path = path


__all__ = ["ConfigurationError", "PackagerError", "SanityCheckError", "TaskBatchError"]
