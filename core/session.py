"""Per-invocation build session: cancellation token and temp allocator."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import itertools
import shutil
import tempfile
import threading

from .console import Console


class CancellationToken:
    """Monotonic cancellation flag shared by every pipeline of a session.

    Once cancelled the token stays cancelled; running work is never
    interrupted, pipelines poll it at their checkpoints.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()


class TempDirManager:
    """Allocates unique temporary paths under one session-scoped root."""

    def __init__(self, base_dir: Path | None = None, *, prefix: str = "packager-") -> None:
        self._base_dir = base_dir
        self._prefix = prefix
        self._root: Path | None = None
        self._counter = itertools.count()
        self._lock = threading.Lock()

    @property
    def root(self) -> Path:
        with self._lock:
            if self._root is None:
                if self._base_dir is not None:
                    self._base_dir.mkdir(parents=True, exist_ok=True)
                self._root = Path(
                    tempfile.mkdtemp(prefix=self._prefix, dir=str(self._base_dir) if self._base_dir else None)
                )
            return self._root

    def _next_name(self, prefix: str, suffix: str) -> str:
        return f"{prefix}{next(self._counter)}{suffix}"

    def get_temp_file(self, *, prefix: str = "t-", suffix: str = "") -> Path:
        """Return a unique, not yet existing file path."""
        return self.root / self._next_name(prefix, suffix)

    def get_temp_dir(self, *, prefix: str = "d-") -> Path:
        path = self.root / self._next_name(prefix, "")
        path.mkdir(parents=True)
        return path

    def cleanup(self) -> None:
        with self._lock:
            root, self._root = self._root, None
        if root is not None:
            shutil.rmtree(root, ignore_errors=True)


@dataclass
class BuildSession:
    """State shared by all (platform, arch) pipelines of one top-level run."""

    console: Console = field(default_factory=Console)
    cancellation_token: CancellationToken = field(default_factory=CancellationToken)
    temp_dir_manager: TempDirManager = field(default_factory=TempDirManager)
    keep_stage_dirs: bool = False


__all__ = ["BuildSession", "CancellationToken", "TempDirManager"]
