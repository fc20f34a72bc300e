"""Launchers for external tools used by signing and distributable builders."""
from __future__ import annotations

from pathlib import Path
from typing import List, Mapping, Sequence

from core.command_runner import CommandResult, CommandRunner, SubprocessCommandRunner


class VmManager:
    """Runs a tool directly on the host."""

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self.runner = runner or SubprocessCommandRunner()

    def to_command(self, file: str | Path, args: Sequence[str]) -> List[str]:
        return [str(file), *args]

    def exec(
        self,
        file: str | Path,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> str:
        """Run the tool and return its standard output."""

        result = self.runner.run(self.to_command(file, args), cwd=cwd, env=env)
        return result.stdout

    async def exec_async(
        self,
        file: str | Path,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        return await self.runner.run_async(self.to_command(file, args), cwd=cwd, env=env)


class MonoVmManager(VmManager):
    """Runs .NET executables through ``mono`` on non-Windows hosts."""

    def to_command(self, file: str | Path, args: Sequence[str]) -> List[str]:
        return ["mono", str(file), *args]


__all__ = ["MonoVmManager", "VmManager"]
