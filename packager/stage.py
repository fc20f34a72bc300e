"""Per-target staging directories used by distributable builders."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any
import asyncio
import os
import re
import shutil

from core.session import BuildSession

from .app_info import AppInfo
from .framework import Target
from .macros import Arch

if TYPE_CHECKING:
    from .platform_packager import PlatformPackager

REMOVE_EVEN_IF_DEBUG_ENV = "PACKAGER_REMOVE_STAGE_EVEN_IF_DEBUG"
_INSTALLATION_DIR_NAME = re.compile(r"^[-_+0-9a-zA-Z .]+$")


class StageDir:
    def __init__(self, directory: Path, session: BuildSession | None = None) -> None:
        self.dir = Path(directory)
        self.session = session

    def __str__(self) -> str:
        return str(self.dir)

    def get_temp_file(self, name: str) -> Path:
        return self.dir / name

    def _should_remove(self) -> bool:
        if self.session is None or not self.session.keep_stage_dirs:
            return True
        return os.environ.get(REMOVE_EVEN_IF_DEBUG_ENV) == "true"

    async def cleanup(self) -> None:
        """Remove the directory unless stage directories are kept for debugging."""

        if not self._should_remove():
            if self.session is not None:
                self.session.console.debug("keeping stage directory", path=self.dir)
            return
        await asyncio.to_thread(shutil.rmtree, self.dir, True)


def _empty_dir(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)


async def create_stage_dir_path(target: Target, packager: "PlatformPackager[Any]", arch: Arch) -> Path:
    path = Path(packager.info.stage_dir_path_customizer(target, packager, arch))
    await asyncio.to_thread(_empty_dir, path)
    return path


async def create_stage_dir(target: Target, packager: "PlatformPackager[Any]", arch: Arch) -> StageDir:
    return StageDir(await create_stage_dir_path(target, packager, arch), packager.info.session)


def get_windows_installation_dir_name(app_info: AppInfo, try_product_name: bool) -> str:
    if try_product_name and _INSTALLATION_DIR_NAME.match(app_info.product_filename):
        return app_info.product_filename
    return app_info.sanitized_name


__all__ = [
    "REMOVE_EVEN_IF_DEBUG_ENV",
    "StageDir",
    "create_stage_dir",
    "create_stage_dir_path",
    "get_windows_installation_dir_name",
]
