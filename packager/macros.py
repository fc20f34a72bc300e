"""``${field}`` macro expansion and artifact naming helpers."""
from __future__ import annotations

from enum import IntEnum
from typing import Any, Callable, Mapping
import os
import re

from .app_info import AppInfo
from .errors import ConfigurationError

_MACRO_PATTERN = re.compile(r"\$\{([_a-zA-Z./*+]+)\}")
_ARCH_WITH_SEPARATOR = re.compile(r"[-_ /]\$\{arch\}|\$\{arch\}[-_ ]")
_SAFE_GITHUB_NAME = re.compile(r"^[0-9A-Za-z._-]+$")


class Arch(IntEnum):
    ia32 = 0
    x64 = 1
    armv7l = 2
    arm64 = 3
    universal = 4


def get_arch_suffix(arch: Arch) -> str:
    return "" if arch == Arch.x64 else f"-{arch.name}"


def get_artifact_arch_name(arch: Arch, ext: str) -> str:
    """Architecture label used in artifact names for a given format."""

    arch_name = arch.name
    is_app_image = ext in ("AppImage", "appimage")
    if arch == Arch.x64:
        if is_app_image or ext in ("rpm", "flatpak"):
            arch_name = "x86_64"
        elif ext in ("deb", "snap"):
            arch_name = "amd64"
    elif arch == Arch.ia32:
        if ext in ("deb", "snap", "flatpak") or is_app_image:
            arch_name = "i386"
        elif ext in ("pacman", "rpm"):
            arch_name = "i686"
    elif arch == Arch.armv7l:
        if ext == "snap":
            arch_name = "armhf"
        elif ext == "flatpak":
            arch_name = "arm"
    elif arch == Arch.arm64:
        if is_app_image or ext in ("rpm", "pacman"):
            arch_name = "aarch64"
    return arch_name


def expand_macro(
    pattern: str,
    arch: str | None,
    app_info: AppInfo,
    extra: Mapping[str, Any] | None = None,
    sanitize: bool = True,
) -> str:
    """Expand ``${field}`` tokens of ``pattern``.

    When ``arch`` is ``None`` the ``${arch}`` token disappears together with
    one adjacent separator, so ``${name}-${arch}.zip`` becomes ``${name}.zip``.
    ``sanitize`` only affects ``${productName}``.
    """

    extra = extra or {}
    if arch is None:
        pattern_without_arch = _ARCH_WITH_SEPARATOR.sub("", pattern)
    else:
        pattern_without_arch = pattern

    def replace(match: re.Match[str]) -> str:
        token = match.group(1)
        if token == "productName":
            return app_info.sanitized_product_name if sanitize else app_info.product_name
        if token == "arch":
            return arch or ""
        if token == "name":
            return app_info.name
        if token == "version":
            return app_info.version
        if token == "channel":
            return app_info.channel or "latest"
        if token == "author":
            if not app_info.company_name:
                raise ConfigurationError(
                    f'cannot expand pattern "{pattern}": author is not specified', "ERR_AUTHOR_NOT_DEFINED"
                )
            return app_info.company_name
        if token == "buildVersion" and app_info.build_version is not None:
            return app_info.build_version
        if token == "buildNumber" and app_info.build_number is not None:
            return app_info.build_number
        if token.startswith("env."):
            env_name = token[4:]
            env_value = os.environ.get(env_name)
            if env_value is None:
                raise ConfigurationError(
                    f'cannot expand pattern "{pattern}": env {env_name} is not defined', "ERR_ENV_NOT_DEFINED"
                )
            return env_value
        value = extra.get(token)
        if value is None:
            raise ConfigurationError(
                f'cannot expand pattern "{pattern}": macro {token} is not defined', "ERR_MACRO_NOT_DEFINED"
            )
        return str(value)

    return _MACRO_PATTERN.sub(replace, pattern_without_arch)


class MacroExpander:
    """``expand_macro`` bound to one application and OS name."""

    def __init__(self, app_info: AppInfo, os_name: str) -> None:
        self.app_info = app_info
        self.os_name = os_name

    def expand(
        self,
        pattern: str,
        arch: str | None = None,
        extra: Mapping[str, Any] | None = None,
        sanitize: bool = True,
    ) -> str:
        fields: dict[str, Any] = {"os": self.os_name}
        fields.update(extra or {})
        return expand_macro(pattern, arch, self.app_info, fields, sanitize)

    def bind(self, arch: str | None, extra: Mapping[str, Any] | None = None) -> Callable[[str], str]:
        """Return a one-argument expander, as used by file matchers."""
        return lambda pattern: self.expand(pattern, arch, extra)


def is_safe_github_name(name: str) -> bool:
    return _SAFE_GITHUB_NAME.match(name) is not None


def compute_safe_artifact_name_if_needed(
    suggested_name: str | None,
    safe_name_producer: Callable[[], str],
) -> str | None:
    """Return a name safe for release hosting, or ``None`` if already safe."""

    if suggested_name is not None:
        if is_safe_github_name(suggested_name):
            return None
        # space is the most common offender; keep the suggested name if it is the only one
        dashed = suggested_name.replace(" ", "-")
        if is_safe_github_name(dashed):
            return dashed
    return safe_name_producer()


def normalize_ext(ext: str) -> str:
    return ext[1:] if ext.startswith(".") else ext


__all__ = [
    "Arch",
    "MacroExpander",
    "compute_safe_artifact_name_if_needed",
    "expand_macro",
    "get_arch_suffix",
    "get_artifact_arch_name",
    "is_safe_github_name",
    "normalize_ext",
]
