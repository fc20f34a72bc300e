"""Reading and validation of application manifests (``package.json``)."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple
import json
import os
import re

from core.console import Console

from .errors import ConfigurationError

UPDATER_MIN_VERSION = "4.0.0"
_VERSION = re.compile(r"(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def _read_authors(manifest: Path) -> List[str] | None:
    authors_file = manifest.parent / "AUTHORS"
    try:
        content = authors_file.read_text(encoding="utf-8")
    except OSError:
        return None
    return [re.sub(r"^\s*#.*$", "", line).strip() for line in content.splitlines()]


def read_package_json(path: Path) -> Dict[str, Any]:
    """Load a manifest; ``AUTHORS`` next to it fills ``contributors``."""

    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Cannot parse '{path}': {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"'{path}' must contain a JSON object")

    if data.get("contributors") is None:
        contributors = _read_authors(path)
        if contributors is not None:
            data["contributors"] = contributors

    # not needed for packaging
    data.pop("scripts", None)
    data.pop("readme", None)
    return data


def coerce_version(value: Any) -> Tuple[int, int, int] | None:
    """First ``major[.minor[.patch]]`` found in ``value``, e.g. ``^4.2`` -> ``(4, 2, 0)``."""

    if value is None:
        return None
    match = _VERSION.search(str(value))
    if match is None:
        return None
    return tuple(int(part or 0) for part in match.groups())  # type: ignore[return-value]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _check_dependencies(dependencies: Mapping[str, Any] | None, framework_name: str, errors: List[str]) -> None:
    if not dependencies:
        return

    updater = f"{framework_name}-updater"
    updater_version = dependencies.get(updater)
    if updater_version is not None:
        coerced = coerce_version(updater_version)
        if coerced is None or coerced < coerce_version(UPDATER_MIN_VERSION):  # type: ignore[operator]
            errors.append(
                f"At least {updater} {UPDATER_MIN_VERSION} is required. "
                f'Please set {updater} version to "^{UPDATER_MIN_VERSION}"'
            )

    dev_only = [framework_name, f"{framework_name}-prebuilt", f"{framework_name}-rebuild"]
    if os.environ.get("ALLOW_PACKAGER_AS_PRODUCTION_DEPENDENCY") != "true":
        dev_only.append(f"{framework_name}-builder")
    for name in dev_only:
        if name in dependencies:
            errors.append(
                f'Package "{name}" is only allowed in "devDependencies". '
                'Please remove it from the "dependencies" section in your package.json.'
            )


def check_metadata(
    metadata: Mapping[str, Any],
    dev_metadata: Mapping[str, Any] | None,
    app_package_file: Path,
    dev_package_file: Path,
    console: Console,
    framework_name: str = "deskgap",
) -> None:
    """Validate the application manifest.

    Every problem found is reported; they are raised together as one
    :class:`ConfigurationError`. Missing description or author only warn.
    """

    errors: List[str] = []

    if metadata.get("directories") is not None:
        errors.append('"directories" in the root is deprecated, please specify in the "build"')

    for key in ("name", "version"):
        if _is_blank(metadata.get(key)):
            errors.append(f"Please specify '{key}' in the package.json ({app_package_file})")

    if _is_blank(metadata.get("description")):
        console.warn("description is missed in the package.json", appPackageFile=app_package_file)
    if metadata.get("author") is None:
        console.warn("author is missed in the package.json", appPackageFile=app_package_file)

    _check_dependencies(metadata.get("dependencies"), framework_name, errors)

    if metadata is not dev_metadata and metadata.get("build") is not None:
        errors.append(
            f"'build' in the application package.json ({app_package_file}) is not supported. "
            f"Please move 'build' into the development package.json ({dev_package_file})"
        )

    if errors:
        raise ConfigurationError("\n".join(errors))


__all__ = ["UPDATER_MIN_VERSION", "check_metadata", "coerce_version", "read_package_json"]
