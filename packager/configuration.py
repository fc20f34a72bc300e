"""Typed view over the build configuration mapping."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping

from core.config_loader import as_list, load_config_file

from .errors import ConfigurationError

PLATFORM_KEYS = ("mac", "linux", "win")
COMPRESSION_LEVELS = ("store", "normal", "maximum")

_EMPTY: Mapping[str, Any] = MappingProxyType({})

_PATTERN_FIELDS = {
    "files": "files",
    "extraResources": "extra_resources",
    "extraFiles": "extra_files",
    "archiveUnpack": "archive_unpack",
}


def _optional_str(value: Any, key: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"'{key}' must be a string")
    return value


@dataclass(slots=True)
class Directories:
    output: str = "dist"
    build_resources: str = "build"
    app: str | None = None

    @classmethod
    def from_mapping(cls, data: Any) -> "Directories":
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigurationError("'directories' must be a mapping")
        return cls(
            output=str(data.get("output") or "dist"),
            build_resources=str(data.get("buildResources") or "build"),
            app=str(data["app"]) if data.get("app") else None,
        )


@dataclass(slots=True)
class Configuration:
    """Build configuration; ``raw`` keeps the mapping it was created from."""

    product_name: str | None = None
    artifact_name: str | None = None
    compression: str | None = None
    archive: Any = None
    archive_unpack: List[Any] = field(default_factory=list)
    files: List[Any] = field(default_factory=list)
    extra_resources: List[Any] = field(default_factory=list)
    extra_files: List[Any] = field(default_factory=list)
    extra_metadata: Dict[str, Any] = field(default_factory=dict)
    after_pack: Any = None
    after_sign: Any = None
    directories: Directories = field(default_factory=Directories)
    force_code_signing: bool | None = None
    csc_link: str | None = None
    csc_key_password: str | None = None
    file_associations: List[Any] = field(default_factory=list)
    raw: Mapping[str, Any] = field(default_factory=dict)
    _platform_options: Dict[str, Mapping[str, Any]] = field(default_factory=dict, repr=False)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Configuration":
        if not isinstance(data, Mapping):
            raise ConfigurationError("Build configuration must be a mapping")

        compression = data.get("compression")
        if compression is not None and compression not in COMPRESSION_LEVELS:
            raise ConfigurationError(
                f"Unsupported compression '{compression}'. Expected one of: {', '.join(COMPRESSION_LEVELS)}"
            )

        extra_metadata = data.get("extraMetadata") or {}
        if not isinstance(extra_metadata, Mapping):
            raise ConfigurationError("'extraMetadata' must be a mapping")

        force_code_signing = data.get("forceCodeSigning")
        config = cls(
            product_name=_optional_str(data.get("productName"), "productName"),
            artifact_name=_optional_str(data.get("artifactName"), "artifactName"),
            compression=compression,
            archive=data.get("archive"),
            archive_unpack=as_list(data.get("archiveUnpack")),
            files=as_list(data.get("files")),
            extra_resources=as_list(data.get("extraResources")),
            extra_files=as_list(data.get("extraFiles")),
            extra_metadata=dict(extra_metadata),
            after_pack=data.get("afterPack"),
            after_sign=data.get("afterSign"),
            directories=Directories.from_mapping(data.get("directories")),
            force_code_signing=bool(force_code_signing) if force_code_signing is not None else None,
            csc_link=_optional_str(data.get("cscLink"), "cscLink"),
            csc_key_password=_optional_str(data.get("cscKeyPassword"), "cscKeyPassword"),
            file_associations=as_list(data.get("fileAssociations")),
            raw=dict(data),
        )
        for key in PLATFORM_KEYS:
            section = data.get(key)
            if section is not None and not isinstance(section, Mapping):
                raise ConfigurationError(f"'{key}' must be a mapping")
        return config

    @classmethod
    def from_file(cls, path: Path) -> "Configuration":
        try:
            data = load_config_file(path)
        except (ValueError, TypeError) as exc:
            raise ConfigurationError(str(exc)) from exc
        return cls.from_mapping(data)

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw.get(key, default)

    def file_patterns(self, key: str) -> List[Any]:
        """Pattern list of ``files``, ``extraResources``, ``extraFiles`` or ``archiveUnpack``."""

        try:
            return getattr(self, _PATTERN_FIELDS[key])
        except KeyError:
            raise ConfigurationError(f"'{key}' is not a file pattern option") from None

    def platform_options(self, key: str) -> Mapping[str, Any]:
        """Platform section ``key`` as a read-only mapping (absent → empty)."""

        cached = self._platform_options.get(key)
        if cached is None:
            section = self.raw.get(key)
            cached = _EMPTY if section is None else MappingProxyType(dict(section))
            self._platform_options[key] = cached
        return cached


__all__ = ["COMPRESSION_LEVELS", "Configuration", "Directories", "PLATFORM_KEYS"]
