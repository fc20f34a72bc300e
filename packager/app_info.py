"""Immutable application identity derived from project metadata."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping
import os
import re

from .configuration import Configuration
from .errors import ConfigurationError

_UNSAFE_FILENAME_CHARS = re.compile(r'[/\\?<>:*|"\x00-\x1f\x80-\x9f]')
_NON_PORTABLE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_PRERELEASE = re.compile(r"^\d+\.\d+\.\d+-([0-9A-Za-z-]+)")
_AUTHOR = re.compile(r"^\s*([^<(]*?)\s*(?:<[^>]*>)?\s*(?:\([^)]*\))?\s*$")

_BUILD_NUMBER_VARIABLES = ("BUILD_NUMBER", "TRAVIS_BUILD_NUMBER", "APPVEYOR_BUILD_NUMBER", "CIRCLE_BUILD_NUM", "BUILD_BUILDNUMBER")


def sanitize_file_name(name: str) -> str:
    """Drop characters that are invalid in file names on common systems."""
    return _UNSAFE_FILENAME_CHARS.sub("", name).strip().rstrip(".")


def to_portable_name(name: str) -> str:
    """Replace characters outside the portable file name set with ``-``."""
    return _NON_PORTABLE_CHARS.sub("-", name)


def _company_name(author: Any) -> str | None:
    if isinstance(author, Mapping):
        value = author.get("name")
        return str(value) if value else None
    if isinstance(author, str):
        match = _AUTHOR.match(author)
        name = match.group(1) if match else author
        return name or None
    return None


@dataclass(frozen=True, slots=True)
class AppInfo:
    name: str
    product_name: str
    version: str
    build_number: str | None = None
    build_version: str | None = None
    company_name: str | None = None
    description: str = ""

    @property
    def sanitized_name(self) -> str:
        return to_portable_name(self.name.lstrip("@").replace("/", "-"))

    @property
    def sanitized_product_name(self) -> str:
        return to_portable_name(self.product_name)

    @property
    def product_filename(self) -> str:
        return sanitize_file_name(self.product_name)

    @property
    def channel(self) -> str | None:
        match = _PRERELEASE.match(self.version)
        if match is None:
            return None
        return match.group(1).split(".")[0]

    @classmethod
    def from_metadata(
        cls,
        metadata: Mapping[str, Any],
        config: Configuration,
        platform_options: Mapping[str, Any] | None = None,
    ) -> "AppInfo":
        platform_options = platform_options or {}
        extra = config.extra_metadata

        name = extra.get("name") or metadata.get("name")
        version = extra.get("version") or metadata.get("version")
        if not name:
            raise ConfigurationError("Application metadata must define 'name'", "ERR_METADATA_NAME")
        if not version:
            raise ConfigurationError("Application metadata must define 'version'", "ERR_METADATA_VERSION")

        product_name = (
            platform_options.get("productName")
            or config.product_name
            or metadata.get("productName")
            or name
        )

        build_number = config.get("buildNumber")
        if build_number is None:
            build_number = next(
                (os.environ[key] for key in _BUILD_NUMBER_VARIABLES if os.environ.get(key)),
                None,
            )
        build_version = config.get("buildVersion")
        if build_version is None:
            build_version = str(version) if not build_number else f"{version}.{build_number}"

        return cls(
            name=str(name),
            product_name=str(product_name),
            version=str(version),
            build_number=str(build_number) if build_number else None,
            build_version=str(build_version),
            company_name=_company_name(metadata.get("author")),
            description=str(metadata.get("description") or ""),
        )


__all__ = ["AppInfo", "sanitize_file_name", "to_portable_name"]
