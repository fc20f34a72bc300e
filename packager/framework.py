"""Contracts between the packager and its external collaborators.

A :class:`Framework` stages the runtime shell and may hook into the
pipeline; a :class:`Target` turns a packaged application directory into a
distributable. :class:`BuildInfo` holds everything shared by the platform
packagers of one build.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Dict, List, Mapping, Sequence
import inspect

from core.archive import ArchiveIntegrity
from core.config_loader import find_config_file
from core.console import Console
from core.session import BuildSession, CancellationToken, TempDirManager

from .configuration import Configuration
from .errors import ConfigurationError
from .file_sets import FileTransformer
from .macros import Arch, get_artifact_arch_name
from .metadata import check_metadata, read_package_json

if TYPE_CHECKING:
    from .platform_packager import PlatformPackager

CONFIG_FILE_STEMS = ("packager", "deskgap-builder")


@dataclass(frozen=True, slots=True)
class Platform:
    name: str
    build_configuration_key: str
    node_name: str

    MAC: ClassVar["Platform"]
    LINUX: ClassVar["Platform"]
    WINDOWS: ClassVar["Platform"]

    def __str__(self) -> str:
        return self.name

    @classmethod
    def from_string(cls, value: str) -> "Platform":
        for platform in (cls.MAC, cls.LINUX, cls.WINDOWS):
            if value in (platform.name, platform.build_configuration_key, platform.node_name):
                return platform
        raise ConfigurationError(f"Unknown platform '{value}'")


Platform.MAC = Platform("mac", "mac", "darwin")
Platform.LINUX = Platform("linux", "linux", "linux")
Platform.WINDOWS = Platform("windows", "win", "win32")


@dataclass(slots=True)
class StageDirectoryOptions:
    packager: "PlatformPackager[Any]"
    app_out_dir: Path
    platform_name: str
    arch: str
    version: str


@dataclass(slots=True)
class BeforeCopyExtraFilesOptions:
    packager: "PlatformPackager[Any]"
    app_out_dir: Path
    archive_integrity: ArchiveIntegrity | None
    platform_name: str


class Target:
    """A distributable format (installer, portable archive...)."""

    is_async_supported: bool = True

    def __init__(self, name: str, out_dir: Path | None = None) -> None:
        self.name = name
        self.out_dir = Path(out_dir) if out_dir is not None else None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    async def build(self, app_out_dir: Path, arch: Arch) -> Any:
        raise NotImplementedError


@dataclass(slots=True)
class PackContext:
    """Passed unchanged to every hook of one (platform, arch) pipeline."""

    out_dir: Path
    app_out_dir: Path
    arch: Arch
    targets: Sequence[Target]
    packager: "PlatformPackager[Any]"
    platform_name: str
    archive_options: Mapping[str, Any] | None = None


class Framework:
    """Runtime the application is packaged for.

    The optional hooks are ``None`` unless a subclass defines them.
    """

    name: str = "deskgap"
    version: str = "0.0.0"
    dist_macos_app_name: str = "DeskGap.app"
    is_archive_supported: bool = True
    default_app_id_prefix: str = "com.deskgap."

    before_copy_extra_files: Callable[[BeforeCopyExtraFilesOptions], Any] | None = None
    after_pack: Callable[[PackContext], Any] | None = None
    get_main_file: Callable[[Platform], str | None] | None = None
    create_transformer: Callable[[], FileTransformer | None] | None = None
    get_default_icon: Callable[[Platform], str | None] | None = None

    async def prepare_application_stage_directory(self, options: StageDirectoryOptions) -> None:
        raise NotImplementedError


@dataclass(slots=True)
class ArtifactCreated:
    file: Path
    target: Target | None
    arch: Arch | None
    packager: "PlatformPackager[Any]"
    safe_artifact_name: str | None = None


StageDirPathCustomizer = Callable[[Target, "PlatformPackager[Any]", Arch], Path]


def default_stage_dir_path(target: Target, packager: "PlatformPackager[Any]", arch: Arch) -> Path:
    out_dir = target.out_dir
    if out_dir is None:
        out_dir = packager.project_dir / packager.config.directories.output
    return Path(out_dir) / f"__{target.name}-{get_artifact_arch_name(arch, target.name)}"


@dataclass(slots=True)
class BuildInfo:
    """State shared by the platform packagers of one build."""

    project_dir: Path
    config: Configuration
    metadata: Dict[str, Any]
    framework: Framework
    session: BuildSession = field(default_factory=BuildSession)
    app_dir: Path | None = None
    build_resources_dir: Path | None = None
    prepackaged: Path | None = None
    is_prepacked_app_archive: bool = False
    are_node_modules_handled_externally: bool = False
    after_pack: Any = None
    on_artifact_created: Callable[[ArtifactCreated], Any] | None = None
    stage_dir_path_customizer: StageDirPathCustomizer = default_stage_dir_path
    artifacts: List[ArtifactCreated] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.project_dir = Path(self.project_dir)
        if self.app_dir is None:
            app = self.config.directories.app
            self.app_dir = self.project_dir / app if app else self.project_dir
        self.app_dir = Path(self.app_dir)
        if self.build_resources_dir is None:
            self.build_resources_dir = self.project_dir / self.config.directories.build_resources
        self.build_resources_dir = Path(self.build_resources_dir)
        if self.prepackaged is not None:
            self.prepackaged = Path(self.prepackaged)
        if self.after_pack is None:
            self.after_pack = self.config.after_pack

    @property
    def console(self) -> Console:
        return self.session.console

    @property
    def cancellation_token(self) -> CancellationToken:
        return self.session.cancellation_token

    @property
    def temp_dir_manager(self) -> TempDirManager:
        return self.session.temp_dir_manager

    @classmethod
    def load(
        cls,
        project_dir: Path,
        framework: Framework,
        session: BuildSession | None = None,
        *,
        config: Configuration | None = None,
        **kwargs: Any,
    ) -> "BuildInfo":
        """Read configuration and manifests of ``project_dir`` and validate them.

        The configuration comes from ``packager.{toml,json,yaml,yml}`` unless
        given; the ``build`` section of the development ``package.json`` is
        used when there is no configuration file.
        """

        project_dir = Path(project_dir)
        session = session or BuildSession()
        dev_file = project_dir / "package.json"
        dev_metadata = read_package_json(dev_file) if dev_file.is_file() else {}

        if config is None:
            config_file = find_config_file(project_dir, CONFIG_FILE_STEMS)
            if config_file is not None:
                session.console.debug("loading configuration", file=config_file)
                config = Configuration.from_file(config_file)
            else:
                config = Configuration.from_mapping(dev_metadata.get("build") or {})

        app_dir = kwargs.pop("app_dir", None)
        if app_dir is None:
            app_dir = project_dir / config.directories.app if config.directories.app else project_dir
        app_file = Path(app_dir) / "package.json"
        if app_file == dev_file:
            metadata = dev_metadata
        elif app_file.is_file():
            metadata = read_package_json(app_file)
        else:
            raise ConfigurationError(f"Application manifest '{app_file}' does not exist")

        check_metadata(metadata, dev_metadata, app_file, dev_file, session.console, framework.name)
        return cls(
            project_dir=project_dir,
            config=config,
            metadata=metadata,
            framework=framework,
            session=session,
            app_dir=Path(app_dir),
            **kwargs,
        )

    async def call_artifact_build_completed(self, event: ArtifactCreated) -> None:
        self.artifacts.append(event)
        if self.on_artifact_created is None:
            return
        result = self.on_artifact_created(event)
        if inspect.isawaitable(result):
            await result


__all__ = [
    "ArtifactCreated",
    "BeforeCopyExtraFilesOptions",
    "BuildInfo",
    "CONFIG_FILE_STEMS",
    "Framework",
    "PackContext",
    "Platform",
    "StageDirPathCustomizer",
    "StageDirectoryOptions",
    "Target",
    "default_stage_dir_path",
]
