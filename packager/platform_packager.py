"""Per-(platform, arch) packaging pipeline.

:meth:`PlatformPackager.pack` stages the runtime shell, copies (or archives)
the application files, copies extra resources, runs the hooks, checks the
result, signs it and hands the packaged directory over to the distributable
targets. The session cancellation token is polled before every stage; a
cancelled pipeline returns without starting the remaining stages.
"""
from __future__ import annotations

from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Generic, List, Mapping, Sequence, TypeVar
import asyncio
import os

from core.archive import ARCHIVE_FILENAME, AppArchiver, Archiver, archive_contains, compute_integrity
from core.config_loader import as_list, merge_mappings
from core.tasks import AsyncTaskManager

from .app_info import AppInfo
from .configuration import Configuration
from .errors import ConfigurationError, SanityCheckError
from .file_matcher import (
    FileMatcher,
    GetFileMatchersOptions,
    SharedExclude,
    get_file_matchers,
    get_main_file_matchers,
    get_node_module_file_matcher,
)
from .file_sets import (
    FileSet,
    FileTransformer,
    TransformResult,
    compute_file_sets,
    compute_node_module_file_sets,
    copy_app_files,
    copy_files,
    create_transformer,
    transform_files,
)
from .framework import (
    ArtifactCreated,
    BeforeCopyExtraFilesOptions,
    BuildInfo,
    Framework,
    PackContext,
    Platform,
    StageDirectoryOptions,
    Target,
)
from .hooks import Hook, invoke_hook, resolve_hook
from .macros import (
    Arch,
    compute_safe_artifact_name_if_needed,
    expand_macro,
    get_arch_suffix,
    get_artifact_arch_name,
)

DC = TypeVar("DC", bound=Mapping[str, Any])

ARCHIVE_EXTENSION = ".tar.zst"
DEFAULT_ARTIFACT_PATTERN = "${productName}-${version}-${arch}.${ext}"
_DEPRECATED_ARCHIVE_KEYS = ("archive-unpack", "archive-unpack-dir")
_UNSET: Any = object()


class PackagingMode(str, Enum):
    NONE = "none"
    PREPACKED = "prepacked"
    BUILD = "build"


def _choose_not_none(first: Any, second: Any) -> Any:
    return second if first is None else first


class PlatformPackager(Generic[DC]):
    """Packages the application for one platform.

    Subclasses provide the platform specifics (targets, signing, extra
    transformers); the pipeline itself is shared.
    """

    def __init__(self, info: BuildInfo, platform: Platform) -> None:
        self.info = info
        self.platform = platform
        # normalized once, read-only afterwards
        self.platform_specific_build_options: DC = info.config.platform_options(  # type: ignore[assignment]
            platform.build_configuration_key
        )
        self.app_info = self.prepare_app_info()
        self._resource_list: List[str] | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(platform={self.platform.name}, project={self.project_dir})"

    # configuration ----------------------------------------------------------------

    @property
    def config(self) -> Configuration:
        return self.info.config

    @property
    def project_dir(self) -> Path:
        return self.info.project_dir

    @property
    def build_resources_dir(self) -> Path:
        return self.info.build_resources_dir  # type: ignore[return-value]

    @property
    def default_target(self) -> List[str]:
        raise NotImplementedError

    @property
    def compression(self) -> str:
        options = self.platform_specific_build_options
        # an explicit null requests the default instead of the top-level value
        if "compression" in options and options["compression"] is None:
            return "normal"
        return options.get("compression") or self.config.compression or "normal"

    @property
    def file_associations(self) -> List[Any]:
        return as_list(self.config.file_associations) + as_list(
            self.platform_specific_build_options.get("fileAssociations")
        )

    @property
    def force_code_signing(self) -> bool:
        value = self.platform_specific_build_options.get("forceCodeSigning")
        if value is None:
            value = self.config.force_code_signing
        return bool(value)

    @property
    def resource_list(self) -> List[str]:
        if self._resource_list is None:
            try:
                self._resource_list = sorted(os.listdir(self.build_resources_dir))
            except FileNotFoundError:
                self._resource_list = []
        return self._resource_list

    def prepare_app_info(self) -> AppInfo:
        return AppInfo.from_metadata(self.info.metadata, self.config, self.platform_specific_build_options)

    def create_targets(self, targets: Sequence[str], mapper: Callable[[str, Callable[[Path], Target]], None]) -> None:
        raise NotImplementedError

    # naming -----------------------------------------------------------------------

    def expand_macro(
        self,
        pattern: str,
        arch: str | None = None,
        extra: Mapping[str, Any] | None = None,
        sanitize: bool = True,
    ) -> str:
        fields = {"os": self.platform.build_configuration_key}
        fields.update(extra or {})
        return expand_macro(pattern, arch, self.app_info, fields, sanitize)

    def _compute_artifact_name(self, pattern: str, ext: str, arch: Arch | None) -> str:
        arch_name = None if arch is None else get_artifact_arch_name(arch, ext)
        return self.expand_macro(pattern, None if self.platform == Platform.MAC else arch_name, {"ext": ext})

    def expand_artifact_name_pattern(
        self,
        target_specific_options: Mapping[str, Any] | None,
        ext: str,
        arch: Arch | None = None,
        default_pattern: str | None = None,
        skip_arch_if_x64: bool = True,
    ) -> str:
        pattern = None if target_specific_options is None else target_specific_options.get("artifactName")
        if pattern is None:
            pattern = self.platform_specific_build_options.get("artifactName") or self.config.artifact_name
        if pattern is None:
            pattern = default_pattern or DEFAULT_ARTIFACT_PATTERN
        else:
            # a custom pattern always keeps the arch
            skip_arch_if_x64 = False
        return self._compute_artifact_name(pattern, ext, None if skip_arch_if_x64 and arch == Arch.x64 else arch)

    def expand_artifact_beauty_name_pattern(
        self,
        target_specific_options: Mapping[str, Any] | None,
        ext: str,
        arch: Arch | None = None,
    ) -> str:
        return self.expand_artifact_name_pattern(
            target_specific_options, ext, arch, "${productName} ${version} ${arch}.${ext}", True
        )

    def compute_safe_artifact_name(
        self,
        suggested_name: str | None,
        ext: str,
        arch: Arch | None = None,
        skip_arch_if_x64: bool = True,
        safe_pattern: str = "${name}-${version}-${arch}.${ext}",
    ) -> str | None:
        return compute_safe_artifact_name_if_needed(
            suggested_name,
            lambda: self._compute_artifact_name(
                safe_pattern, ext, None if skip_arch_if_x64 and arch == Arch.x64 else arch
            ),
        )

    def generate_name2(self, ext: str | None, classifier: str | None, deployment: bool) -> str:
        dot_ext = "" if ext is None else f".{ext}"
        separator = "_" if ext == "deb" else "-"
        name = self.app_info.name if deployment else self.app_info.product_filename
        suffix = "" if classifier is None else f"{separator}{classifier}"
        return f"{name}{separator}{self.app_info.version}{suffix}{dot_ext}"

    async def dispatch_artifact_created(
        self,
        file: Path,
        target: Target | None,
        arch: Arch | None,
        safe_artifact_name: str | None = None,
    ) -> None:
        await self.info.call_artifact_build_completed(
            ArtifactCreated(
                file=Path(file),
                target=target,
                arch=arch,
                packager=self,
                safe_artifact_name=safe_artifact_name,
            )
        )

    # locations --------------------------------------------------------------------

    def compute_app_out_dir(self, out_dir: Path, arch: Arch) -> Path:
        if self.info.prepackaged is not None:
            return self.info.prepackaged
        suffix = "" if self.platform == Platform.MAC else "-unpacked"
        return Path(out_dir) / f"{self.platform.build_configuration_key}{get_arch_suffix(arch)}{suffix}"

    def get_macos_resources_dir(self, app_out_dir: Path) -> Path:
        return Path(app_out_dir) / f"{self.app_info.product_filename}.app" / "Contents" / "Resources"

    def get_resources_dir(self, app_out_dir: Path) -> Path:
        if self.platform == Platform.MAC:
            return self.get_macos_resources_dir(app_out_dir)
        if self.info.framework.is_archive_supported:
            return Path(app_out_dir) / "resources"
        return Path(app_out_dir)

    def _app_resources_path(self, app_out_dir: Path) -> Path:
        framework = self.info.framework
        if self.platform == Platform.MAC:
            return Path(app_out_dir) / framework.dist_macos_app_name / "Contents" / "Resources"
        return self.get_resources_dir(app_out_dir)

    async def get_resource(self, custom: str | None = _UNSET, *, names: Sequence[str] = ()) -> Path | None:
        """Locate a build resource.

        Without ``custom`` the first of ``names`` present in the build
        resources directory is returned. ``custom`` is looked up in that
        directory, then relative to it, then relative to the project.
        """

        resources_dir = self.build_resources_dir
        if custom is _UNSET:
            for name in names:
                if name in self.resource_list:
                    return resources_dir / name
            return None
        if custom is None or not custom.strip():
            return None
        if custom in self.resource_list:
            return resources_dir / custom

        candidate = (resources_dir / custom).resolve()
        if await asyncio.to_thread(candidate.exists):
            return candidate
        candidate = (self.project_dir / custom).resolve()
        if await asyncio.to_thread(candidate.exists):
            return candidate
        raise ConfigurationError(
            f'cannot find specified resource "{custom}", nor relative to "{resources_dir}", '
            f'neither relative to project dir ("{self.project_dir}")'
        )

    def get_default_framework_icon(self) -> str | None:
        framework = self.info.framework
        return None if framework.get_default_icon is None else framework.get_default_icon(self.platform)

    def get_temp_file(self, suffix: str) -> Path:
        return self.info.temp_dir_manager.get_temp_file(suffix=suffix)

    # code signing -----------------------------------------------------------------

    def get_csc_link(self, extra_env_name: str | None = None) -> str | None:
        env_value = _choose_not_none(
            None if extra_env_name is None else os.environ.get(extra_env_name),
            os.environ.get("CSC_LINK"),
        )
        configured = _choose_not_none(self.config.csc_link, self.platform_specific_build_options.get("cscLink"))
        return _choose_not_none(configured, env_value)

    def _do_get_csc_password(self) -> str | None:
        configured = _choose_not_none(
            self.config.csc_key_password,
            self.platform_specific_build_options.get("cscKeyPassword"),
        )
        return _choose_not_none(configured, os.environ.get("CSC_KEY_PASSWORD"))

    def get_csc_password(self) -> str:
        password = self._do_get_csc_password()
        if password is None or not password.strip():
            self.info.console.info(
                "empty password will be used for code signing", reason="CSC_KEY_PASSWORD is not defined"
            )
            return ""
        return password.strip()

    async def sign_app(self, pack_context: PackContext, mode: PackagingMode) -> Any:
        return None

    # pipeline ---------------------------------------------------------------------

    def create_get_file_matchers_options(
        self,
        out_dir: Path,
        arch: Arch | None,
        custom_build_options: Mapping[str, Any],
    ) -> GetFileMatchersOptions:
        arch_name = None if arch is None else arch.name
        return GetFileMatchersOptions(
            macro_expander=lambda pattern: self.expand_macro(pattern, arch_name, {"/*": "{,/**/*}"}),
            custom_build_options=custom_build_options,
            global_out_dir=Path(out_dir),
            default_src=self.project_dir,
        )

    def create_transformer_for_extra_files(self, pack_context: PackContext) -> FileTransformer | None:
        return None

    def create_archiver(
        self,
        resources_path: Path,
        archive_root: Path,
        archive_options: Mapping[str, Any],
        unpack_filter: Callable[[Path], bool] | None,
    ) -> Archiver:
        return AppArchiver(
            dest_dir=resources_path,
            archive_root=archive_root,
            options=archive_options,
            unpack_filter=unpack_filter,
            compression=self.compression,
        )

    def _cancelled(self, stage: str) -> bool:
        if self.info.cancellation_token.is_cancelled():
            self.info.console.debug("packaging cancelled", platform=self.platform.name, before=stage)
            return True
        return False

    def _resolve_hooks(self) -> tuple[Hook | None, Hook | None]:
        after_pack = resolve_hook(self.info.after_pack, "afterPack", self.project_dir)
        after_sign = resolve_hook(self.config.after_sign, "afterSign", self.project_dir)
        return after_pack, after_sign

    async def pack(self, out_dir: Path, arch: Arch, targets: Sequence[Target], task_manager: AsyncTaskManager) -> None:
        app_out_dir = self.compute_app_out_dir(out_dir, arch)
        completed = await self.do_pack(
            Path(out_dir),
            app_out_dir,
            self.platform.node_name,
            arch,
            self.platform_specific_build_options,
            targets,
        )
        if completed:
            self.package_in_distributable_format(app_out_dir, arch, targets, task_manager)

    async def do_pack(
        self,
        out_dir: Path,
        app_out_dir: Path,
        platform_name: str,
        arch: Arch,
        platform_specific_build_options: DC,
        targets: Sequence[Target],
    ) -> bool:
        """Run the packaging stages; ``False`` when stopped by cancellation."""

        if self.info.prepackaged is not None:
            return True

        after_pack_hook, after_sign_hook = self._resolve_hooks()
        framework = self.info.framework
        console = self.info.console

        if self._cancelled("stage application directory"):
            return False
        console.info(
            "packaging",
            platform=platform_name,
            arch=arch.name,
            **{framework.name: framework.version},
            appOutDir=app_out_dir,
        )
        await framework.prepare_application_stage_directory(
            StageDirectoryOptions(
                packager=self,
                app_out_dir=app_out_dir,
                platform_name=platform_name,
                arch=arch.name,
                version=framework.version,
            )
        )

        if self._cancelled("file matchers"):
            return False
        excludes: List[SharedExclude] = []
        matchers_options = self.create_get_file_matchers_options(out_dir, arch, platform_specific_build_options)
        macro_expander = matchers_options.macro_expander
        extra_resource_matchers = self._get_extra_file_matchers(True, app_out_dir, matchers_options)
        for matcher in extra_resource_matchers or ():
            matcher.compute_parsed_patterns(excludes, self.project_dir)
        extra_file_matchers = self._get_extra_file_matchers(False, app_out_dir, matchers_options)
        for matcher in extra_file_matchers or ():
            matcher.compute_parsed_patterns(excludes, self.project_dir)

        if self._cancelled("packaging mode"):
            return False
        archive_options = self.compute_archive_options(platform_specific_build_options)
        if self.info.is_prepacked_app_archive:
            mode = PackagingMode.PREPACKED
        elif archive_options is None:
            mode = PackagingMode.NONE
        else:
            mode = PackagingMode.BUILD
        pack_context = PackContext(
            out_dir=out_dir,
            app_out_dir=app_out_dir,
            arch=arch,
            targets=targets,
            packager=self,
            platform_name=platform_name,
            archive_options=archive_options,
        )
        resources_path = self._app_resources_path(app_out_dir)

        if self._cancelled("copy application files"):
            return False
        task_manager = AsyncTaskManager()
        self._copy_app_files(
            task_manager,
            mode,
            archive_options,
            resources_path,
            resources_path / "app",
            pack_context,
            platform_specific_build_options,
            excludes,
            macro_expander,
        )
        await task_manager.await_tasks()

        if self._cancelled("before copy extra files"):
            return False
        if framework.before_copy_extra_files is not None:
            integrity = None
            if mode == PackagingMode.BUILD:
                integrity = await asyncio.to_thread(compute_integrity, resources_path)
            await invoke_hook(
                framework.before_copy_extra_files,
                BeforeCopyExtraFilesOptions(
                    packager=self,
                    app_out_dir=app_out_dir,
                    archive_integrity=integrity,
                    platform_name=platform_name,
                ),
            )

        if self._cancelled("copy extra files"):
            return False
        transformer = self._create_combined_transformer(pack_context)
        await copy_files(extra_resource_matchers, transformer)
        await copy_files(extra_file_matchers, transformer)

        if self._cancelled("after pack"):
            return False
        await invoke_hook(after_pack_hook, pack_context)
        if framework.after_pack is not None:
            await invoke_hook(framework.after_pack, pack_context)

        if self._cancelled("sanity check"):
            return False
        await self.sanity_check_package(app_out_dir, mode, framework)

        if self._cancelled("sign"):
            return False
        await self.sign_app(pack_context, mode)

        if self._cancelled("after sign"):
            return False
        await invoke_hook(after_sign_hook, pack_context)
        return True

    def compute_archive_options(self, custom_build_options: Mapping[str, Any]) -> Mapping[str, Any] | None:
        """Archive options, or ``None`` when the files are copied as they are."""

        if not self.info.framework.is_archive_supported:
            return None

        for name in _DEPRECATED_ARCHIVE_KEYS:
            if self.config.get(name) is not None:
                raise ConfigurationError(f"{name} is deprecated and not supported, please use archiveUnpack")

        platform_specific = custom_build_options.get("archive")
        result = self.config.archive if platform_specific is None else platform_specific
        if result is False:
            prepacked = self.info.app_dir / ARCHIVE_FILENAME  # type: ignore[operator]
            if not prepacked.is_file():
                self.info.console.warn(
                    "archive usage is disabled, this is strongly not recommended",
                    solution="enable archive and use archiveUnpack to unpack files that must be externally available",
                )
            return None
        if result is None or result is True:
            return {}
        if not isinstance(result, Mapping):
            raise ConfigurationError("'archive' must be a boolean or a mapping")
        for name in ("unpackDir", "unpack"):
            if result.get(name) is not None:
                raise ConfigurationError(f"archive.{name} is deprecated and not supported, please use archiveUnpack")
        return merge_mappings({}, result)

    def _get_extra_file_matchers(
        self,
        is_resources: bool,
        app_out_dir: Path,
        options: GetFileMatchersOptions,
    ) -> List[FileMatcher] | None:
        if is_resources:
            base = self.get_resources_dir(app_out_dir)
        elif self.platform == Platform.MAC:
            base = Path(app_out_dir) / f"{self.app_info.product_filename}.app" / "Contents"
        else:
            base = Path(app_out_dir)
        return get_file_matchers(self.config, "extraResources" if is_resources else "extraFiles", base, options)

    def _create_main_transformer(self) -> FileTransformer:
        framework = self.info.framework
        return create_transformer(
            self.info.app_dir,  # type: ignore[arg-type]
            self.config.extra_metadata,
            None if framework.create_transformer is None else framework.create_transformer(),
        )

    def _create_combined_transformer(self, pack_context: PackContext) -> FileTransformer:
        """Extra-files transformer first; the main transformer when it declines."""

        extra = self.create_transformer_for_extra_files(pack_context)
        main = self._create_main_transformer()

        def _transform(path: Path) -> TransformResult:
            if extra is not None:
                result = extra(path)
                if result is not None:
                    return result
            return main(path)

        return _transform

    def _copy_app_files(
        self,
        task_manager: AsyncTaskManager,
        mode: PackagingMode,
        archive_options: Mapping[str, Any] | None,
        resources_path: Path,
        default_destination: Path,
        pack_context: PackContext,
        platform_specific_build_options: DC,
        excludes: List[SharedExclude],
        macro_expander: Callable[[str], str],
    ) -> None:
        app_dir: Path = self.info.app_dir  # type: ignore[assignment]
        main_matchers = get_main_file_matchers(
            app_dir,
            default_destination,
            macro_expander,
            platform_specific_build_options,
            self.config,
            pack_context.out_dir,
            self.build_resources_dir,
        )
        if excludes:
            for matcher in main_matchers:
                matcher.excludes = excludes

        transformer = self._create_main_transformer()
        prepacked = mode == PackagingMode.PREPACKED

        async def _compute_file_sets(matchers: List[FileMatcher]) -> List[FileSet]:
            file_sets = await compute_file_sets(matchers, None if prepacked else transformer, self)
            if not prepacked and not self.info.are_node_modules_handled_externally:
                module_matcher = get_node_module_file_matcher(
                    app_dir,
                    default_destination,
                    macro_expander,
                    platform_specific_build_options,
                    self.config,
                )
                file_sets.extend(await compute_node_module_file_sets(self, module_matcher))
            return [file_set for file_set in file_sets if file_set.files]

        if mode == PackagingMode.PREPACKED:

            async def _relocate() -> None:
                matcher = FileMatcher(app_dir, resources_path, macro_expander)
                for file_set in await _compute_file_sets([matcher]):
                    await copy_app_files(file_set, None)

            task_manager.add_task(_relocate())
            return

        if mode == PackagingMode.NONE:
            # without an archive the extra-files transformer applies to app files too
            combined = self._create_combined_transformer(pack_context)

            async def _copy() -> None:
                for file_set in await _compute_file_sets(main_matchers):
                    await copy_app_files(file_set, combined)

            task_manager.add_task(_copy())
            return

        unpack_matchers = get_file_matchers(
            self.config,
            "archiveUnpack",
            default_destination,
            GetFileMatchersOptions(
                macro_expander=macro_expander,
                custom_build_options=platform_specific_build_options,
                global_out_dir=pack_context.out_dir,
                default_src=app_dir,
            ),
        )
        unpack_filter = None if unpack_matchers is None else unpack_matchers[0].create_filter()
        archiver = self.create_archiver(resources_path, default_destination, archive_options or {}, unpack_filter)

        async def _pack() -> None:
            file_sets = await _compute_file_sets(main_matchers)
            for file_set in file_sets:
                await transform_files(transformer, file_set)
            await archiver.pack(file_sets)

        task_manager.add_task(_pack())

    async def sanity_check_package(self, app_out_dir: Path, mode: PackagingMode, framework: Framework) -> None:
        app_out_dir = Path(app_out_dir)
        if not app_out_dir.exists():
            raise SanityCheckError(
                f'Output directory "{app_out_dir}" does not exist. Seems like a wrong configuration.', app_out_dir
            )
        if not app_out_dir.is_dir():
            raise SanityCheckError(
                f'Output directory "{app_out_dir}" is not a directory. Seems like a wrong configuration.', app_out_dir
            )

        resources_dir = self.get_resources_dir(app_out_dir)
        main_file = (
            (None if framework.get_main_file is None else framework.get_main_file(self.platform))
            or self.info.metadata.get("main")
            or "index.js"
        )
        await self._check_file_in_package(resources_dir, main_file, "Application entry file", mode)
        await self._check_file_in_package(resources_dir, "package.json", "Application", mode)

    async def _check_file_in_package(self, resources_dir: Path, file: str, message_prefix: str, mode: PackagingMode) -> None:
        app_dir: Path = self.info.app_dir  # type: ignore[assignment]
        relative = PurePosixPath(Path(os.path.relpath((app_dir / file).resolve(), app_dir.resolve())).as_posix())

        if mode in (PackagingMode.BUILD, PackagingMode.PREPACKED):
            archive = resources_dir / ARCHIVE_FILENAME
            await self._check_file_in_archive(archive, relative.as_posix(), message_prefix)
            return

        # the entry file may still live in an archive packed before packaging
        parts = relative.parts
        archive_index = next(
            (index for index, part in enumerate(parts[:-1]) if part.endswith(ARCHIVE_EXTENSION)),
            None,
        )
        if archive_index is not None:
            archive = resources_dir / "app" / Path(*parts[: archive_index + 1])
            inner = PurePosixPath(*parts[archive_index + 1:]).as_posix()
            await self._check_file_in_archive(archive, inner, message_prefix)
            return

        full_path = resources_dir / "app" / Path(*parts)
        if not full_path.exists():
            raise SanityCheckError(
                f'{message_prefix} "{full_path}" does not exist. Seems like a wrong configuration.', full_path
            )
        if not full_path.is_file():
            raise SanityCheckError(
                f'{message_prefix} "{full_path}" is not a file. Seems like a wrong configuration.', full_path
            )

    @staticmethod
    async def _check_file_in_archive(archive: Path, relative: str, message_prefix: str) -> None:
        if not archive.is_file():
            raise SanityCheckError(f'{message_prefix}: archive "{archive}" does not exist', archive)
        if not await asyncio.to_thread(archive_contains, archive, relative):
            raise SanityCheckError(
                f'{message_prefix} "{relative}" does not exist in archive "{archive}". '
                "Seems like a wrong configuration.",
                relative,
            )

    # distributables ---------------------------------------------------------------

    def package_in_distributable_format(
        self,
        app_out_dir: Path,
        arch: Arch,
        targets: Sequence[Target],
        task_manager: AsyncTaskManager,
    ) -> None:
        """Schedule the targets on ``task_manager``.

        Async-capable targets run concurrently. When some targets are not,
        a single task first starts and joins the async-capable ones, then
        builds the others one at a time.
        """

        if all(target.is_async_supported for target in targets):
            self._build_async_targets(targets, task_manager, app_out_dir, arch)
            return

        async def _build_mixed() -> None:
            sub_task_manager = AsyncTaskManager()
            self._build_async_targets(targets, sub_task_manager, app_out_dir, arch)
            await sub_task_manager.await_tasks()
            for target in targets:
                if not target.is_async_supported:
                    await target.build(app_out_dir, arch)

        task_manager.add_task(_build_mixed())

    @staticmethod
    def _build_async_targets(
        targets: Sequence[Target],
        task_manager: AsyncTaskManager,
        app_out_dir: Path,
        arch: Arch,
    ) -> None:
        for target in targets:
            if target.is_async_supported:
                task_manager.add_task(target.build(app_out_dir, arch))


__all__ = ["ARCHIVE_EXTENSION", "DEFAULT_ARTIFACT_PATTERN", "PackagingMode", "PlatformPackager"]
