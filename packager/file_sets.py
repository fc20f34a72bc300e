"""Resolution of file matchers into file sets, and transform-and-copy."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Sequence, Union
import asyncio
import json
import os
import shutil

from core.config_loader import merge_mappings

from .file_matcher import NODE_MODULES_DIR, FileMatcher

if TYPE_CHECKING:
    from .platform_packager import PlatformPackager


@dataclass(frozen=True, slots=True)
class DestinationOverride:
    """Transformer result that places the file under another relative name."""

    relative_path: str
    content: bytes | str | None = None


TransformResult = Union[None, bytes, str, DestinationOverride]
FileTransformer = Callable[[Path], TransformResult]


@dataclass(frozen=True, slots=True)
class FileEntry:
    source: Path
    relative: str
    stat: os.stat_result


@dataclass(slots=True)
class FileSet:
    src: Path
    destination: Path
    files: List[FileEntry] = field(default_factory=list)
    transformed: Dict[str, bytes] = field(default_factory=dict)
    renamed: Dict[str, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.files)


def _walk(matcher: FileMatcher) -> List[FileEntry]:
    root = matcher.from_dir
    entries: Dict[str, FileEntry] = {}
    visited: set[tuple[int, int]] = set()

    for dirpath, dirnames, filenames in os.walk(root, topdown=True, followlinks=True):
        current = Path(dirpath)
        try:
            dir_stat = current.stat()
        except OSError:
            dirnames[:] = []
            continue
        key = (dir_stat.st_dev, dir_stat.st_ino)
        if key in visited:
            # symlink cycle or second link to an already walked directory
            dirnames[:] = []
            continue
        visited.add(key)

        relative_dir = current.relative_to(root)
        dirnames.sort()
        filenames.sort()

        kept_dirs: List[str] = []
        for dirname in dirnames:
            relative = (relative_dir / dirname).as_posix()
            if matcher.can_prune(relative) or matcher.is_claimed_elsewhere(current / dirname):
                continue
            kept_dirs.append(dirname)
        dirnames[:] = kept_dirs

        for filename in filenames:
            relative = (relative_dir / filename).as_posix()
            path = current / filename
            if matcher.is_claimed_elsewhere(path) or not matcher.matches(relative):
                continue
            try:
                stat = path.stat()
            except FileNotFoundError:
                # dangling symlink
                continue
            if relative not in entries:
                entries[relative] = FileEntry(source=path, relative=relative, stat=stat)

    return list(entries.values())


def compute_file_set(matcher: FileMatcher) -> FileSet:
    """Resolve one matcher; the transformer is not involved at this point."""

    if matcher.is_empty():
        matcher.add_all_pattern()
    if not matcher.from_dir.is_dir():
        return FileSet(src=matcher.from_dir, destination=matcher.to_dir)
    return FileSet(src=matcher.from_dir, destination=matcher.to_dir, files=_walk(matcher))


async def compute_file_sets(
    matchers: Sequence[FileMatcher],
    transformer: FileTransformer | None,
    packager: "PlatformPackager[Any] | None" = None,
) -> List[FileSet]:
    """Compute one file set per matcher, in matcher order.

    ``transformer`` is accepted so that callers can thread it through, but it
    is only ever applied at copy time.
    """

    file_sets = await asyncio.gather(*(asyncio.to_thread(compute_file_set, matcher) for matcher in matchers))
    return list(file_sets)


async def compute_node_module_file_sets(
    packager: "PlatformPackager[Any] | None",
    matcher: FileMatcher,
) -> List[FileSet]:
    file_set = await asyncio.to_thread(compute_file_set, matcher)
    return [file_set] if file_set.files else []


def _apply_transformer(transformer: FileTransformer, path: Path) -> TransformResult:
    try:
        return transformer(path)
    except Exception as exc:
        exc.add_note(f"while transforming '{path}'")
        raise


def _as_bytes(content: bytes | str) -> bytes:
    return content.encode("utf-8") if isinstance(content, str) else content


def _record_result(file_set: FileSet, entry: FileEntry, result: TransformResult) -> None:
    if result is None:
        return
    if isinstance(result, DestinationOverride):
        file_set.renamed[entry.relative] = result.relative_path
        if result.content is not None:
            file_set.transformed[entry.relative] = _as_bytes(result.content)
        return
    file_set.transformed[entry.relative] = _as_bytes(result)


async def transform_files(transformer: FileTransformer | None, file_set: FileSet) -> None:
    """Run ``transformer`` over every file of ``file_set`` ahead of archiving."""

    if transformer is None:
        return

    def _run() -> None:
        for entry in file_set.files:
            _record_result(file_set, entry, _apply_transformer(transformer, entry.source))

    await asyncio.to_thread(_run)


def _copy_file_set(file_set: FileSet, transformer: FileTransformer | None) -> None:
    created: set[Path] = set()
    for entry in file_set.files:
        if transformer is not None:
            _record_result(file_set, entry, _apply_transformer(transformer, entry.source))
        relative = file_set.renamed.get(entry.relative, entry.relative)
        target = file_set.destination / relative
        if target.parent not in created:
            target.parent.mkdir(parents=True, exist_ok=True)
            created.add(target.parent)
        content = file_set.transformed.get(entry.relative)
        if content is None:
            shutil.copy2(entry.source, target)
        else:
            target.write_bytes(content)
            shutil.copymode(entry.source, target)


async def copy_app_files(file_set: FileSet, transformer: FileTransformer | None) -> None:
    """Copy ``file_set`` into its destination, transforming file by file."""

    await asyncio.to_thread(_copy_file_set, file_set, transformer)


async def copy_files(matchers: Iterable[FileMatcher] | None, transformer: FileTransformer | None) -> None:
    """Copy extra file sets; a matcher whose source is a file copies just that file."""

    if not matchers:
        return
    for matcher in matchers:
        source = matcher.from_dir
        if source.is_file():
            target = matcher.to_dir
            if matcher.to_is_directory or target.is_dir():
                target = target / source.name
            stat = source.stat()
            file_set = FileSet(
                src=source.parent,
                destination=target.parent,
                files=[FileEntry(source=source, relative=target.name, stat=stat)],
            )
        else:
            file_set = await asyncio.to_thread(compute_file_set, matcher)
        if file_set.files:
            await copy_app_files(file_set, transformer)


_BUILD_ONLY_FIELDS = ("build", "scripts", "devDependencies", "directories")


def create_transformer(
    app_dir: Path,
    extra_metadata: Mapping[str, Any] | None,
    extra_transformer: FileTransformer | None = None,
) -> FileTransformer:
    """Transformer used for the main application files.

    ``extra_transformer`` (usually the framework's) is tried first. The
    application manifest gets ``extra_metadata`` merged in and build-only
    fields removed; manifests of runtime modules lose their build-only fields.
    """

    main_manifest = Path(app_dir) / "package.json"

    def _transform(path: Path) -> TransformResult:
        if extra_transformer is not None:
            result = extra_transformer(path)
            if result is not None:
                return result

        if path.name != "package.json":
            return None
        if path == main_manifest:
            data = json.loads(path.read_text(encoding="utf-8"))
            if extra_metadata:
                data = merge_mappings(data, extra_metadata)
            for key in _BUILD_ONLY_FIELDS:
                data.pop(key, None)
            return json.dumps(data, indent=2)
        if NODE_MODULES_DIR in path.parts:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not any(key in data for key in _BUILD_ONLY_FIELDS):
                return None
            for key in _BUILD_ONLY_FIELDS:
                data.pop(key, None)
            return json.dumps(data, indent=2)
        return None

    return _transform


__all__ = [
    "DestinationOverride",
    "FileEntry",
    "FileSet",
    "FileTransformer",
    "TransformResult",
    "compute_file_set",
    "compute_file_sets",
    "compute_node_module_file_sets",
    "copy_app_files",
    "copy_files",
    "create_transformer",
    "transform_files",
]
