"""Single-file application archive (zstandard-compressed PAX tar)."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Iterable, Mapping, Protocol
import asyncio
import hashlib
import io
import os
import shutil
import tarfile

import zstandard as zstd

ARCHIVE_FILENAME = "app.tar.zst"
UNPACKED_SUFFIX = ".unpacked"

_COMPRESSION_LEVELS: dict[str, int] = {
    "store": 1,
    "normal": 9,
    "maximum": 19,
}


class ArchiveFileSet(Protocol):
    """Shape of the file sets handed to :class:`AppArchiver`."""

    destination: Path
    files: list[Any]
    transformed: dict[str, bytes]


@dataclass(frozen=True, slots=True)
class ArchiveIntegrity:
    file: str
    algorithm: str
    hash: str
    size: int


class Archiver(Protocol):
    async def pack(self, file_sets: Iterable[ArchiveFileSet]) -> Path:
        ...


def unpacked_dir_for(archive_path: Path) -> Path:
    return archive_path.with_name(archive_path.name + UNPACKED_SUFFIX)


def _thread_count(total_size: int) -> int:
    cpu_count = os.cpu_count() or 1
    if cpu_count <= 1:
        return 0
    size_mb = max(1, total_size) / (1024 * 1024)
    desired = 1
    if size_mb >= 32:
        desired = 2
    if size_mb >= 256:
        desired = 4
    if size_mb >= 1024:
        desired = 8
    return min(desired, cpu_count) if desired > 1 else 0


class AppArchiver:
    """Packs ordered file sets into ``<dest_dir>/app.tar.zst``.

    Entry names are relative to ``archive_root`` (the directory the files
    would have been copied to without archiving). Files accepted by
    ``unpack_filter`` are written next to the archive, under
    ``app.tar.zst.unpacked``, instead of into it.
    """

    def __init__(
        self,
        *,
        dest_dir: Path,
        archive_root: Path,
        options: Mapping[str, Any] | None = None,
        unpack_filter: Callable[[Path], bool] | None = None,
        compression: str = "normal",
    ) -> None:
        if compression not in _COMPRESSION_LEVELS:
            raise ValueError(f"Unsupported compression level '{compression}'")
        self.dest_dir = Path(dest_dir)
        self.archive_root = Path(archive_root)
        self.options = dict(options or {})
        self.unpack_filter = unpack_filter
        self.compression = compression

    @property
    def archive_path(self) -> Path:
        return self.dest_dir / ARCHIVE_FILENAME

    async def pack(self, file_sets: Iterable[ArchiveFileSet]) -> Path:
        return await asyncio.to_thread(self._write, list(file_sets))

    def _entry_name(self, file_set: ArchiveFileSet, relative: str) -> str:
        target = Path(file_set.destination) / relative
        try:
            return target.relative_to(self.archive_root).as_posix()
        except ValueError:
            return PurePosixPath(relative).as_posix()

    def _write(self, file_sets: list[ArchiveFileSet]) -> Path:
        self.dest_dir.mkdir(parents=True, exist_ok=True)
        unpacked_dir = unpacked_dir_for(self.archive_path)
        total_size = sum(entry.stat.st_size for file_set in file_sets for entry in file_set.files)

        params = zstd.ZstdCompressionParameters.from_level(
            _COMPRESSION_LEVELS[self.compression],
            threads=_thread_count(total_size),
            write_checksum=True,
        )
        compressor = zstd.ZstdCompressor(compression_params=params)
        seen: set[str] = set()

        with self.archive_path.open("wb") as handle:
            with compressor.stream_writer(handle, closefd=False) as writer:
                with tarfile.open(fileobj=writer, mode="w|", format=tarfile.PAX_FORMAT) as tar:
                    for file_set in file_sets:
                        renamed = getattr(file_set, "renamed", {})
                        for entry in file_set.files:
                            name = self._entry_name(file_set, renamed.get(entry.relative, entry.relative))
                            if name in seen:
                                continue
                            seen.add(name)
                            content = file_set.transformed.get(entry.relative)
                            if self.unpack_filter is not None and self.unpack_filter(entry.source):
                                self._write_unpacked(unpacked_dir / name, entry, content)
                                continue
                            self._add_entry(tar, name, entry, content)

        return self.archive_path

    @staticmethod
    def _write_unpacked(target: Path, entry: Any, content: bytes | None) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        if content is None:
            shutil.copy2(entry.source, target)
        else:
            target.write_bytes(content)

    @staticmethod
    def _add_entry(tar: tarfile.TarFile, name: str, entry: Any, content: bytes | None) -> None:
        info = tarfile.TarInfo(name)
        info.mode = entry.stat.st_mode & 0o777
        info.mtime = int(entry.stat.st_mtime)
        if content is None:
            info.size = entry.stat.st_size
            with open(entry.source, "rb") as source:
                tar.addfile(info, source)
        else:
            info.size = len(content)
            tar.addfile(info, io.BytesIO(content))


def compute_integrity(resources_dir: Path) -> ArchiveIntegrity:
    """Return the SHA-256 digest and size of the archive in ``resources_dir``."""

    archive = Path(resources_dir) / ARCHIVE_FILENAME
    digest = hashlib.sha256()
    size = 0
    with archive.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1 << 20), b""):
            digest.update(chunk)
            size += len(chunk)
    return ArchiveIntegrity(file=ARCHIVE_FILENAME, algorithm="SHA256", hash=digest.hexdigest(), size=size)


def list_archive(archive_path: Path) -> list[str]:
    dctx = zstd.ZstdDecompressor()
    names: list[str] = []
    with Path(archive_path).open("rb") as ifh:
        with dctx.stream_reader(ifh) as reader:
            with tarfile.open(fileobj=reader, mode="r|") as tar:
                for member in tar:
                    if member.isfile():
                        names.append(member.name)
    return names


def archive_contains(archive_path: Path, relative: str) -> bool:
    """Whether ``relative`` is inside the archive or in its unpacked directory."""

    archive_path = Path(archive_path)
    if not archive_path.is_file():
        return False
    normalized = PurePosixPath(relative.replace("\\", "/")).as_posix()
    if (unpacked_dir_for(archive_path) / normalized).is_file():
        return True
    return normalized in list_archive(archive_path)


__all__ = [
    "ARCHIVE_FILENAME",
    "AppArchiver",
    "ArchiveFileSet",
    "ArchiveIntegrity",
    "Archiver",
    "UNPACKED_SUFFIX",
    "archive_contains",
    "compute_integrity",
    "list_archive",
    "unpacked_dir_for",
]
