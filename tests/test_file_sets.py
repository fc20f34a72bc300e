from __future__ import annotations

from pathlib import Path
import json
import os
import tempfile
import unittest

from packager.file_matcher import FileMatcher
from packager.file_sets import (
    DestinationOverride,
    FileEntry,
    FileSet,
    compute_file_set,
    compute_file_sets,
    copy_app_files,
    copy_files,
    create_transformer,
    transform_files,
)


def identity(pattern: str) -> str:
    return pattern


def write(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class ComputeFileSetTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.src = self.root / "src"
        self.dst = self.root / "dst"

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    async def test_pattern_precedence(self) -> None:
        write(self.src / "a.js", "a")
        write(self.src / "a.js.map", "{}")
        matcher = FileMatcher(self.src, self.dst, identity, ["**/*", "!**/*.map"])

        (file_set,) = await compute_file_sets([matcher], None)

        self.assertEqual([entry.relative for entry in file_set.files], ["a.js"])
        self.assertEqual(file_set.destination, self.dst)

    async def test_later_include_reaches_into_excluded_directory(self) -> None:
        write(self.src / "a.js")
        write(self.src / "docs" / "keep.md")
        write(self.src / "docs" / "other.md")
        write(self.src / "docs" / "deep" / "keep.md")
        matcher = FileMatcher(self.src, self.dst, identity, ["**/*", "!docs/**", "docs/keep.md", "**/deep/keep.md"])

        (file_set,) = await compute_file_sets([matcher], None)

        self.assertEqual(
            sorted(entry.relative for entry in file_set.files),
            ["a.js", "docs/deep/keep.md", "docs/keep.md"],
        )

    async def test_shared_excludes_remove_claimed_files(self) -> None:
        write(self.src / "index.js")
        write(self.src / "docs" / "readme.md")
        extra = FileMatcher(self.src, self.dst / "resources", identity, ["docs/**"])
        shared: list = []
        extra.compute_parsed_patterns(shared, self.src)
        main = FileMatcher(self.src, self.dst / "app", identity, ["**/*"])
        main.excludes = shared

        (file_set,) = await compute_file_sets([main], None)

        self.assertEqual([entry.relative for entry in file_set.files], ["index.js"])

    async def test_empty_matcher_takes_everything_and_missing_source_is_empty(self) -> None:
        write(self.src / "one.txt")
        write(self.src / "nested" / "two.txt")
        file_set = compute_file_set(FileMatcher(self.src, self.dst, identity))
        self.assertEqual([entry.relative for entry in file_set.files], ["one.txt", "nested/two.txt"])

        missing = compute_file_set(FileMatcher(self.root / "missing", self.dst, identity))
        self.assertEqual(len(missing), 0)

    @unittest.skipUnless(hasattr(os, "symlink"), "symlinks not supported")
    async def test_symlink_cycles_are_not_followed(self) -> None:
        write(self.src / "lib" / "a.js")
        os.symlink(self.src, self.src / "lib" / "loop", target_is_directory=True)
        os.symlink(self.src / "missing.js", self.src / "dangling.js")

        file_set = compute_file_set(FileMatcher(self.src, self.dst, identity, ["**/*"]))

        self.assertEqual([entry.relative for entry in file_set.files], ["lib/a.js"])

    async def test_transformer_is_not_called_while_matching(self) -> None:
        write(self.src / "a.js")
        calls: list[Path] = []

        def transformer(path: Path) -> None:
            calls.append(path)

        await compute_file_sets([FileMatcher(self.src, self.dst, identity, ["**/*"])], transformer)
        self.assertEqual(calls, [])


class CopyTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.src = self.root / "src"
        self.dst = self.root / "dst"

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    async def test_copy_applies_transformer_per_file(self) -> None:
        write(self.src / "keep.txt", "keep")
        write(self.src / "upper.txt", "upper")
        write(self.src / "move.txt", "move")

        def transformer(path: Path):
            if path.name == "upper.txt":
                return path.read_text().upper()
            if path.name == "move.txt":
                return DestinationOverride("moved/renamed.txt")
            return None

        file_set = compute_file_set(FileMatcher(self.src, self.dst, identity, ["**/*"]))
        await copy_app_files(file_set, transformer)

        self.assertEqual((self.dst / "keep.txt").read_text(), "keep")
        self.assertEqual((self.dst / "upper.txt").read_text(), "UPPER")
        self.assertEqual((self.dst / "moved" / "renamed.txt").read_text(), "move")
        self.assertFalse((self.dst / "move.txt").exists())

    async def test_transformer_failure_names_the_file(self) -> None:
        bad = write(self.src / "bad.txt", "x")

        def transformer(path: Path):
            raise ValueError("broken")

        file_set = FileSet(src=self.src, destination=self.dst, files=[FileEntry(bad, "bad.txt", bad.stat())])
        with self.assertRaises(ValueError) as ctx:
            await transform_files(transformer, file_set)
        self.assertTrue(any("bad.txt" in note for note in ctx.exception.__notes__))

    async def test_copy_files_handles_file_mappings(self) -> None:
        write(self.src / "LICENSE", "license")
        write(self.src / "assets" / "logo.png", "png")
        (self.dst / "resources").mkdir(parents=True)

        to_directory = FileMatcher(self.src / "LICENSE", self.dst / "resources", identity)
        to_directory.to_is_directory = True
        renamed = FileMatcher(self.src / "LICENSE", self.dst / "LICENSE.txt", identity)
        tree = FileMatcher(self.src / "assets", self.dst / "assets", identity)

        await copy_files([to_directory, renamed, tree], None)

        self.assertEqual((self.dst / "resources" / "LICENSE").read_text(), "license")
        self.assertEqual((self.dst / "LICENSE.txt").read_text(), "license")
        self.assertEqual((self.dst / "assets" / "logo.png").read_text(), "png")


class TransformerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.app = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_application_manifest_is_merged_and_cleaned(self) -> None:
        manifest = write(
            self.app / "package.json",
            json.dumps({"name": "demo", "version": "1.0.0", "scripts": {"x": "y"}, "build": {}, "main": "a.js"}),
        )
        transformer = create_transformer(self.app, {"main": "b.js", "extra": {"flag": True}})

        data = json.loads(transformer(manifest))

        self.assertEqual(data["main"], "b.js")
        self.assertEqual(data["extra"], {"flag": True})
        self.assertNotIn("scripts", data)
        self.assertNotIn("build", data)

    def test_module_manifests_only_change_when_needed(self) -> None:
        clean = write(self.app / "node_modules" / "a" / "package.json", json.dumps({"name": "a"}))
        dirty = write(
            self.app / "node_modules" / "b" / "package.json",
            json.dumps({"name": "b", "devDependencies": {"x": "1"}}),
        )
        transformer = create_transformer(self.app, None)

        self.assertIsNone(transformer(clean))
        self.assertEqual(json.loads(transformer(dirty)), {"name": "b"})
        self.assertIsNone(transformer(write(self.app / "index.js")))

    def test_extra_transformer_runs_first(self) -> None:
        manifest = write(self.app / "package.json", json.dumps({"name": "demo"}))
        transformer = create_transformer(self.app, None, lambda path: b"override")
        self.assertEqual(transformer(manifest), b"override")


if __name__ == "__main__":
    unittest.main()
