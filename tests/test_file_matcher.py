from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

from packager.configuration import Configuration
from packager.errors import ConfigurationError
from packager.file_matcher import (
    FileMatcher,
    GetFileMatchersOptions,
    get_file_matchers,
    get_main_file_matchers,
    get_node_module_file_matcher,
)
from packager.glob import compile_glob, normalize_pattern, translate


def identity(pattern: str) -> str:
    return pattern


class GlobTests(unittest.TestCase):
    def test_double_star_matches_any_depth(self) -> None:
        regex = compile_glob("**/*.js")
        self.assertTrue(regex.fullmatch("a.js"))
        self.assertTrue(regex.fullmatch("lib/deep/a.js"))
        self.assertFalse(regex.fullmatch("a.json"))

    def test_single_star_stays_in_segment(self) -> None:
        regex = compile_glob("*.js")
        self.assertTrue(regex.fullmatch("a.js"))
        self.assertFalse(regex.fullmatch("lib/a.js"))

    def test_braces_and_classes(self) -> None:
        regex = compile_glob("**/*.{map,d.ts}")
        self.assertTrue(regex.fullmatch("x/a.map"))
        self.assertTrue(regex.fullmatch("a.d.ts"))
        self.assertTrue(compile_glob("file[0-9].txt").fullmatch("file3.txt"))
        self.assertFalse(compile_glob("file[!0-9].txt").fullmatch("file3.txt"))

    def test_dotfiles_match(self) -> None:
        self.assertTrue(compile_glob("**/*").fullmatch(".hidden/.file"))

    def test_trailing_double_star_includes_directory(self) -> None:
        regex = compile_glob("docs/**")
        self.assertTrue(regex.fullmatch("docs"))
        self.assertTrue(regex.fullmatch("docs/readme.md"))
        self.assertFalse(regex.fullmatch("docsx"))

    def test_normalize_pattern(self) -> None:
        self.assertEqual(normalize_pattern("./lib/"), "lib/**")
        self.assertEqual(normalize_pattern("\\win\\path"), "win/path")

    def test_unbalanced_braces(self) -> None:
        with self.assertRaises(ValueError):
            translate("{a,b")


class FileMatcherTests(unittest.TestCase):
    def test_last_matching_rule_wins(self) -> None:
        matcher = FileMatcher("/src", "/dst", identity, ["**/*", "!**/*.map"])
        self.assertTrue(matcher.matches("a.js"))
        self.assertFalse(matcher.matches("a.js.map"))

        matcher.add_pattern("**/keep.map")
        self.assertTrue(matcher.matches("sub/keep.map"))
        self.assertFalse(matcher.matches("sub/other.map"))

    def test_excluded_directory_is_pruned_only_when_nothing_below_is_included(self) -> None:
        matcher = FileMatcher("/src", "/dst", identity, ["**/*", "!docs/**", "!build", "docs/keep.md"])
        self.assertFalse(matcher.can_prune("docs"))
        self.assertTrue(matcher.can_prune("build"))
        self.assertFalse(matcher.can_prune("lib"))

        # an include placed before the exclude does not count
        earlier = FileMatcher("/src", "/dst", identity, ["docs/keep.md", "**/*", "!docs/**"])
        self.assertTrue(earlier.can_prune("docs"))

        deep = FileMatcher("/src", "/dst", identity, ["**/*", "!vendor", "vendor/*/LICENSE"])
        self.assertFalse(deep.can_prune("vendor"))
        self.assertTrue(deep.can_prune("vendor/lib/src"))

    def test_no_matching_rule_excludes(self) -> None:
        matcher = FileMatcher("/src", "/dst", identity, ["lib/**"])
        self.assertIsNone(matcher.verdict("index.js"))
        self.assertFalse(matcher.matches("index.js"))
        self.assertTrue(matcher.matches("lib/a.js"))

    def test_plain_path_selects_directory_contents(self) -> None:
        matcher = FileMatcher("/src", "/dst", identity, ["assets"])
        self.assertTrue(matcher.matches("assets"))
        self.assertTrue(matcher.matches("assets/img/logo.png"))

    def test_patterns_are_macro_expanded(self) -> None:
        matcher = FileMatcher("/src/${os}", "/dst", lambda value: value.replace("${os}", "linux"), ["bin-${os}/*"])
        self.assertEqual(matcher.from_dir, Path("/src/linux"))
        self.assertEqual(matcher.patterns, ["bin-linux/*"])

    def test_rejects_parent_references(self) -> None:
        matcher = FileMatcher("/src", "/dst", identity)
        with self.assertRaises(ConfigurationError):
            matcher.add_pattern("../outside/**")

    def test_ignore_only_and_empty(self) -> None:
        matcher = FileMatcher("/src", "/dst", identity)
        self.assertTrue(matcher.is_empty())
        matcher.add_pattern("!**/*.md")
        self.assertTrue(matcher.contains_only_ignore())
        matcher.prepend_pattern("**/*")
        self.assertEqual(matcher.patterns[0], "**/*")
        self.assertFalse(matcher.contains_only_ignore())

    def test_shared_excludes_are_consulted(self) -> None:
        root = Path("/project")
        extra = FileMatcher(root, "/out/resources", identity, ["docs/**"])
        shared: list = []
        extra.compute_parsed_patterns(shared, root)

        main = FileMatcher(root, "/out/app", identity, ["**/*"])
        main.excludes = shared
        self.assertTrue(main.is_claimed_elsewhere(root / "docs" / "readme.md"))
        self.assertFalse(main.is_claimed_elsewhere(root / "src" / "index.js"))
        accept = main.create_filter()
        self.assertFalse(accept(root / "docs" / "readme.md"))
        self.assertTrue(accept(root / "src" / "index.js"))

    def test_file_mapping_claims_its_source(self) -> None:
        root = Path("/project")
        extra = FileMatcher(root / "license.txt", "/out/LICENSE", identity)
        shared: list = []
        extra.compute_parsed_patterns(shared, root)
        self.assertEqual([rule.source for rule in shared], ["license.txt", "license.txt"])
        self.assertTrue(shared[0].matches(root / "license.txt"))


class MatcherFactoryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def options(self, platform_options: dict | None = None) -> GetFileMatchersOptions:
        return GetFileMatchersOptions(
            macro_expander=identity,
            custom_build_options=platform_options or {},
            global_out_dir=self.root / "dist",
            default_src=self.root,
        )

    def test_get_file_matchers_splits_strings_and_mappings(self) -> None:
        config = Configuration.from_mapping(
            {"extraResources": ["assets/**", {"from": "vendor", "to": "lib", "filter": ["*.so"]}, {"from": "LICENSE"}]}
        )
        matchers = get_file_matchers(config, "extraResources", self.root / "out", self.options({"extraResources": "more/**"}))

        self.assertIsNotNone(matchers)
        default, vendor, license_file = matchers
        self.assertEqual(default.patterns, ["assets/**", "more/**"])
        self.assertEqual(vendor.from_dir, self.root / "vendor")
        self.assertEqual(vendor.to_dir, self.root / "out" / "lib")
        self.assertEqual(vendor.patterns, ["*.so"])
        self.assertFalse(vendor.to_is_directory)
        self.assertTrue(license_file.to_is_directory)

    def test_get_file_matchers_reads_typed_configuration(self) -> None:
        config = Configuration.from_mapping({})
        config.extra_files = ["LICENSE*"]
        (matcher,) = get_file_matchers(config, "extraFiles", self.root / "out", self.options())
        self.assertEqual(matcher.patterns, ["LICENSE*"])

    def test_get_file_matchers_returns_none_when_unset(self) -> None:
        config = Configuration.from_mapping({})
        self.assertIsNone(get_file_matchers(config, "extraFiles", self.root / "out", self.options()))

    def test_main_matchers_default_to_everything(self) -> None:
        config = Configuration.from_mapping({})
        matchers = get_main_file_matchers(
            self.root, self.root / "out", identity, {}, config, self.root / "dist", self.root / "build"
        )
        self.assertEqual(len(matchers), 1)
        main = matchers[0]
        self.assertEqual(main.patterns[0], "**/*")
        self.assertIn("!**/node_modules", main.patterns)
        self.assertIn("!dist", main.patterns)
        self.assertIn("!build", main.patterns)
        self.assertFalse(main.matches("dist/app.zip"))
        self.assertFalse(main.matches("src/.git"))
        self.assertTrue(main.matches("src/index.js"))

    def test_main_matchers_keep_user_patterns_and_manifest(self) -> None:
        config = Configuration.from_mapping({"files": ["lib/**"]})
        main = get_main_file_matchers(self.root, self.root / "out", identity, {}, config, self.root / "dist")[0]
        self.assertEqual(main.patterns[:2], ["lib/**", "package.json"])
        self.assertTrue(main.matches("package.json"))
        self.assertFalse(main.matches("index.js"))

    def test_node_module_denylist_applies_last(self) -> None:
        config = Configuration.from_mapping({"files": ["**/*", "!node_modules/dep/docs/**"]})
        matcher = get_node_module_file_matcher(self.root, self.root / "out", identity, {}, config)
        self.assertEqual(matcher.from_dir, self.root / "node_modules")
        self.assertTrue(matcher.matches("dep/index.js"))
        self.assertFalse(matcher.matches("dep/docs/api.md"))
        self.assertFalse(matcher.matches("dep/index.js.map"))
        self.assertFalse(matcher.matches("dep/README.md"))


if __name__ == "__main__":
    unittest.main()
