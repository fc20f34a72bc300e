"""Ordered include/exclude rules scoped to a source/destination pair."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, List, Mapping, Sequence
import os
import posixpath
import re

from core.config_loader import as_list

from .configuration import Configuration
from .errors import ConfigurationError
from .glob import has_magic, normalize_pattern, translate

MacroExpanderFn = Callable[[str], str]

NODE_MODULES_DIR = "node_modules"

DEFAULT_EXCLUDES: tuple[str, ...] = (
    "!**/*.{iml,o,hprof,orig,pyc,pyo,rbc,swp,csproj,sln,xproj}",
    "!.editorconfig",
    "!**/._*",
    "!**/{.DS_Store,.git,.hg,.svn,CVS,RCS,SCCS,.gitignore,.gitattributes}",
    "!**/{__pycache__,thumbs.db,.flowconfig,.idea,.vs,.vscode,.nyc_output}",
    "!**/{appveyor.yml,.travis.yml,circle.yml}",
    "!**/{npm-debug.log,yarn.lock,.yarn-integrity,.yarn-metadata.json}",
)

# applied after user patterns for runtime modules; not configurable
NODE_MODULES_DENYLIST: tuple[str, ...] = (
    "!**/{test,tests,__tests__,powered-test,spec,example,examples,doc,docs,website,coverage}/**",
    "!**/{CHANGELOG,HISTORY,CHANGES,README,readme,AUTHORS,CONTRIBUTING}{,.md,.markdown,.txt}",
    "!**/*.{map,d.ts,tsbuildinfo,markdown}",
    "!**/.bin/**",
    "!**/{.DS_Store,.npmignore,.editorconfig,.eslintrc,.eslintrc.json,.prettierrc,.travis.yml,appveyor.yml,.gitattributes,.gitignore}",
    "!**/.github/**",
    "!**/*.{iml,o,hprof,orig,pyc,pyo,rbc,swp,csproj,sln,xproj}",
)


def _rule_expressions(pattern: str) -> List[str]:
    expressions = [translate(pattern)]
    if not has_magic(pattern):
        # a plain path also selects everything below it
        expressions.append(translate(f"{pattern}/**"))
    return expressions


def _to_posix(path: Path | str) -> str:
    return Path(path).as_posix()


def _may_match_below(pattern: str, relative_dir: str) -> bool:
    """Whether ``pattern`` can select a path strictly below ``relative_dir``."""

    if not has_magic(pattern):
        pattern = f"{pattern}/**"
    if "{" in pattern:
        # alternatives may span segments
        return True
    parts = pattern.split("/")
    dir_parts = relative_dir.split("/")
    for index, name in enumerate(dir_parts):
        if index >= len(parts):
            return False
        part = parts[index]
        if "**" in part:
            return True
        if re.fullmatch(translate(part), name, re.DOTALL) is None:
            return False
    return len(parts) > len(dir_parts)


@dataclass(frozen=True, slots=True)
class SharedExclude:
    """A path claimed by another matcher, relative to ``root_dir``."""

    root_dir: Path
    regex: re.Pattern[str]
    source: str

    def matches(self, path: Path) -> bool:
        relative = os.path.relpath(path, self.root_dir)
        if relative == ".." or relative.startswith(".." + os.sep):
            return False
        return self.regex.fullmatch(Path(relative).as_posix()) is not None


class FileMatcher:
    """Compiled ``(from, to, ordered rules)`` triple.

    Rules are evaluated front to back and the last matching rule decides; a
    path no rule matches is excluded. ``excludes`` is the list shared by all
    matchers of one pipeline run and is consulted before the own rules.
    """

    def __init__(
        self,
        from_dir: Path | str,
        to_dir: Path | str,
        macro_expander: MacroExpanderFn,
        patterns: Any = None,
    ) -> None:
        self.macro_expander = macro_expander
        self.from_dir = Path(macro_expander(str(from_dir)))
        self.to_dir = Path(macro_expander(str(to_dir)))
        self.patterns: List[str] = []
        self.excludes: List[SharedExclude] | None = None
        # set when a file mapping gave no explicit target name
        self.to_is_directory = False
        self._decision: re.Pattern[str] | None = None
        self._verdicts: dict[str, bool] = {}
        self._rule_indices: dict[str, int] = {}
        for pattern in as_list(patterns):
            self.add_pattern(pattern)

    def __repr__(self) -> str:
        return f"FileMatcher(from={self.from_dir}, to={self.to_dir}, patterns={self.patterns!r})"

    def _normalize(self, pattern: str) -> str:
        if not isinstance(pattern, str):
            raise ConfigurationError(f"File pattern must be a string, got {type(pattern).__name__}")
        negated = pattern.startswith("!")
        body = normalize_pattern(self.macro_expander(pattern[1:] if negated else pattern))
        if "/../" in f"/{body}/":
            raise ConfigurationError(f"File pattern '{pattern}' must not point outside '{self.from_dir}'")
        return f"!{body}" if negated else body

    def add_pattern(self, pattern: str) -> None:
        self.patterns.append(self._normalize(pattern))
        self._decision = None

    def prepend_pattern(self, pattern: str) -> None:
        self.patterns.insert(0, self._normalize(pattern))
        self._decision = None

    def add_all_pattern(self) -> None:
        self.add_pattern("**/*")

    def is_empty(self) -> bool:
        return not self.patterns

    def contains_only_ignore(self) -> bool:
        return bool(self.patterns) and all(pattern.startswith("!") for pattern in self.patterns)

    def _compile(self) -> re.Pattern[str]:
        alternatives: List[str] = []
        self._verdicts = {}
        self._rule_indices = {}
        index = 0
        # last rule first: the first alternative that fully matches is the last matching rule
        for position in range(len(self.patterns) - 1, -1, -1):
            pattern = self.patterns[position]
            negated = pattern.startswith("!")
            body = pattern[1:] if negated else pattern
            for expression in _rule_expressions(body):
                group = f"r{index}"
                index += 1
                self._verdicts[group] = not negated
                self._rule_indices[group] = position
                alternatives.append(f"(?P<{group}>{expression})")
        if not alternatives:
            alternatives.append("(?!)")
        return re.compile("|".join(alternatives), re.DOTALL)

    def verdict(self, relative: str) -> bool | None:
        """``True``/``False`` from the last matching rule, ``None`` if none matched."""

        if self._decision is None:
            self._decision = self._compile()
        match = self._decision.fullmatch(relative)
        if match is None:
            return None
        return self._verdicts[match.lastgroup]  # type: ignore[index]

    def matches(self, relative: str) -> bool:
        return self.verdict(relative) is True

    def can_prune(self, relative_dir: str) -> bool:
        """Whether nothing below ``relative_dir`` can be selected.

        The directory must be excluded by some rule, and no include rule
        placed after that rule may reach into it.
        """

        if self._decision is None:
            self._decision = self._compile()
        match = self._decision.fullmatch(relative_dir)
        if match is None or self._verdicts[match.lastgroup]:  # type: ignore[index]
            return False
        deciding = self._rule_indices[match.lastgroup]  # type: ignore[index]
        return not any(
            _may_match_below(pattern, relative_dir)
            for pattern in self.patterns[deciding + 1:]
            if not pattern.startswith("!")
        )

    def is_claimed_elsewhere(self, path: Path) -> bool:
        return bool(self.excludes) and any(rule.matches(path) for rule in self.excludes or ())

    def compute_parsed_patterns(self, result: List[SharedExclude], root_dir: Path | str | None = None) -> None:
        """Append the paths this matcher will place to ``result``.

        Patterns are rebased from ``from_dir`` onto ``root_dir`` so that a
        matcher over another tree can test absolute paths against them.
        """

        root = Path(root_dir) if root_dir is not None else self.from_dir
        relative_from = Path(os.path.relpath(self.from_dir, root)).as_posix()
        if not self.patterns:
            # file mapping: the source itself is the claimed path
            for expression in _rule_expressions(normalize_pattern(relative_from)):
                result.append(SharedExclude(root, re.compile(expression, re.DOTALL), relative_from))
            return

        for pattern in self.patterns:
            if pattern.startswith("!"):
                continue
            rebased = posixpath.normpath(posixpath.join(relative_from, pattern))
            for expression in _rule_expressions(normalize_pattern(rebased)):
                result.append(SharedExclude(root, re.compile(expression, re.DOTALL), rebased))

    def create_filter(self) -> Callable[[Path], bool]:
        """Predicate over absolute paths below ``from_dir``."""

        from_dir = self.from_dir

        def _filter(path: Path) -> bool:
            relative = os.path.relpath(path, from_dir)
            if relative == "." or relative.startswith(".." + os.sep) or relative == "..":
                return False
            if self.is_claimed_elsewhere(Path(path)):
                return False
            return self.matches(Path(relative).as_posix())

        return _filter


@dataclass(slots=True)
class GetFileMatchersOptions:
    macro_expander: MacroExpanderFn
    custom_build_options: Mapping[str, Any]
    global_out_dir: Path
    default_src: Path


def get_file_matchers(
    config: Configuration,
    name: str,
    default_destination: Path,
    options: GetFileMatchersOptions,
) -> List[FileMatcher] | None:
    """Matchers for configuration key ``name`` (global section, then platform).

    Plain string entries are collected into one default matcher rooted at
    ``options.default_src``; ``{from, to, filter}`` entries get their own.
    """

    default_matcher = FileMatcher(options.default_src, default_destination, options.macro_expander)
    file_matchers: List[FileMatcher] = []

    def add_patterns(patterns: Any) -> None:
        for item in as_list(patterns):
            if isinstance(item, str):
                default_matcher.add_pattern(item)
                continue
            if not isinstance(item, Mapping):
                raise ConfigurationError(f"'{name}' entries must be strings or {{from, to, filter}} mappings")
            source = item.get("from")
            target = item.get("to")
            from_dir = options.default_src if source is None else options.default_src / source
            to_dir = default_destination if target is None else default_destination / target
            matcher = FileMatcher(from_dir, to_dir, options.macro_expander, item.get("filter"))
            matcher.to_is_directory = target is None
            file_matchers.append(matcher)

    add_patterns(config.file_patterns(name))
    add_patterns(options.custom_build_options.get(name))

    if not default_matcher.is_empty():
        file_matchers.insert(0, default_matcher)
    return file_matchers or None


def _relative_if_inside(path: Path, base: Path) -> str | None:
    relative = os.path.relpath(path, base)
    if relative == "." or relative.startswith(".."):
        return None
    return Path(relative).as_posix()


def get_main_file_matchers(
    app_dir: Path,
    destination: Path,
    macro_expander: MacroExpanderFn,
    platform_options: Mapping[str, Any],
    config: Configuration,
    out_dir: Path,
    build_resources_dir: Path | None = None,
) -> List[FileMatcher]:
    options = GetFileMatchersOptions(
        macro_expander=macro_expander,
        custom_build_options=platform_options,
        global_out_dir=out_dir,
        default_src=app_dir,
    )
    matchers = get_file_matchers(config, "files", destination, options) or []

    default_matcher = next(
        (matcher for matcher in matchers if matcher.from_dir == Path(app_dir) and matcher.to_dir == Path(destination)),
        None,
    )
    if default_matcher is None:
        default_matcher = FileMatcher(app_dir, destination, macro_expander)
        matchers.insert(0, default_matcher)

    if default_matcher.is_empty() or default_matcher.contains_only_ignore():
        default_matcher.prepend_pattern("**/*")
    else:
        default_matcher.add_pattern("package.json")

    # runtime modules are collected by the node module matcher
    default_matcher.add_pattern(f"!**/{NODE_MODULES_DIR}")
    for pattern in DEFAULT_EXCLUDES:
        default_matcher.add_pattern(pattern)

    for excluded in (out_dir, build_resources_dir):
        if excluded is None:
            continue
        relative = _relative_if_inside(Path(excluded), Path(app_dir))
        if relative is not None:
            default_matcher.add_pattern(f"!{relative}")

    return matchers


def _node_module_patterns(values: Iterable[Any]) -> List[str]:
    prefix = f"{NODE_MODULES_DIR}/"
    patterns: List[str] = []
    for value in values:
        if not isinstance(value, str):
            continue
        negated = value.startswith("!")
        body = value[1:] if negated else value
        if body.startswith(prefix):
            rebased = body[len(prefix):]
            patterns.append(f"!{rebased}" if negated else rebased)
    return patterns


def get_node_module_file_matcher(
    app_dir: Path,
    destination: Path,
    macro_expander: MacroExpanderFn,
    platform_options: Mapping[str, Any],
    config: Configuration,
) -> FileMatcher:
    matcher = FileMatcher(
        Path(app_dir) / NODE_MODULES_DIR,
        Path(destination) / NODE_MODULES_DIR,
        macro_expander,
    )
    user_patterns = _node_module_patterns(
        list(config.file_patterns("files")) + list(as_list(platform_options.get("files")))
    )
    if not user_patterns or all(pattern.startswith("!") for pattern in user_patterns):
        matcher.add_all_pattern()
    for pattern in user_patterns:
        matcher.add_pattern(pattern)
    for pattern in NODE_MODULES_DENYLIST:
        matcher.add_pattern(pattern)
    return matcher


__all__ = [
    "DEFAULT_EXCLUDES",
    "FileMatcher",
    "GetFileMatchersOptions",
    "NODE_MODULES_DENYLIST",
    "NODE_MODULES_DIR",
    "SharedExclude",
    "get_file_matchers",
    "get_main_file_matchers",
    "get_node_module_file_matcher",
]
