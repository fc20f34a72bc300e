"""Translation of file globs into regular expressions.

Supported syntax: ``**`` (any number of directories), ``*``, ``?``,
bracket classes (``[abc]``, ``[!abc]``) and brace alternatives
(``{a,b}``, nestable). Dotfiles are matched like any other name.
"""
from __future__ import annotations

import re

_MAGIC_CHARS = re.compile(r"[*?\[{]")


def has_magic(pattern: str) -> bool:
    return _MAGIC_CHARS.search(pattern) is not None


def normalize_pattern(pattern: str) -> str:
    pattern = pattern.replace("\\", "/")
    while pattern.startswith("./"):
        pattern = pattern[2:]
    if pattern.startswith("/"):
        pattern = pattern[1:]
    if pattern.endswith("/") and len(pattern) > 1:
        pattern = pattern[:-1] + "/**"
    return pattern


def translate(pattern: str) -> str:
    """Return a regular expression (without anchors) for ``pattern``."""

    pattern = normalize_pattern(pattern)
    out: list[str] = []
    brace_depth = 0
    i = 0
    n = len(pattern)
    while i < n:
        char = pattern[i]
        if char == "*":
            if pattern.startswith("**", i):
                at_segment_start = i == 0 or pattern[i - 1] == "/"
                end = i + 2
                if at_segment_start and end < n and pattern[end] == "/":
                    out.append("(?:.*/)?")
                    i = end + 1
                    continue
                if at_segment_start and end == n:
                    if out and out[-1] == "/":
                        out[-1] = "(?:/.*)?"
                    else:
                        out.append(".*")
                    i = end
                    continue
                out.append("[^/]*")
                i = end
                continue
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[":
            close = pattern.find("]", i + 2 if pattern.startswith("[!", i) or pattern.startswith("[^", i) else i + 1)
            if close == -1:
                out.append(re.escape(char))
            else:
                body = pattern[i + 1:close]
                if body.startswith(("!", "^")):
                    body = "^" + body[1:]
                out.append("[" + body.replace("\\", "\\\\") + "]")
                i = close + 1
                continue
        elif char == "{":
            brace_depth += 1
            out.append("(?:")
        elif char == "}" and brace_depth:
            brace_depth -= 1
            out.append(")")
        elif char == "," and brace_depth:
            out.append("|")
        elif char == "/":
            out.append("/")
        else:
            out.append(re.escape(char))
        i += 1

    if brace_depth:
        raise ValueError(f"Unbalanced braces in pattern '{pattern}'")
    return "".join(out)


def compile_glob(pattern: str) -> re.Pattern[str]:
    return re.compile(translate(pattern), re.DOTALL)


__all__ = ["compile_glob", "has_magic", "normalize_pattern", "translate"]
