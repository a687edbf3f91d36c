from __future__ import annotations

import re
from functools import lru_cache

from bucketfs.errors import MalformedAddress

GLOB_METACHARACTERS = frozenset("*?[")

_REGEX_SPECIALS = frozenset(".+{}()|^$")


def is_glob(text: str) -> bool:
    return any(char in GLOB_METACHARACTERS for char in text)


def _class_end(src: str, start: int) -> int:
    """Index just past the ``]`` closing the class opened before ``start``, or -1."""

    idx = start
    if idx < len(src) and src[idx] == "^":
        idx += 1
    # A leading ']' is a member, not the terminator.
    if idx < len(src) and src[idx] == "]":
        idx += 1
    close = src.find("]", idx)
    return -1 if close < 0 else close + 1


def translate(pattern: str) -> str:
    """Translate a key glob into a regular expression for ``re.fullmatch``.

    ``*`` stays within one path segment, ``**`` crosses separators, ``?`` is one
    non-separator character and ``[...]`` classes pass through unchanged. An
    unclosed ``[`` is a literal bracket.
    """

    out: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        i += 1
        if char == "[":
            end = _class_end(pattern, i)
            if end < 0:
                out.append("\\[")
            else:
                out.append(pattern[i - 1 : end])
                i = end
        elif char == "*":
            if i < len(pattern) and pattern[i] == "*":
                while i < len(pattern) and pattern[i] == "*":
                    i += 1
                # "**/*" reads as "**".
                if pattern.startswith("/*", i):
                    i += 2
                    while i < len(pattern) and pattern[i] == "*":
                        i += 1
                out.append(".*")
            else:
                out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "\\":
            out.append("\\\\")
        elif char in _REGEX_SPECIALS:
            out.append("\\" + char)
        else:
            out.append(char)
    return "".join(out)


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> re.Pattern[str]:
    try:
        return re.compile(translate(pattern), re.DOTALL)
    except re.error as exc:
        raise MalformedAddress(f"Invalid glob {pattern!r}: {exc}") from exc


def glob_matches(pattern: str, key: str) -> bool:
    return compile_glob(pattern).fullmatch(key) is not None
