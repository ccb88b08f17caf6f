"""Doublestar path pattern matching.

Supports the glob dialect used by CODEOWNERS files:

  - ``*`` matches any run of characters except ``/``
  - ``?`` matches one character except ``/``
  - ``**`` as a whole path component matches zero or more directories
  - ``[abc]``, ``[a-z]``, ``[!abc]`` / ``[^abc]`` character classes
  - ``{a,b}`` alternatives (may nest)
  - ``\\`` escapes the next character

Patterns are translated to regular expressions once and cached.
"""

from __future__ import annotations

import re
from functools import lru_cache

from prattention.exceptions import PatternError


def match(pattern: str, path: str) -> bool:
    """Return True if `path` matches `pattern` in its entirety.

    Raises:
        PatternError: if the pattern is not valid glob syntax.
    """
    return compile_pattern(pattern).fullmatch(path) is not None


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    regex = translate(pattern)
    try:
        return re.compile(regex)
    except re.error as e:
        raise PatternError(pattern, str(e)) from e


def translate(pattern: str) -> str:
    """Translate a doublestar glob into an (unanchored) regular expression."""
    out: list[str] = []
    brace_depth = 0
    i, n = 0, len(pattern)

    while i < n:
        c = pattern[i]

        if c == "*":
            if _is_doublestar(pattern, i):
                if i + 2 == n:
                    # Trailing "**": the directory itself and everything below it.
                    if out and out[-1] == "/":
                        out.pop()
                        out.append("(?:/.*)?")
                    else:
                        out.append(".*")
                    i += 2
                else:
                    out.append("(?:.*/)?")
                    i += 3
                continue
            while i < n and pattern[i] == "*":
                i += 1
            out.append("[^/]*")
            continue

        if c == "?":
            out.append("[^/]")
        elif c == "[":
            end = _class_end(pattern, i)
            if end < 0:
                raise PatternError(pattern, "unterminated character class")
            body = pattern[i + 1:end]
            negate = body[:1] in ("!", "^")
            if negate:
                body = body[1:]
            out.append(f"(?!/)[{'^' if negate else ''}{_class_body(body)}]")
            i = end
        elif c == "{":
            brace_depth += 1
            out.append("(?:")
        elif c == "}" and brace_depth > 0:
            brace_depth -= 1
            out.append(")")
        elif c == "," and brace_depth > 0:
            out.append("|")
        elif c == "\\":
            if i + 1 == n:
                raise PatternError(pattern, "trailing escape character")
            i += 1
            out.append(re.escape(pattern[i]))
        else:
            out.append(re.escape(c))
        i += 1

    if brace_depth:
        raise PatternError(pattern, "unterminated alternatives")
    return "".join(out)


def _is_doublestar(pattern: str, i: int) -> bool:
    """A "**" counts only when it spans a whole path component."""
    if not pattern.startswith("**", i):
        return False
    starts_component = i == 0 or pattern[i - 1] in "/{,"
    ends_component = i + 2 == len(pattern) or pattern[i + 2] == "/"
    return starts_component and ends_component


def _class_body(body: str) -> str:
    """Escape a glob character class body for use inside a regex class."""
    out: list[str] = []
    i = 0
    while i < len(body):
        c = body[i]
        if c == "\\" and i + 1 < len(body):
            i += 1
            out.append(re.escape(body[i]))
        elif c == "-":
            out.append(c)
        elif c in "\\[]^":
            out.append("\\" + c)
        else:
            out.append(c)
        i += 1
    return "".join(out)


def _class_end(pattern: str, start: int) -> int:
    """Index of the "]" closing the class opened at `start`, or -1."""
    i = start + 1
    if i < len(pattern) and pattern[i] in "!^":
        i += 1
    if i < len(pattern) and pattern[i] == "]":
        i += 1  # A leading "]" is a literal.
    while i < len(pattern):
        if pattern[i] == "\\":
            i += 2
            continue
        if pattern[i] == "]":
            return i
        i += 1
    return -1
