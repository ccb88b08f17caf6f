"""High-risk file classification.

A ``highrisk.txt`` file lists one path prefix per line. A file is high
risk if its path starts with any listed prefix (plain prefix match, no
globbing).
"""

from __future__ import annotations

from collections.abc import Iterable


def parse_high_risk(text: str | None) -> list[str]:
    if not text:
        return []
    return [line.strip() for line in text.splitlines() if line.strip()]


def is_high_risk(prefixes: Iterable[str], file_path: str) -> bool:
    return any(file_path.startswith(prefix) for prefix in prefixes)


def count_high_risk_files(prefixes: Iterable[str], paths: Iterable[str]) -> int:
    prefixes = list(prefixes)
    return sum(1 for p in paths if is_high_risk(prefixes, p))
