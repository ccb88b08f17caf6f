"""Diffstat of a local branch: which files a change touches.

This is the "paths" input of ownership queries when running against a
local checkout instead of a hosted pull request.
"""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from pathlib import Path

_HUNK_RE = re.compile(r"@@ -\d+(?:,\d+)? \+\d+(?:,\d+)? @@")


@dataclass
class FileDiff:
    """Changes to a single file."""
    path: str
    status: str  # 'added', 'modified', 'deleted', 'renamed'
    old_path: str | None = None  # For renames
    added_lines: int = 0
    deleted_lines: int = 0


def parse_diff(diff_text: str) -> list[FileDiff]:
    """Parse unified diff text into per-file line counts."""
    files: list[FileDiff] = []
    current: FileDiff | None = None
    in_hunk = False

    for line in diff_text.splitlines():
        if line.startswith("diff --git"):
            if current:
                files.append(current)
            parts = line.split(" b/")
            current = FileDiff(path=parts[-1] if len(parts) > 1 else "", status="modified")
            in_hunk = False
            continue

        if current is None:
            continue

        if not in_hunk:
            if line.startswith("new file"):
                current.status = "added"
            elif line.startswith("deleted file"):
                current.status = "deleted"
            elif line.startswith("rename from "):
                current.old_path = line[len("rename from "):]
                current.status = "renamed"
            elif line.startswith("rename to "):
                current.path = line[len("rename to "):]
            elif line.startswith("+++ b/"):
                current.path = line[6:]

        if _HUNK_RE.match(line):
            in_hunk = True
        elif in_hunk:
            if line.startswith("+"):
                current.added_lines += 1
            elif line.startswith("-"):
                current.deleted_lines += 1

    if current:
        files.append(current)

    return files


def changed_paths(file_diffs: list[FileDiff]) -> list[str]:
    """All paths touched by a diff, including the source side of renames."""
    paths: list[str] = []
    for fd in file_diffs:
        if fd.old_path and fd.old_path not in paths:
            paths.append(fd.old_path)
        if fd.path and fd.path not in paths:
            paths.append(fd.path)
    return paths


def get_git_diff(root: Path, base: str = "main") -> str:
    """Get the git diff between the current branch and base."""
    try:
        result = subprocess.run(
            ["git", "diff", f"{base}...HEAD"],
            cwd=root,
            capture_output=True,
            text=True,
            timeout=30,
        )
        if result.returncode == 0:
            return result.stdout
        # Fallback: diff against base directly
        result = subprocess.run(
            ["git", "diff", base],
            cwd=root,
            capture_output=True,
            text=True,
            timeout=30,
        )
        return result.stdout
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return ""
