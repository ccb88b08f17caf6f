"""Access to CODEOWNERS and highrisk.txt files in a PR's destination branch."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from prattention.cache import TTLCache
from prattention.exceptions import SourceFetchError

logger = logging.getLogger("prattention.sources")


@dataclass(frozen=True)
class SourceRef:
    """Identifies the destination branch (and commit) of a pull request."""

    workspace: str
    repo: str
    branch: str
    commit: str = ""

    def cache_key(self, path: str) -> str:
        # Keyed by branch, not commit.
        return f"{self.workspace}:{self.repo}:{self.branch}:{path}"


class SourceFetcher(Protocol):
    """Retrieves the text of a file at a given ref.

    Implementations return an empty string when the file does not exist,
    and raise SourceFetchError for any other failure.
    """

    def fetch(self, ref: SourceRef, path: str) -> str: ...


class DirectoryFetcher:
    """Reads files from a local checkout, ignoring the ref."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def fetch(self, ref: SourceRef, path: str) -> str:
        file_path = self.root / path.lstrip("/")
        try:
            return file_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except UnicodeDecodeError as e:
            raise SourceFetchError(f"Failed to decode {file_path}: {e}") from e
        except OSError as e:
            raise SourceFetchError(f"Failed to read {file_path}: {e}") from e


class GitFetcher:
    """Reads files from a local git repository at the ref's commit (or branch)."""

    def __init__(self, root: str | Path, timeout: float = 15.0) -> None:
        self.root = Path(root)
        self.timeout = timeout

    def fetch(self, ref: SourceRef, path: str) -> str:
        revision = ref.commit or ref.branch or "HEAD"
        try:
            result = subprocess.run(
                ["git", "show", f"{revision}:{path.lstrip('/')}"],
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            raise SourceFetchError(f"Failed to run git in {self.root}: {e}") from e
        except UnicodeDecodeError as e:
            raise SourceFetchError(f"Failed to decode {path} at {revision}: {e}") from e

        if result.returncode != 0:
            # Missing path or unknown revision.
            return ""
        return result.stdout


class SourceFiles:
    """Cached front for a SourceFetcher.

    Fetch failures are logged and resolve to an empty file (which callers
    treat as "no owners" / "no high-risk files"); they are not cached.
    """

    def __init__(self, fetcher: SourceFetcher, cache: TTLCache | None = None) -> None:
        self.fetcher = fetcher
        self.cache = cache if cache is not None else TTLCache()

    def get(self, ref: SourceRef, path: str) -> str:
        key = ref.cache_key(path)
        found, text = self.cache.get(key)
        if found:
            logger.debug(f"Source file cache hit: {key}")
            return text

        try:
            text = self.fetcher.fetch(ref, path)
        except SourceFetchError as e:
            logger.warning(
                f"Failed to read source file {path} "
                f"({ref.workspace}/{ref.repo}@{ref.branch} {ref.commit}): {e}"
            )
            return ""

        self.cache.set(key, text)
        logger.debug(f"Fetched source file {key} (cache {self.cache.stats()})")
        return text
