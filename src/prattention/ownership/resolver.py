"""Ownership queries against a PR's destination branch.

Every query fetches (through the cache) and re-parses the CODEOWNERS or
highrisk.txt file, so the returned data is always freshly built and owned
by the caller. A broken CODEOWNERS file never blocks review automation:
it is logged and treated as if it did not exist.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from prattention.config import OwnershipConfig
from prattention.exceptions import CodeOwnersError, PatternError
from prattention.ownership.codeowners import OwnershipTable, parse_codeowners
from prattention.ownership.highrisk import count_high_risk_files, parse_high_risk
from prattention.sources import SourceFiles, SourceRef

logger = logging.getLogger("prattention.ownership")


class OwnershipResolver:
    """Answers "who owns what" and "is this approved" for a PR's files."""

    def __init__(self, sources: SourceFiles, config: OwnershipConfig | None = None) -> None:
        self.sources = sources
        self.config = config or OwnershipConfig()

    def load_table(self, ref: SourceRef, flatten: bool = True) -> OwnershipTable | None:
        """Parse the CODEOWNERS file of `ref`, or None if absent or broken."""
        text = self.sources.get(ref, self.config.codeowners_file)
        try:
            return parse_codeowners(text, flatten, self.config.fallback_group)
        except CodeOwnersError as e:
            logger.error(f"Ignoring CODEOWNERS in {ref.workspace}/{ref.repo}@{ref.branch}: {e}")
            return None

    def count_owned_files(self, ref: SourceRef, user: str, paths: Iterable[str]) -> int:
        """How many of `paths` the given user owns."""
        if not user:
            return 0
        table = self.load_table(ref)
        if table is None:
            return 0
        try:
            return table.count_owned_files(user, paths)
        except PatternError as e:
            logger.error(f"Failed to check CODEOWNERS path pattern: {e}")
            return 0

    def got_all_required_approvals(
        self, ref: SourceRef, paths: Iterable[str], approvers: Iterable[str]
    ) -> bool:
        paths = list(paths)
        if not paths:
            return False
        table = self.load_table(ref)
        if table is None:
            return False
        try:
            return table.got_all_required_approvals(paths, approvers)
        except PatternError as e:
            logger.error(f"Failed to check CODEOWNERS path pattern: {e}")
            return False

    def owners_per_path(
        self, ref: SourceRef, paths: Iterable[str], flatten: bool = True
    ) -> tuple[dict[str, list[str]], dict[str, list[str]] | None]:
        """Owners of each path; also the group table when not flattened.

        Returns ``({}, None)`` if there is no usable CODEOWNERS file.
        """
        table = self.load_table(ref, flatten)
        if table is None:
            return {}, None
        try:
            return table.owners_per_path(paths)
        except PatternError as e:
            logger.error(f"Failed to check CODEOWNERS path pattern: {e}")
            return {}, None

    def count_high_risk_files(self, ref: SourceRef, paths: Iterable[str]) -> int:
        prefixes = parse_high_risk(self.sources.get(ref, self.config.high_risk_file))
        return count_high_risk_files(prefixes, paths)

    def required_reviewers(self, ref: SourceRef, paths: Iterable[str]) -> list[str]:
        """Everyone who owns at least one of `paths`, sorted."""
        owners, _ = self.owners_per_path(ref, paths)
        return sorted({owner for path_owners in owners.values() for owner in path_owners})

    def prunable_reviewers(
        self,
        ref: SourceRef,
        paths: Iterable[str],
        reviewers: Iterable[str],
        approvers: Iterable[str] = (),
    ) -> list[str]:
        """Reviewers who own none of `paths` and have not approved.

        Returns an empty list when there is no usable CODEOWNERS file.
        """
        paths = list(paths)
        owners, _ = self.owners_per_path(ref, paths)
        if not owners:
            return []
        keep = {o for path_owners in owners.values() for o in path_owners}
        keep.update(approvers)
        return sorted(r for r in set(reviewers) if r not in keep)
