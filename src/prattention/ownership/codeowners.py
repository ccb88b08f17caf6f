"""CODEOWNERS parsing and ownership resolution.

The dialect is the usual CODEOWNERS syntax plus one local extension:
lines whose first token starts with ``@@`` declare named groups, e.g.

    @@@Backend @"Jane Doe" @"John Roe" @@Infra
    /services/ @@Backend

declares the group ``@Backend`` (which nests ``@Infra``) and makes it the
owner of everything under ``/services/``. The reserved group
``@FallbackOwners`` can approve anything on its own.

As usual, when several patterns match a file the last one in the file wins.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

import networkx as nx

from prattention.exceptions import CyclicGroupError, UndefinedGroupError
from prattention.ownership import glob

logger = logging.getLogger("prattention.ownership")

FALLBACK_GROUP = "@FallbackOwners"

_LINE_RE = re.compile(r"^(@*\S+)\s*(.*)$")
_MEMBER_RE = re.compile(r'@{1,2}"?[\w\s]+"?', re.ASCII)


@dataclass
class OwnershipTable:
    """Parsed CODEOWNERS content.

    ``path_list`` is kept in reverse file order, so the first match wins
    when scanning it. Owner tokens are either individual names or
    ``@group`` references; after flattening, ``path_owners`` holds
    individuals only.
    """

    path_list: list[str] = field(default_factory=list)
    ignore_list: list[str] = field(default_factory=list)
    path_owners: dict[str, list[str]] = field(default_factory=dict)
    groups: dict[str, list[str]] = field(default_factory=dict)
    users: set[str] = field(default_factory=set)
    flattened: bool = False
    fallback_group: str = FALLBACK_GROUP

    # ------------------------------------------------------------------
    # Path queries
    # ------------------------------------------------------------------

    def get_owners(self, file_path: str) -> list[str]:
        """Owners of a single file, or an empty list if nobody owns it.

        Raises:
            PatternError: if a pattern in the file is not valid glob syntax.
        """
        if not file_path.startswith("/"):
            file_path = "/" + file_path

        for pattern in self.path_list:
            if glob.match(pattern, file_path) and not self.is_ignored(file_path):
                return list(self.path_owners.get(pattern, []))
        return []

    def is_ignored(self, file_path: str) -> bool:
        if not file_path.startswith("/"):
            file_path = "/" + file_path
        return any(glob.match(pattern, file_path) for pattern in self.ignore_list)

    def owners_per_path(
        self, paths: Iterable[str]
    ) -> tuple[dict[str, list[str]], dict[str, list[str]] | None]:
        """Owners of each path, plus the raw group table when not flattened."""
        owners = {p: self.get_owners(p) for p in paths}
        if self.flattened:
            return owners, None
        return owners, {name: list(members) for name, members in self.groups.items()}

    # ------------------------------------------------------------------
    # Approvals
    # ------------------------------------------------------------------

    def all_approved(
        self, approvers: Iterable[str], owners: Iterable[str], need_all: bool = True
    ) -> bool:
        """Check owner approvals.

        With ``need_all``, every entry in ``owners`` must be satisfied, unless
        a single member of the fallback group approved. Without it, one
        satisfied entry is enough. A group entry is satisfied by an approval
        from any one of its (recursively resolved) members.
        """
        approved = set(approvers)
        owners = list(owners)

        fallback = self.groups.get(self.fallback_group)
        if need_all and fallback is not None:
            if self.all_approved(approved, fallback, need_all=False):
                return True

        approvals = 0
        for name in owners:
            if not name.startswith("@"):
                if name in approved:
                    approvals += 1
                continue

            members = self.groups.get(name)
            if members is None:
                logger.error(f"Group not found in CODEOWNERS: {name}")
                return False
            if self.all_approved(approved, members, need_all=False):
                approvals += 1

        if need_all:
            return approvals == len(owners)
        return approvals > 0

    def count_owned_files(self, user: str, paths: Iterable[str]) -> int:
        """How many of `paths` list `user` among their owners."""
        if not user or user not in self.users:
            return 0
        return sum(1 for p in paths if user in self.get_owners(p))

    def got_all_required_approvals(
        self, paths: Iterable[str], approvers: Iterable[str]
    ) -> bool:
        paths = list(paths)
        if not paths:
            return False
        approved = set(approvers)
        return all(self.all_approved(approved, self.get_owners(p), True) for p in paths)

    # ------------------------------------------------------------------
    # Group expansion
    # ------------------------------------------------------------------

    def check_group_cycles(self) -> None:
        """Raise CyclicGroupError if any declared group nests itself."""
        graph = nx.DiGraph()
        for name, members in self.groups.items():
            graph.add_node(name)
            for member in members:
                if member.startswith("@") and member in self.groups:
                    graph.add_edge(name, member)
        try:
            edges = nx.find_cycle(graph)
        except nx.NetworkXNoCycle:
            return
        cycle = [u for u, _ in edges]
        raise CyclicGroupError(cycle + [cycle[0]])

    def expand_groups(self) -> OwnershipTable:
        """Replace every path's owners with the individuals they resolve to.

        Expanded groups are memoized back into ``groups``, so calling this
        again yields the same result.

        Raises:
            UndefinedGroupError: if an owner list references an unknown group.
        """
        expanded_paths: dict[str, list[str]] = {}
        for pattern, owners in self.path_owners.items():
            expanded: list[str] = []
            for owner in owners:
                expanded.extend(self._expand_member(owner))
            expanded_paths[pattern] = sorted(set(expanded))

        self.path_owners = expanded_paths
        self.flattened = True
        return self

    def _expand_member(self, name: str) -> list[str]:
        if not name.startswith("@"):
            self.users.add(name)
            return [name]

        members = self.groups.get(name)
        if members is None:
            raise UndefinedGroupError(name)

        expanded: list[str] = []
        for member in members:
            expanded.extend(self._expand_member(member))

        result = sorted(set(expanded))
        self.groups[name] = result
        return result


def parse_codeowners(
    text: str | None,
    flatten: bool = True,
    fallback_group: str = FALLBACK_GROUP,
) -> OwnershipTable | None:
    """Parse CODEOWNERS text into an OwnershipTable.

    Returns None for missing or empty text, meaning "no owners".

    Raises:
        CodeOwnersError: if groups are cyclic, or (when flattening) an
            owner list references an undefined group.
    """
    if not text:
        return None

    table = OwnershipTable(fallback_group=fallback_group)
    for line in text.splitlines():
        pattern, group, members = parse_line(line)
        if pattern.startswith("!"):
            table.ignore_list.append(normalize_pattern(pattern[1:]))
        elif pattern:
            pattern = normalize_pattern(pattern)
            table.path_list.append(pattern)
            table.path_owners.setdefault(pattern, []).extend(members)
            table.users.update(m for m in members if not m.startswith("@"))
        elif group:
            table.groups.setdefault(group, []).extend(members)

    table.path_list.reverse()  # Last match wins.
    table.check_group_cycles()
    if flatten:
        table.expand_groups()
    return table


def parse_line(line: str) -> tuple[str, str, list[str]]:
    """Split one CODEOWNERS line into (path pattern, group name, members).

    At most one of the first two values is non-empty.
    """
    line = line.split("#", 1)[0].strip()
    if not line or line.startswith("Check("):
        return "", "", []

    m = _LINE_RE.match(line)
    if m is None:
        return "", "", []
    head, rest = m.group(1), m.group(2)

    members = [
        token.strip().removeprefix("@").strip('"')
        for token in _MEMBER_RE.findall(rest)
    ]
    if head.startswith("@@"):
        return "", head[2:], members
    return head, "", members


def normalize_pattern(pattern: str) -> str:
    """Make a CODEOWNERS pattern suitable for doublestar matching."""
    if not pattern.startswith("/") and not pattern.startswith("**/"):
        pattern = "**/" + pattern
    if pattern.endswith("/"):
        pattern += "**/*"
    if pattern.endswith("/**"):
        # Matching files under a directory needs an explicit "/*" at the end.
        pattern += "/*"
    return pattern
