"""Markdown renderer for "who owns what, who approved" explanations.

Works on unflattened ownership data, so groups are shown by name with
their members, and nested groups are expanded one level at a time.
"""

from __future__ import annotations

APPROVED_MARK = " :+1:"


def render_explanation(
    paths: list[str],
    owners: dict[str, list[str]],
    groups: dict[str, list[str]] | None,
    approvers: list[str] | None = None,
) -> str:
    """Render the code owners of each path, marking approvals."""
    groups = groups or {}
    approvals = {a: False for a in approvers or []}
    sections: list[str] = ["### Code owners per file", ""]

    for path in paths:
        sections.append(f"- `{path}`")
        file_owners = owners.get(path, [])
        if not file_owners:
            sections.append("  - (No code owners found)")
            continue

        # Direct owners first, then every nested group until only individuals remain.
        nested: list[str] = []
        for owner in file_owners:
            line = _mention(owner, approvals)
            if owner.startswith("@"):
                line += " - " + _members(groups.get(owner, []), approvals)
                _collect_groups(groups.get(owner, []), nested)
            sections.append(f"  - {line}")

        i = 0
        while i < len(nested):
            _collect_groups(groups.get(nested[i], []), nested)
            i += 1

        for group in nested:
            members = _members(groups.get(group, []), approvals)
            sections.append(f"  - {group.removeprefix('@')} - {members}")

    others = sorted(a for a, counted in approvals.items() if not counted)
    if others:
        sections.append("")
        sections.append("**Other approvers who are not code owners:** "
                        + ", ".join(a + APPROVED_MARK for a in others))

    return "\n".join(sections)


def _mention(owner: str, approvals: dict[str, bool]) -> str:
    if owner.startswith("@"):
        return owner.removeprefix("@")
    if owner in approvals:
        approvals[owner] = True
        return owner + APPROVED_MARK
    return owner


def _members(members: list[str], approvals: dict[str, bool]) -> str:
    return ", ".join(_mention(m, approvals) for m in members)


def _collect_groups(members: list[str], nested: list[str]) -> None:
    for member in members:
        if member.startswith("@") and member not in nested:
            nested.append(member)
