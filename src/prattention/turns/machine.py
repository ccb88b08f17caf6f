"""Turn-taking transitions.

Pure functions over a PRTurn document: each one mutates the document in
place and returns whether anything changed, so callers can skip writes.
Email addresses are expected to be lower-cased already.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from datetime import datetime, timezone

from prattention.turns.models import PRTurn

IGNORED_EMAILS = frozenset({"bot"})


def _ignored(email: str, ignored: Collection[str]) -> bool:
    return not email or email in ignored


def init_turns(
    author: str, reviewers: Iterable[str] = (), ignored: Collection[str] = IGNORED_EMAILS
) -> PRTurn:
    """A new attention state: every listed reviewer's turn."""
    turn = PRTurn(author=author)
    for email in reviewers:
        email = email.lower()
        if not _ignored(email, ignored) and email != turn.author:
            turn.reviewers[email] = True
    return turn


def add_reviewer(turn: PRTurn, email: str, ignored: Collection[str] = IGNORED_EMAILS) -> bool:
    if _ignored(email, ignored) or email in turn.reviewers or email == turn.author:
        return False
    turn.reviewers[email] = True
    return True


def remove_reviewer(turn: PRTurn, email: str, ignored: Collection[str] = IGNORED_EMAILS) -> bool:
    """Stop tracking a reviewer (they approved, or were unassigned).

    Works while frozen.
    """
    if _ignored(email, ignored) or email not in turn.reviewers:
        return False
    del turn.reviewers[email]
    return True


def set_explicit(
    turn: PRTurn, emails: Iterable[str], ignored: Collection[str] = IGNORED_EMAILS
) -> bool:
    """Pin the attention set to exactly `emails`.

    Everyone else stays tracked, with their turn flag cleared.
    """
    pinned = {e for e in emails if not _ignored(e, ignored)}
    before = (dict(turn.reviewers), turn.explicit)

    for email in turn.reviewers:
        if email not in pinned:
            turn.reviewers[email] = False
    for email in pinned:
        turn.reviewers[email] = True
    turn.explicit = True

    return before != (turn.reviewers, turn.explicit)


def switch_turn(turn: PRTurn, email: str, ignored: Collection[str] = IGNORED_EMAILS) -> bool:
    """Record that `email` acted on the PR, passing the turn to the other side.

    The author acting makes it every reviewer's turn; a reviewer acting
    clears their own turn. Any other non-ignored user only unpins the
    turn. Does nothing while frozen.
    """
    if _ignored(email, ignored) or turn.frozen:
        return False

    before = (dict(turn.reviewers), turn.explicit)
    if email == turn.author:
        turn.reviewers.pop(email, None)
        for reviewer in turn.reviewers:
            turn.reviewers[reviewer] = True
    elif email in turn.reviewers:
        turn.reviewers[email] = False

    turn.explicit = False
    return before != (turn.reviewers, turn.explicit)


def freeze(turn: PRTurn, by: str) -> bool:
    if turn.frozen:
        return False
    turn.frozen_by = by
    turn.frozen_at = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return True


def unfreeze(turn: PRTurn) -> bool:
    if not turn.frozen:
        return False
    turn.frozen_by = ""
    turn.frozen_at = ""
    return True


def nudge(turn: PRTurn, email: str, ignored: Collection[str] = IGNORED_EMAILS) -> bool:
    """Force `email` into the current attention set, regardless of freeze.

    Returns True if the nudge is valid (the author or a tracked reviewer),
    even when it did not need to change anything.
    """
    if _ignored(email, ignored) or not turn.is_participant(email):
        return False
    if email == turn.author and not turn.reviewers:
        return True  # Already the author's turn.
    turn.reviewers[email] = True
    return True
