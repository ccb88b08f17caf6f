"""Attention state of a pull request: whose turn is it?"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class TurnMode(str, Enum):
    """How the attention set of a PR is currently decided."""

    NORMAL = "normal"  # Derived from the reviewers' turn flags.
    PINNED = "pinned"  # Explicitly set; the author is not volunteered.
    FROZEN = "frozen"  # Turn switching is suspended.


class PRTurn(BaseModel):
    """The persisted attention state of a single PR.

    ``reviewers`` maps each reviewer's email address to whether it is
    currently their turn. The author may appear there transiently, after
    being nudged or explicitly pinned; the author's next turn switch
    removes that entry.
    """

    author: str
    reviewers: dict[str, bool] = Field(default_factory=dict)
    explicit: bool = False
    frozen_by: str = ""
    frozen_at: str = ""

    @field_validator("author", "frozen_by")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("reviewers")
    @classmethod
    def _lower_reviewers(cls, v: dict[str, bool]) -> dict[str, bool]:
        return {email.lower(): turn for email, turn in v.items()}

    @model_validator(mode="after")
    def _require_author(self) -> PRTurn:
        if not self.author:
            raise ValueError("PR attention state has no author")
        return self

    @property
    def frozen(self) -> bool:
        return bool(self.frozen_by or self.frozen_at)

    @property
    def mode(self) -> TurnMode:
        if self.frozen:
            return TurnMode.FROZEN
        if self.explicit:
            return TurnMode.PINNED
        return TurnMode.NORMAL

    def is_participant(self, email: str) -> bool:
        return email == self.author or email in self.reviewers


def current_turn(turn: PRTurn) -> list[str]:
    """Email addresses of everyone whose attention the PR requires now.

    With no reviewers, that is the author (a reminder to add some).
    Otherwise it is every reviewer whose turn flag is set, plus the author
    if any reviewer is waiting on them, unless attention was pinned
    explicitly. The result is sorted and never empty.
    """
    if not turn.reviewers:
        return [turn.author]

    emails = {email for email, is_turn in turn.reviewers.items() if is_turn}
    waiting_on_author = not all(turn.reviewers.values())
    if waiting_on_author and not turn.explicit:
        emails.add(turn.author)
    if not emails:
        # Pinned to nobody who is still tracked.
        emails.add(turn.author)

    return sorted(emails)
