"""Attention tracking for pull requests.

Each operation holds the PR's lock across one full cycle:
load the document, apply one transition, persist it if it changed.
If persisting fails the error propagates and the modified in-memory
copy is discarded, so no partial state is ever visible.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from pydantic import ValidationError

from prattention.config import TurnsConfig
from prattention.exceptions import StoreError
from prattention.turns import machine
from prattention.turns.locks import KeyedLocks
from prattention.turns.models import PRTurn, current_turn
from prattention.turns.store import DocumentStore

logger = logging.getLogger("prattention.turns")

TURN_SUFFIX = "_turn"


class AttentionTracker:
    """Whose turn is it to act on each tracked PR.

    PRs are identified by an opaque string, usually the PR's URL.
    """

    def __init__(
        self,
        store: DocumentStore,
        locks: KeyedLocks | None = None,
        config: TurnsConfig | None = None,
    ) -> None:
        self.store = store
        self.locks = locks if locks is not None else KeyedLocks()
        self.config = config or TurnsConfig()
        self._ignored = frozenset(e.lower() for e in self.config.ignored_emails)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(self, pr: str, author: str, reviewers: Iterable[str] = ()) -> PRTurn:
        """Start tracking a PR, replacing any previous state."""
        key = self._key(pr)
        turn = machine.init_turns(author, reviewers, self._ignored)
        with self.locks.get(key).write_lock():
            self.store.store(key, turn.model_dump())
        logger.info(f"Tracking attention for {pr} (author {turn.author})")
        return turn

    def delete(self, pr: str) -> None:
        key = self._key(pr)
        with self.locks.get(key).write_lock():
            self.store.delete(key)

    def load(self, pr: str) -> PRTurn | None:
        key = self._key(pr)
        with self.locks.get(key).read_lock():
            return self._read(key)

    def current_turn(self, pr: str) -> list[str]:
        """Email addresses whose attention the PR requires, sorted.

        Empty only for PRs that are not tracked.
        """
        turn = self.load(pr)
        if turn is None:
            logger.warning(f"No attention state for {pr}")
            return []
        return current_turn(turn)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def add_reviewer(self, pr: str, email: str) -> bool:
        email = email.lower()
        return self._apply(pr, lambda t: machine.add_reviewer(t, email, self._ignored))

    def remove_reviewer(self, pr: str, email: str) -> bool:
        email = email.lower()
        return self._apply(pr, lambda t: machine.remove_reviewer(t, email, self._ignored))

    def set_explicit(self, pr: str, emails: Iterable[str]) -> bool:
        emails = [e.lower() for e in emails]
        return self._apply(pr, lambda t: machine.set_explicit(t, emails, self._ignored))

    def switch(self, pr: str, email: str) -> bool:
        email = email.lower()
        return self._apply(pr, lambda t: machine.switch_turn(t, email, self._ignored))

    def freeze(self, pr: str, by: str) -> bool:
        by = by.lower()
        return self._apply(pr, lambda t: machine.freeze(t, by))

    def unfreeze(self, pr: str) -> bool:
        return self._apply(pr, machine.unfreeze)

    def nudge(self, pr: str, email: str) -> bool:
        email = email.lower()
        return self._apply(pr, lambda t: machine.nudge(t, email, self._ignored))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _key(pr: str) -> str:
        return pr + TURN_SUFFIX

    def _read(self, key: str) -> PRTurn | None:
        """Expects the caller to hold the key's lock."""
        doc, exists = self.store.load(key)
        if not exists or doc is None:
            return None
        try:
            return PRTurn.model_validate(doc)
        except ValidationError as e:
            raise StoreError(f"Corrupt attention state '{key}': {e}") from e

    def _apply(self, pr: str, transition: Callable[[PRTurn], bool]) -> bool:
        key = self._key(pr)
        with self.locks.get(key).write_lock():
            turn = self._read(key)
            if turn is None:
                logger.warning(f"Ignoring attention change for untracked PR {pr}")
                return False

            before = turn.model_dump()
            result = transition(turn)
            after = turn.model_dump()
            if after != before:
                try:
                    self.store.store(key, after)
                except StoreError as e:
                    logger.error(f"Failed to persist attention state of {pr}: {e}")
                    raise
            return result
