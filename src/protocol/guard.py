"""Reentrancy exclusion and all-or-nothing call semantics."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator

from src.data.interfaces import Journaled
from src.protocol.errors import ReentrantCall

logger = logging.getLogger(__name__)


class NonReentrant:
    """Busy flag held for the duration of a state-changing call.

    Re-entry fails fast with ``ReentrantCall`` instead of blocking.
    """

    def __init__(self) -> None:
        self.entered_by: str | None = None

    @property
    def busy(self) -> bool:
        return self.entered_by is not None

    @contextmanager
    def enter(self, entry_point: str) -> Iterator[None]:
        if self.entered_by is not None:
            raise ReentrantCall(entry_point)
        self.entered_by = entry_point
        try:
            yield
        finally:
            self.entered_by = None


@contextmanager
def transaction(participants: Iterable[Any], label: str = "") -> Iterator[None]:
    """Snapshot every journaled participant; restore them all if the body raises.

    Participants that do not implement ``Journaled`` are skipped.
    """
    journaled = [p for p in participants if isinstance(p, Journaled)]
    states = [(p, p.snapshot()) for p in journaled]
    try:
        yield
    except BaseException:
        for participant, state in reversed(states):
            participant.restore(state)
        logger.debug("Rolled back %s (%d participants)", label, len(states))
        raise
