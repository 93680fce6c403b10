"""Streak-based adaptive pacing for the inter-stimulus interval.

Outcomes are read most-recent-first. Only the unbroken streak at the head
counts: every 4th consecutive miss/wrong slows the pace by one step, every
4th consecutive right speeds it up by one step.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from enum import StrEnum

STREAK_LENGTH = 4
ISI_STEP_MS = 100


class Outcome(StrEnum):
    RIGHT = "right"
    WRONG = "wrong"
    MISSED = "missed"


OutcomePredicate = Callable[[Outcome], bool]


def is_right(outcome: Outcome) -> bool:
    return outcome is Outcome.RIGHT


def is_not_right(outcome: Outcome) -> bool:
    return outcome is not Outcome.RIGHT


def streak_length(predicate: OutcomePredicate, outcomes: Sequence[Outcome]) -> int:
    n = 0
    for outcome in outcomes:
        if not predicate(outcome):
            break
        n += 1
    return n


def delta(predicate: OutcomePredicate, outcomes: Sequence[Outcome]) -> int:
    n = streak_length(predicate, outcomes)
    return 1 if n > 0 and n % STREAK_LENGTH == 0 else 0


def direction(outcomes: Sequence[Outcome]) -> int:
    """+1 to slow down, -1 to speed up, 0 to hold."""

    return delta(is_not_right, outcomes) - delta(is_right, outcomes)


def next_isi(isi: int, outcomes: Sequence[Outcome]) -> int:
    return int(isi) + direction(outcomes) * ISI_STEP_MS
