"""Stock answer keys and stimulus pools.

A key maps the presented stimuli (most-recent-first) to the answer that is
currently correct, or None when no answer can be derived yet.
"""

from __future__ import annotations

from collections.abc import Sequence

PASAT_DIGITS: tuple[int, ...] = tuple(range(1, 10))


def sum_of_last_two(added: Sequence[int]) -> int | None:
    """Classic PASAT key: add the newest digit to the one before it."""

    if len(added) < 2:
        return None
    return int(added[0]) + int(added[1])


def echo_last(added: Sequence[int]) -> int | None:
    # Warm-up variant: repeat the digit just heard.
    if not added:
        return None
    return int(added[0])


KEYS_BY_NAME = {
    "sum2": sum_of_last_two,
    "echo": echo_last,
}


def parse_answer(raw: str) -> int | None:
    raw = raw.strip()
    if not (raw.isascii() and raw.isdigit()):
        return None
    return int(raw)
