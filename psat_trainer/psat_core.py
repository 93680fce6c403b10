"""Deterministic state engine for the Paced Serial Addition Task.

Everything here is pure: `update` takes a timestamped action and a model and
returns the next model plus the triggers the host must realize (delayed
actions, sound cues). Stale delayed actions are neutralized by comparing
their session id against the live one instead of being cancelled.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from typing import Generic, TypeAlias, TypeVar, assert_never

from .clock import minutes_to_ms
from .pacing import Outcome, next_isi
from .rng import Seed

logger = logging.getLogger(__name__)

PQ = TypeVar("PQ")
Answer = TypeVar("Answer")

SessionId: TypeAlias = int
Key: TypeAlias = Callable[[Sequence[PQ]], Answer | None]


class PsatConfigError(ValueError):
    """Raised when a session cannot be configured (e.g. empty stimulus pool)."""


# Actions ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AnswerTimeout:
    session_id: SessionId


@dataclass(frozen=True, slots=True)
class UserAnswers:
    answer: object


@dataclass(frozen=True, slots=True)
class Start:
    pass


@dataclass(frozen=True, slots=True)
class ManualStop:
    pass


@dataclass(frozen=True, slots=True)
class AutomaticStop:
    session_id: SessionId


@dataclass(frozen=True, slots=True)
class UpdateIsi:
    raw: str


@dataclass(frozen=True, slots=True)
class UpdateDuration:
    raw: str


Action: TypeAlias = (
    AnswerTimeout | UserAnswers | Start | ManualStop | AutomaticStop | UpdateIsi | UpdateDuration
)


# Triggers -----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DelayedAction:
    delay_ms: int
    action: Action


@dataclass(frozen=True, slots=True)
class PlaySound:
    pq: object | None


Trigger: TypeAlias = DelayedAction | PlaySound

LogEntry: TypeAlias = tuple[float, Action]


# Model --------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Model(Generic[PQ, Answer]):
    """Aggregate session state. Histories are stored most-recent-first."""

    key: Key[PQ, Answer] = field(compare=False)
    pqs: tuple[PQ, ...]
    isi: int  # ms
    duration: int  # minutes
    seed: Seed
    user_has_answered: bool = True
    is_running: bool = False
    session_id: SessionId = 0
    added_pqs: tuple[PQ, ...] = ()
    log: tuple[LogEntry, ...] = ()
    outcomes: tuple[Outcome, ...] = ()


def init_model(
    *,
    key: Key[PQ, Answer],
    pqs: Sequence[PQ],
    isi: int,
    duration: int,
    seed: Seed,
) -> Model[PQ, Answer]:
    pool = tuple(pqs)
    if not pool:
        raise PsatConfigError("pqs must contain at least one stimulus")
    if isi <= 0:
        raise PsatConfigError("isi must be > 0")
    if duration <= 0:
        raise PsatConfigError("duration must be > 0")
    return Model(key=key, pqs=pool, isi=int(isi), duration=int(duration), seed=seed)


# Update engine ------------------------------------------------------------


def update(
    timestamp: float,
    action: Action,
    model: Model[PQ, Answer],
) -> tuple[Model[PQ, Answer], list[Trigger]]:
    logged = replace(model, log=((float(timestamp), action),) + model.log)
    if logged.is_running:
        if isinstance(action, Start):
            # A Start during a live session must not re-arm its timers.
            logger.debug("ignoring Start while session %d is running", logged.session_id)
            return logged, []
        new_model = _update_running(action, logged)
    else:
        new_model = _update_stopped(action, logged)
    return new_model, get_triggers(new_model, action)


def _update_running(action: Action, model: Model[PQ, Answer]) -> Model[PQ, Answer]:
    if isinstance(action, ManualStop):
        logger.info("session %d stopped manually", model.session_id)
        return replace(model, is_running=False)
    if isinstance(action, AutomaticStop):
        if action.session_id != model.session_id:
            logger.debug("ignoring stale AutomaticStop(%d)", action.session_id)
            return model
        logger.info("session %d reached its duration", model.session_id)
        return replace(model, is_running=False)
    if isinstance(action, UserAnswers):
        return set_answer(model, action.answer)
    if isinstance(action, AnswerTimeout):
        if action.session_id != model.session_id:
            logger.debug("ignoring stale AnswerTimeout(%d)", action.session_id)
            return model
        return add_random_pq(set_answer(model, None))
    if isinstance(action, (Start, UpdateIsi, UpdateDuration)):
        logger.debug("ignoring %s while running", type(action).__name__)
        return model
    assert_never(action)


def _update_stopped(action: Action, model: Model[PQ, Answer]) -> Model[PQ, Answer]:
    if isinstance(action, Start):
        started = replace(
            model,
            session_id=model.session_id + 1,
            is_running=True,
            added_pqs=(),
            outcomes=(),
        )
        logger.info(
            "session %d started (isi=%dms, duration=%dmin)", started.session_id, model.isi, model.duration
        )
        return add_random_pq(started)
    if isinstance(action, UpdateIsi):
        isi = parse_int(action.raw)
        if isi is None:
            logger.debug("ignoring unparseable isi %r", action.raw)
            return model
        return replace(model, isi=isi)
    if isinstance(action, UpdateDuration):
        duration = parse_int(action.raw)
        if duration is None:
            logger.debug("ignoring unparseable duration %r", action.raw)
            return model
        return replace(model, duration=duration)
    if isinstance(action, (ManualStop, AutomaticStop, UserAnswers, AnswerTimeout)):
        logger.debug("ignoring %s while stopped", type(action).__name__)
        return model
    assert_never(action)


_INT_RE = re.compile(r"[+-]?[0-9]+")


def parse_int(raw: str) -> int | None:
    """Strict integer parse: optional sign and ASCII digits, no whitespace."""

    if _INT_RE.fullmatch(raw) is None:
        return None
    return int(raw)


# Trial resolution -----------------------------------------------------------


def set_answer(model: Model[PQ, Answer], answer: object | None) -> Model[PQ, Answer]:
    expected = model.key(model.added_pqs)
    if expected is None:
        logger.debug("no expected answer for %d presented stimuli", len(model.added_pqs))
        return model
    if answer is None:
        outcome = Outcome.MISSED
    elif answer == expected:
        outcome = Outcome.RIGHT
    else:
        outcome = Outcome.WRONG
    return set_outcome(model, outcome)


def set_outcome(model: Model[PQ, Answer], outcome: Outcome) -> Model[PQ, Answer]:
    if model.user_has_answered:
        return model
    outcomes = (outcome,) + model.outcomes
    return replace(
        model,
        user_has_answered=True,
        outcomes=outcomes,
        isi=next_isi(model.isi, outcomes),
    )


def add_random_pq(model: Model[PQ, Answer]) -> Model[PQ, Answer]:
    if not model.pqs:
        raise PsatConfigError("cannot present a stimulus from an empty pool")
    index, seed = model.seed.next_index(len(model.pqs))
    return replace(
        model,
        seed=seed,
        added_pqs=(model.pqs[index],) + model.added_pqs,
        user_has_answered=False,
    )


# Trigger generator ----------------------------------------------------------


def get_triggers(model: Model[PQ, Answer], action: Action) -> list[Trigger]:
    if isinstance(action, Start):
        stop = DelayedAction(minutes_to_ms(model.duration), AutomaticStop(model.session_id))
        return [stop, *_new_stimulus_triggers(model)]
    if isinstance(action, AnswerTimeout):
        if action.session_id != model.session_id or not model.is_running:
            return []
        return _new_stimulus_triggers(model)
    if isinstance(action, (UserAnswers, ManualStop, AutomaticStop, UpdateIsi, UpdateDuration)):
        return []
    assert_never(action)


def _new_stimulus_triggers(model: Model[PQ, Answer]) -> list[Trigger]:
    head = model.added_pqs[0] if model.added_pqs else None
    return [DelayedAction(model.isi, AnswerTimeout(model.session_id)), PlaySound(head)]
