"""Host-side runtime that realizes triggers emitted by the PSAT core.

The driver owns the live model, stamps every action with the injected clock,
queues delayed actions and forwards sound cues. It never cancels a queued
action: anything left over from an earlier session is delivered and the core
ignores it by session id.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol, assert_never

from .clock import Clock, ms_to_s
from .psat_core import Action, DelayedAction, LogEntry, Model, PlaySound, Trigger, update

logger = logging.getLogger(__name__)


class SoundPlayer(Protocol):
    def play(self, pq: object) -> None:
        """Play the cue for a presented stimulus."""
        ...


class NullSoundPlayer:
    def play(self, pq: object) -> None:
        return None


@dataclass(frozen=True, slots=True, order=True)
class PendingAction:
    due_s: float
    seq: int
    action: Action = field(compare=False)


class SessionDriver:
    """Serializes actions through `update` and realizes the triggers.

    Delayed actions are timestamped with their due time when they fire, so a
    chain of timeouts stays on an exact ISI grid even if `pump` is called
    late.
    """

    def __init__(self, *, model: Model, clock: Clock, sound: SoundPlayer | None = None) -> None:
        self._model = model
        self._clock = clock
        self._sound: SoundPlayer = NullSoundPlayer() if sound is None else sound
        self._queue: list[PendingAction] = []
        self._seq = 0

    @property
    def model(self) -> Model:
        return self._model

    def pending(self) -> list[PendingAction]:
        return sorted(self._queue)

    def next_due_s(self) -> float | None:
        return self._queue[0].due_s if self._queue else None

    def dispatch(self, action: Action, *, at: float | None = None) -> list[Trigger]:
        now = self._clock.now() if at is None else float(at)
        self._model, triggers = update(now, action, self._model)
        self._realize(triggers, now=now)
        return triggers

    def pump(self) -> int:
        """Fire every queued action that is due. Returns how many fired."""

        now = self._clock.now()
        fired = 0
        while self._queue and self._queue[0].due_s <= now:
            entry = heapq.heappop(self._queue)
            self.dispatch(entry.action, at=entry.due_s)
            fired += 1
        return fired

    def _realize(self, triggers: Iterable[Trigger], *, now: float) -> None:
        for trigger in triggers:
            if isinstance(trigger, DelayedAction):
                self._seq += 1
                heapq.heappush(
                    self._queue,
                    PendingAction(due_s=now + ms_to_s(trigger.delay_ms), seq=self._seq, action=trigger.action),
                )
            elif isinstance(trigger, PlaySound):
                if trigger.pq is not None:
                    self._sound.play(trigger.pq)
            else:
                assert_never(trigger)


def replay(initial: Model, log: Iterable[LogEntry]) -> Model:
    """Re-run a recorded log (most-recent-first, as stored) from `initial`."""

    model = initial
    for timestamp, action in reversed(tuple(log)):
        model, _ = update(timestamp, action, model)
    logger.debug("replayed %d actions", len(model.log) - len(initial.log))
    return model
