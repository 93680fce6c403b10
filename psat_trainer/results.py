from __future__ import annotations

from dataclasses import dataclass

from .pacing import Outcome, is_right, streak_length
from .psat_core import Model, UserAnswers


@dataclass(frozen=True, slots=True)
class PsatSummary:
    """Read-only report of the current (or last) session.

    Built from the model's reporting surfaces; nothing here feeds back into
    the state engine.
    """

    session_id: int
    is_running: bool
    presented: int
    resolved: int
    right: int
    wrong: int
    missed: int
    accuracy: float
    final_isi_ms: int
    longest_right_streak: int
    responses_logged: int


def _longest_run(outcomes: tuple[Outcome, ...]) -> int:
    best = 0
    for i in range(len(outcomes)):
        best = max(best, streak_length(is_right, outcomes[i:]))
    return best


def summarize(model: Model) -> PsatSummary:
    outcomes = model.outcomes
    right = sum(1 for o in outcomes if o is Outcome.RIGHT)
    wrong = sum(1 for o in outcomes if o is Outcome.WRONG)
    missed = sum(1 for o in outcomes if o is Outcome.MISSED)
    resolved = len(outcomes)
    accuracy = 0.0 if resolved == 0 else right / resolved

    return PsatSummary(
        session_id=int(model.session_id),
        is_running=bool(model.is_running),
        presented=len(model.added_pqs),
        resolved=resolved,
        right=right,
        wrong=wrong,
        missed=missed,
        accuracy=accuracy,
        final_isi_ms=int(model.isi),
        longest_right_streak=_longest_run(outcomes),
        # Includes late/duplicate answers and answers from earlier sessions.
        responses_logged=sum(1 for _, action in model.log if isinstance(action, UserAnswers)),
    )


def summary_lines(s: PsatSummary) -> list[str]:
    return [
        f"Session {s.session_id}",
        "",
        f"Presented: {s.presented}",
        f"Right:     {s.right}",
        f"Wrong:     {s.wrong}",
        f"Missed:    {s.missed}",
        f"Accuracy:  {s.accuracy * 100.0:.1f}%",
        f"Best run:  {s.longest_right_streak}",
        f"Final ISI: {s.final_isi_ms} ms",
    ]
