from __future__ import annotations

from dataclasses import replace

import pytest

from psat_trainer.keys import PASAT_DIGITS, echo_last, sum_of_last_two
from psat_trainer.pacing import Outcome
from psat_trainer.psat_core import (
    AnswerTimeout,
    AutomaticStop,
    DelayedAction,
    ManualStop,
    Model,
    PlaySound,
    PsatConfigError,
    Start,
    UpdateDuration,
    UpdateIsi,
    UserAnswers,
    add_random_pq,
    init_model,
    update,
)
from psat_trainer.rng import Seed


def _echo_model(*, isi: int = 1000, duration: int = 5) -> Model[int, int]:
    # Single-stimulus pool keeps every draw predictable: the answer is always 4.
    return init_model(key=echo_last, pqs=(4,), isi=isi, duration=duration, seed=Seed.from_int(1))


def _started(model: Model[int, int]) -> Model[int, int]:
    model, _ = update(0.0, Start(), model)
    return model


def test_init_model_rejects_bad_configuration() -> None:
    with pytest.raises(PsatConfigError):
        init_model(key=echo_last, pqs=(), isi=1000, duration=5, seed=Seed.from_int(1))
    with pytest.raises(PsatConfigError):
        init_model(key=echo_last, pqs=(1,), isi=0, duration=5, seed=Seed.from_int(1))
    with pytest.raises(ValueError):
        init_model(key=echo_last, pqs=(1,), isi=1000, duration=0, seed=Seed.from_int(1))


def test_initial_model_is_idle() -> None:
    m = _echo_model()
    assert m.is_running is False
    assert m.user_has_answered is True
    assert m.session_id == 0
    assert m.added_pqs == ()
    assert m.outcomes == ()
    assert m.log == ()


def test_start_opens_session_and_schedules_stop_timeout_and_sound() -> None:
    m = _echo_model(isi=1500, duration=5)
    m, triggers = update(10.0, Start(), m)

    assert m.is_running is True
    assert m.session_id == 1
    assert m.added_pqs == (4,)
    assert m.outcomes == ()
    assert m.user_has_answered is False
    assert triggers == [
        DelayedAction(5 * 60_000, AutomaticStop(1)),
        DelayedAction(1500, AnswerTimeout(1)),
        PlaySound(4),
    ]


def test_start_clears_history_and_increments_session_by_one() -> None:
    m = _started(_echo_model())
    m, _ = update(1.0, UserAnswers(4), m)
    m, _ = update(2.0, AnswerTimeout(1), m)
    m, _ = update(3.0, ManualStop(), m)
    assert len(m.outcomes) == 1
    assert len(m.added_pqs) == 2

    m, _ = update(4.0, Start(), m)
    assert m.session_id == 2
    assert m.outcomes == ()
    assert m.added_pqs == (4,)


def test_first_stimulus_is_drawn_from_threaded_seed() -> None:
    seed = Seed.from_int(123)
    m = init_model(key=sum_of_last_two, pqs=PASAT_DIGITS, isi=3000, duration=5, seed=seed)
    m = _started(m)

    idx, nxt = seed.next_index(len(PASAT_DIGITS))
    assert m.added_pqs == (PASAT_DIGITS[idx],)
    assert m.seed == nxt


def test_right_and_wrong_answers() -> None:
    m = _started(_echo_model())
    right, triggers = update(1.0, UserAnswers(4), m)
    assert right.outcomes == (Outcome.RIGHT,)
    assert right.user_has_answered is True
    assert triggers == []

    wrong, _ = update(1.0, UserAnswers(7), m)
    assert wrong.outcomes == (Outcome.WRONG,)


def test_second_answer_for_same_stimulus_only_grows_log() -> None:
    m = _started(_echo_model())
    m, _ = update(1.0, UserAnswers(4), m)
    again, _ = update(1.2, UserAnswers(9), m)

    assert again.outcomes == m.outcomes
    assert again.isi == m.isi
    assert again.added_pqs == m.added_pqs
    assert len(again.log) == len(m.log) + 1


def test_timeout_records_miss_and_presents_next_stimulus() -> None:
    m = _started(_echo_model(isi=1000))
    m, triggers = update(1.0, AnswerTimeout(1), m)

    assert m.outcomes == (Outcome.MISSED,)
    assert m.added_pqs == (4, 4)
    assert m.user_has_answered is False
    assert triggers == [DelayedAction(1000, AnswerTimeout(1)), PlaySound(4)]


def test_timeout_after_answer_does_not_double_score() -> None:
    m = _started(_echo_model())
    m, _ = update(0.5, UserAnswers(4), m)
    m, _ = update(1.0, AnswerTimeout(1), m)

    assert m.outcomes == (Outcome.RIGHT,)
    assert len(m.added_pqs) == 2


def test_stale_timeout_is_ignored() -> None:
    m = _started(_echo_model())
    m, _ = update(1.0, ManualStop(), m)
    m, _ = update(2.0, Start(), m)
    assert m.session_id == 2

    after, triggers = update(3.0, AnswerTimeout(1), m)
    assert triggers == []
    assert replace(after, log=m.log) == m
    assert after.log[0] == (3.0, AnswerTimeout(1))


def test_stale_automatic_stop_does_not_end_new_session() -> None:
    m = _started(_echo_model())
    m, _ = update(1.0, ManualStop(), m)
    m, _ = update(2.0, Start(), m)

    m, _ = update(60.0, AutomaticStop(1), m)
    assert m.is_running is True

    m, triggers = update(120.0, AutomaticStop(2), m)
    assert m.is_running is False
    assert triggers == []


def test_timeout_for_stopped_session_emits_nothing() -> None:
    m = _started(_echo_model())
    m, _ = update(1.0, ManualStop(), m)
    after, triggers = update(2.0, AnswerTimeout(1), m)
    assert triggers == []
    assert after.added_pqs == m.added_pqs


def test_stop_preserves_history_for_reporting() -> None:
    m = _started(_echo_model())
    m, _ = update(0.5, UserAnswers(4), m)
    m, _ = update(1.0, ManualStop(), m)
    assert m.outcomes == (Outcome.RIGHT,)
    assert m.added_pqs == (4,)


def test_four_wrong_answers_slow_the_pace_and_next_timeout_uses_it() -> None:
    m = _started(_echo_model(isi=1000))
    t = 0.0
    triggers = []
    for _ in range(4):
        t += 0.5
        m, _ = update(t, UserAnswers(5), m)
        t += 0.5
        m, triggers = update(t, AnswerTimeout(1), m)

    assert m.outcomes == (Outcome.WRONG,) * 4
    assert m.isi == 1100
    assert triggers[0] == DelayedAction(1100, AnswerTimeout(1))


def test_four_right_answers_speed_up_the_pace() -> None:
    m = _started(_echo_model(isi=1000))
    for i in range(4):
        m, _ = update(float(i), UserAnswers(4), m)
        m, _ = update(float(i) + 0.5, AnswerTimeout(1), m)
    assert m.isi == 900


def test_alternating_answers_hold_the_pace() -> None:
    m = _started(_echo_model(isi=1000))
    for i, answer in enumerate((4, 5, 4, 5)):
        m, _ = update(float(i), UserAnswers(answer), m)
        m, _ = update(float(i) + 0.5, AnswerTimeout(1), m)
    assert m.outcomes == (Outcome.WRONG, Outcome.RIGHT, Outcome.WRONG, Outcome.RIGHT)
    assert m.isi == 1000


def test_sum_key_needs_two_stimuli_before_scoring() -> None:
    m = init_model(key=sum_of_last_two, pqs=(3,), isi=1000, duration=5, seed=Seed.from_int(1))
    m = _started(m)

    m, _ = update(0.5, UserAnswers(3), m)
    assert m.outcomes == ()
    assert m.user_has_answered is False

    m, _ = update(1.0, AnswerTimeout(1), m)
    assert m.outcomes == ()
    m, _ = update(1.5, UserAnswers(6), m)
    assert m.outcomes == (Outcome.RIGHT,)


def test_update_isi_and_duration_only_while_stopped() -> None:
    m = _echo_model(isi=1000, duration=5)

    bad, _ = update(0.0, UpdateIsi("abc"), m)
    assert bad.isi == 1000
    assert len(bad.log) == 1

    m, _ = update(0.0, UpdateIsi("250"), m)
    assert m.isi == 250
    m, _ = update(0.0, UpdateDuration("10"), m)
    assert m.duration == 10

    for raw in ("1.5", " 5", "", "5min"):
        same, _ = update(0.0, UpdateDuration(raw), m)
        assert same.duration == 10

    running = _started(m)
    running, triggers = update(1.0, UpdateIsi("400"), running)
    assert running.isi == 250
    assert triggers == []


def test_actions_outside_their_state_only_touch_the_log() -> None:
    m = _echo_model()
    for action in (UserAnswers(4), AnswerTimeout(0), ManualStop(), AutomaticStop(0)):
        after, triggers = update(1.0, action, m)
        assert triggers == []
        assert replace(after, log=()) == m

    running = _started(m)
    again, triggers = update(2.0, Start(), running)
    assert triggers == []
    assert again.session_id == 1
    assert again.added_pqs == running.added_pqs


def test_log_is_most_recent_first() -> None:
    m = _echo_model()
    m, _ = update(1.0, UpdateIsi("x"), m)
    m, _ = update(2.0, Start(), m)
    m, _ = update(3.0, UserAnswers(4), m)
    assert [entry for entry in m.log] == [
        (3.0, UserAnswers(4)),
        (2.0, Start()),
        (1.0, UpdateIsi("x")),
    ]


def test_every_resolved_trial_counted_exactly_once() -> None:
    m = init_model(key=echo_last, pqs=PASAT_DIGITS, isi=2000, duration=5, seed=Seed.from_int(31))
    m = _started(m)
    t = 0.0
    for i in range(40):
        t += 1.0
        if i % 3 != 0:
            m, _ = update(t, UserAnswers(m.added_pqs[0]), m)
            m, _ = update(t, UserAnswers(m.added_pqs[0]), m)
        t += 1.0
        m, _ = update(t, AnswerTimeout(1), m)

    m, _ = update(t + 0.5, UserAnswers(m.added_pqs[0]), m)
    assert len(m.outcomes) == len(m.added_pqs) == 41
    assert all(pq in PASAT_DIGITS for pq in m.added_pqs)


def test_add_random_pq_rejects_empty_pool() -> None:
    m = Model(key=echo_last, pqs=(), isi=1000, duration=1, seed=Seed.from_int(1))
    with pytest.raises(PsatConfigError):
        add_random_pq(m)
