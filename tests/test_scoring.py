import logging

from gate_prep.domain.answers import MultiChoiceAnswer, NumericAnswer
from gate_prep.domain.models import NumericRange
from gate_prep.engine.scoring import compute_score, evaluate_multi_choice, evaluate_raw

from helpers import _mk_attempt, _mk_multi, _mk_numeric, _mk_single


def test_multi_choice_is_set_equality_and_symmetric():
    a = MultiChoiceAnswer(frozenset({"X", "Y"}))
    b = MultiChoiceAnswer(frozenset({"Y", "X"}))
    c = MultiChoiceAnswer(frozenset({"X", "Y", "Z"}))

    assert evaluate_multi_choice(a, b) and evaluate_multi_choice(b, a)
    assert not evaluate_multi_choice(a, c)
    assert evaluate_multi_choice(a, c) == evaluate_multi_choice(c, a)


def test_multi_choice_string_and_list_evaluate_the_same():
    q = _mk_multi(correct=("Stack", "Queue"))
    assert evaluate_raw(q, "Stack, Queue")
    assert evaluate_raw(q, ["Queue ", " Stack"])
    assert not evaluate_raw(q, ["Stack", "Queue", "Heap"])
    assert not evaluate_raw(q, ["Stack"])


def test_numeric_default_tolerance_excludes_boundary():
    q = _mk_numeric(correct=10)
    assert not evaluate_raw(q, 10.01)
    assert evaluate_raw(q, 10.009)
    assert evaluate_raw(q, "9.995")
    assert not evaluate_raw(q, 9.99)


def test_numeric_explicit_range_is_inclusive():
    q = _mk_numeric(correct=10, rng=NumericRange(9.5, 10.5))
    assert evaluate_raw(q, 9.5)
    assert evaluate_raw(q, 10.5)
    assert not evaluate_raw(q, 10.51)


def test_unanswered_and_invalid_are_incorrect():
    assert not evaluate_raw(_mk_single(), None)
    assert not evaluate_raw(_mk_numeric(), "abc")


def test_shape_mismatch_logs_integrity_warning(caplog):
    q = _mk_single()
    with caplog.at_level(logging.WARNING, logger="gate_prep.engine.scoring"):
        assert not evaluate_raw(q, ["Stack"])
    assert "DataIntegrityWarning" in caplog.text


def test_corrupt_correct_answer_is_incorrect_not_raised(caplog):
    q = _mk_single()
    q.correct_answer = MultiChoiceAnswer(frozenset({"Stack"}))
    with caplog.at_level(logging.WARNING, logger="gate_prep.engine.scoring"):
        assert not evaluate_raw(q, "Stack")
    assert "DataIntegrityWarning" in caplog.text


def test_shuffled_options_do_not_change_verdict():
    q = _mk_single(correct="Heap")
    before = evaluate_raw(q, "Heap")
    q.options = list(reversed(q.options))
    assert before and evaluate_raw(q, "Heap")


def test_compute_score_mixed_attempt():
    questions = [_mk_single(text=f"single {i}") for i in range(7)]
    questions += [_mk_multi(text="multi 1"), _mk_multi(text="multi 2")]
    questions.append(_mk_numeric(text="numeric", correct=10))

    answers = {i: "Stack" for i in range(7)}
    answers[7] = ["Stack", "Queue", "Heap"]
    answers[8] = "Stack, Trie"
    answers[9] = "10.005"
    attempt = _mk_attempt(questions, answers)
    attempt.score = 99  # valore del client, ignorato

    scored = compute_score(attempt)

    assert scored.score == 8
    assert attempt.score == 8
    assert [o.is_correct for o in attempt.outcomes] == [True] * 7 + [False, False, True]


def test_compute_score_counts_missing_answers_as_incorrect():
    attempt = _mk_attempt([_mk_single(), _mk_numeric()], {0: "Stack"})
    compute_score(attempt)
    assert attempt.score == 1
    assert not attempt.outcomes[1].answered


def test_numeric_answer_type_stays_float():
    attempt = _mk_attempt([_mk_numeric()], {0: "10"})
    compute_score(attempt)
    assert attempt.outcomes[0].answer == NumericAnswer(10.0)
