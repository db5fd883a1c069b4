import asyncio
import random

import pytest

from gate_prep.ai.response_parser import ResponseParseError
from gate_prep.domain.answers import SingleChoiceAnswer
from gate_prep.domain.errors import GenerationFailed, TransportError
from gate_prep.engine.question_generator import (
    GenerationFailure,
    GenerationSuccess,
    QuestionSetGenerator,
    fisher_yates_shuffle,
)
from gate_prep.engine.scoring import evaluate_raw

from helpers import FakeHistory, FakeSource, _mk_config, _mk_question_set


def _mk_generator(script, history=None, **kw) -> QuestionSetGenerator:
    kw.setdefault("rng", random.Random(7))
    return QuestionSetGenerator(FakeSource(script), history or FakeHistory(), **kw)


def test_success_on_first_call_does_not_retry():
    gen = _mk_generator([_mk_question_set(10)])
    result = asyncio.run(gen.generate(_mk_config(10)))

    assert isinstance(result, GenerationSuccess)
    assert result.attempts == 1
    assert len(result.questions) == 10
    assert len(gen.source.requests) == 1


def test_always_one_short_fails_after_exactly_five_calls():
    gen = _mk_generator([lambda req: _mk_question_set(req.desired_count - 1)])

    with pytest.raises(GenerationFailed) as exc:
        asyncio.run(gen.generate_questions(_mk_config(10)))

    assert len(gen.source.requests) == 5
    assert exc.value.requested == 10
    assert exc.value.last_count == 9
    assert "syllabus" in str(exc.value)


def test_failure_is_returned_as_value():
    gen = _mk_generator([_mk_question_set(3)], max_attempts=2)
    result = asyncio.run(gen.generate(_mk_config(4)))

    assert isinstance(result, GenerationFailure)
    assert result.attempts == 2
    assert isinstance(result.to_error(), GenerationFailed)


def test_retry_until_count_matches():
    gen = _mk_generator([_mk_question_set(8), _mk_question_set(11), _mk_question_set(10)])
    result = asyncio.run(gen.generate(_mk_config(10)))

    assert isinstance(result, GenerationSuccess)
    assert result.attempts == 3


def test_duplicate_texts_count_as_mismatch():
    dupes = _mk_question_set(9) + _mk_question_set(1)
    gen = _mk_generator([dupes, _mk_question_set(10, prefix="New")])
    result = asyncio.run(gen.generate(_mk_config(10)))

    assert result.attempts == 2
    assert all(q.text.startswith("New") for q in result.questions)


def test_transport_errors_are_retried_and_surface_untouched():
    boom = TransportError("connection reset")
    gen = _mk_generator([boom])

    with pytest.raises(TransportError) as exc:
        asyncio.run(gen.generate_questions(_mk_config(5)))

    assert exc.value is boom
    assert len(gen.source.requests) == 5


def test_transport_error_then_success():
    gen = _mk_generator([TransportError("timeout"), _mk_question_set(5)])
    result = asyncio.run(gen.generate(_mk_config(5)))
    assert isinstance(result, GenerationSuccess)
    assert result.attempts == 2


def test_mixed_failures_raise_generation_failed():
    gen = _mk_generator([TransportError("timeout"), ResponseParseError("bad json")], max_attempts=3)
    with pytest.raises(GenerationFailed):
        asyncio.run(gen.generate_questions(_mk_config(5)))


def test_exclusion_list_comes_from_history():
    history = FakeHistory({"  Old question  ", "Another one", ""})
    gen = _mk_generator([_mk_question_set(2)], history=history)
    asyncio.run(gen.generate(_mk_config(2)))

    request = gen.source.requests[0]
    assert request.exclusion_list == ("Another one", "Old question")
    assert request.desired_count == 2
    assert request.syllabus == "Data Structures"


def test_shuffle_keeps_correct_answer_among_options():
    gen = _mk_generator([_mk_question_set(6)])
    result = asyncio.run(gen.generate(_mk_config(6)))

    for q in result.questions:
        assert isinstance(q.correct_answer, SingleChoiceAnswer)
        assert q.correct_answer.value in q.options
        assert sorted(q.options) == sorted(["Stack", "Queue", "Heap", "Trie"])
        assert evaluate_raw(q, "Stack")


def test_fisher_yates_returns_permutation_copy():
    items = ["a", "b", "c", "d"]
    out = fisher_yates_shuffle(items, random.Random(1))
    assert sorted(out) == items
    assert items == ["a", "b", "c", "d"]


def test_invalid_arguments():
    with pytest.raises(ValueError):
        _mk_generator([[]], max_attempts=0)
    gen = _mk_generator([[]])
    with pytest.raises(ValueError):
        asyncio.run(gen.generate(_mk_config(0)))
