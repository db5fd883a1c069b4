import asyncio

import pytest

from gate_prep.ai.response_parser import ResponseParseError
from gate_prep.domain.enums import AnalysisStatus, ErrorType
from gate_prep.domain.errors import TransportError
from gate_prep.domain.models import AnalysisResponse, QuestionClassification
from gate_prep.engine.performance import (
    PerformanceAnalyzer,
    build_analysis_request,
    merge_classification,
    tally_error_types,
)
from gate_prep.engine.scoring import compute_score

from helpers import FakeCoach, _mk_attempt, _mk_multi, _mk_numeric, _mk_single


class RecordingStore:
    def __init__(self):
        self.calls = []

    async def update_attempt_error_classification(self, attempt_id, classification, analysis=None):
        self.calls.append((attempt_id, dict(classification), analysis))


def _mk_scored_attempt():
    questions = [
        _mk_single(text="What is a stack?", topic="Stacks"),
        _mk_multi(text="Pick linear structures", topic="Lists"),
        _mk_numeric(text="Tree height?", topic="Trees"),
        _mk_single(text="What is a heap?", topic="Heaps"),
    ]
    attempt = _mk_attempt(questions, {0: "Stack", 1: ["Stack"], 2: "12", 3: "Queue"})
    compute_score(attempt)
    attempt.attempt_id = "k-1"
    return attempt


def _mk_response():
    return AnalysisResponse(
        feedback="Revise trees.",
        weakest_topics=("Trees", "Lists"),
        per_question=(
            QuestionClassification("Pick linear structures", ErrorType.CARELESS_SLIP),
            QuestionClassification("Tree height?", ErrorType.CONCEPTUAL),
            QuestionClassification("Not in this quiz", ErrorType.CONCEPTUAL),
        ),
    )


def test_analysis_request_carries_results_and_hint():
    attempt = _mk_scored_attempt()
    req = build_analysis_request(attempt, "visual")

    assert req.learning_style_hint == "visual"
    assert [r.is_correct for r in req.results] == [True, False, False, False]
    assert req.results[1].user_answer == "Stack"
    assert req.results[1].correct_answer == "Queue, Stack"


def test_analysis_request_requires_scored_attempt():
    with pytest.raises(ValueError):
        build_analysis_request(_mk_attempt([_mk_single()]))


def test_merge_by_exact_text():
    attempt = _mk_scored_attempt()
    classification = merge_classification(attempt, _mk_response())

    assert classification == {
        0: ErrorType.CORRECT,
        1: ErrorType.CARELESS_SLIP,
        2: ErrorType.CONCEPTUAL,
    }
    assert attempt.questions[2].error_type is ErrorType.CONCEPTUAL
    assert attempt.questions[3].error_type is None


def test_tally_ignores_correct():
    counts = tally_error_types({
        0: ErrorType.CORRECT,
        1: ErrorType.CARELESS_SLIP,
        2: ErrorType.CONCEPTUAL,
        3: ErrorType.CONCEPTUAL,
        4: ErrorType.QUESTION_MISINTERPRETATION,
    })
    assert (counts.conceptual, counts.careless, counts.misinterpretation) == (2, 1, 1)
    assert counts.total == 4


def test_analyzer_persists_classification():
    attempt = _mk_scored_attempt()
    store = RecordingStore()
    coach = FakeCoach(response=_mk_response())

    asyncio.run(PerformanceAnalyzer(coach, store).analyze(attempt, "examples first"))

    assert attempt.analysis_status is AnalysisStatus.PRESENT
    assert attempt.analysis.weakest_topics == ("Trees", "Lists")
    assert attempt.analysis.error_types.conceptual == 1
    assert coach.requests[0].learning_style_hint == "examples first"

    attempt_id, classification, analysis = store.calls[0]
    assert attempt_id == "k-1"
    assert classification[1] is ErrorType.CARELESS_SLIP
    assert analysis.feedback == "Revise trees."


@pytest.mark.parametrize("error", [TransportError("down"), ResponseParseError("garbled")])
def test_analyzer_degrades_when_capability_fails(error, caplog):
    attempt = _mk_scored_attempt()
    store = RecordingStore()

    asyncio.run(PerformanceAnalyzer(FakeCoach(error=error), store).analyze(attempt))

    assert attempt.analysis_status is AnalysisStatus.UNAVAILABLE
    assert attempt.error_classification is None
    assert attempt.score == 1
    assert store.calls == []
    assert "unavailable" in caplog.text


def test_analyzer_requires_persisted_attempt():
    attempt = _mk_scored_attempt()
    attempt.attempt_id = None
    with pytest.raises(ValueError):
        asyncio.run(PerformanceAnalyzer(FakeCoach(response=_mk_response()), RecordingStore()).analyze(attempt))


def test_analyzer_skips_attempt_without_questions():
    attempt = _mk_attempt([])
    compute_score(attempt)
    attempt.attempt_id = "k-2"
    store = RecordingStore()
    coach = FakeCoach(response=_mk_response())

    asyncio.run(PerformanceAnalyzer(coach, store).analyze(attempt))

    assert attempt.score == 0
    assert attempt.analysis_status is AnalysisStatus.UNAVAILABLE
    assert coach.requests == []
    assert store.calls == []


def test_analysis_request_for_empty_scored_attempt():
    attempt = _mk_attempt([])
    compute_score(attempt)
    assert build_analysis_request(attempt).results == ()
