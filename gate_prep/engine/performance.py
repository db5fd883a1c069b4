# gate_prep/engine/performance.py
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol

from gate_prep.ai.response_parser import ResponseParseError
from gate_prep.domain.answers import answer_to_text
from gate_prep.domain.enums import AnalysisStatus, ErrorType
from gate_prep.domain.errors import AnalysisUnavailable, TransportError
from gate_prep.domain.models import (
    AnalysisRequest,
    AnalysisResponse,
    Attempt,
    ErrorTypeCounts,
    PerformanceAnalysis,
    QuestionResult,
)

logger = logging.getLogger(__name__)


class AnalysisCapability(Protocol):
    async def analyze(self, request: AnalysisRequest) -> AnalysisResponse: ...


class ClassificationStore(Protocol):
    async def update_attempt_error_classification(
        self, attempt_id: str, classification: Dict[int, ErrorType], analysis: Optional[PerformanceAnalysis] = None
    ) -> None: ...


def build_analysis_request(attempt: Attempt, learning_style_hint: str = "") -> AnalysisRequest:
    if not attempt.is_scored:
        raise ValueError("attempt must be scored before analysis")
    results = []
    for outcome in attempt.outcomes:
        q = attempt.questions[outcome.index]
        results.append(QuestionResult(
            question_text=q.text,
            topic=q.topic,
            difficulty=q.difficulty,
            time_taken_seconds=q.time_taken_seconds,
            user_answer=answer_to_text(outcome.answer),
            correct_answer=answer_to_text(q.correct_answer),
            is_correct=outcome.is_correct,
        ))
    return AnalysisRequest(
        exam=attempt.config.exam,
        stream=attempt.config.stream,
        results=tuple(results),
        learning_style_hint=learning_style_hint,
    )


def merge_classification(attempt: Attempt, response: AnalysisResponse) -> Dict[int, ErrorType]:
    """
    Riporta le classificazioni sulle domande per testo esatto.
    - risposta corretta -> Correct
    - errata con match -> tipo restituito
    - errata senza match -> resta non classificata
    """
    by_text: Dict[str, ErrorType] = {}
    for item in response.per_question:
        if item.error_type is not ErrorType.CORRECT:
            by_text.setdefault(item.question_text, item.error_type)

    classification: Dict[int, ErrorType] = {}
    for outcome in attempt.outcomes:
        q = attempt.questions[outcome.index]
        if outcome.is_correct:
            classification[outcome.index] = ErrorType.CORRECT
        elif q.text in by_text:
            classification[outcome.index] = by_text[q.text]
        q.error_type = classification.get(outcome.index)
    return classification


def tally_error_types(classification: Dict[int, ErrorType]) -> ErrorTypeCounts:
    values: List[ErrorType] = list(classification.values())
    return ErrorTypeCounts(
        conceptual=values.count(ErrorType.CONCEPTUAL),
        careless=values.count(ErrorType.CARELESS_SLIP),
        misinterpretation=values.count(ErrorType.QUESTION_MISINTERPRETATION),
    )


class PerformanceAnalyzer:
    """
    Chiede all'AI la classificazione degli errori, i topic deboli e il feedback,
    li aggancia al tentativo già salvato. Se l'AI non risponde il tentativo
    resta valido, con analysis_status = unavailable.
    """

    def __init__(self, capability: AnalysisCapability, store: ClassificationStore):
        self.capability = capability
        self.store = store

    async def analyze(self, attempt: Attempt, learning_style_hint: str = "") -> Attempt:
        if attempt.attempt_id is None:
            raise ValueError("attempt must be persisted before analysis")
        if not attempt.is_scored:
            raise ValueError("attempt must be scored before analysis")
        if not attempt.outcomes:
            logger.info("[ANALYSIS] %s has no questions, nothing to analyse", attempt.attempt_id)
            attempt.analysis_status = AnalysisStatus.UNAVAILABLE
            return attempt

        try:
            response = await self.capability.analyze(build_analysis_request(attempt, learning_style_hint))
        except (TransportError, ResponseParseError) as e:
            err = AnalysisUnavailable(f"Analysis for {attempt.attempt_id} unavailable: {e}")
            logger.warning("[ANALYSIS] %s", err)
            attempt.analysis_status = AnalysisStatus.UNAVAILABLE
            return attempt

        classification = merge_classification(attempt, response)
        analysis = PerformanceAnalysis(
            feedback=response.feedback,
            weakest_topics=response.weakest_topics,
            error_types=tally_error_types(classification),
        )
        await self.store.update_attempt_error_classification(attempt.attempt_id, classification, analysis)

        attempt.error_classification = classification
        attempt.analysis = analysis
        attempt.analysis_status = AnalysisStatus.PRESENT
        logger.info("[ANALYSIS] %s: %d wrong answers classified", attempt.attempt_id,
                    analysis.error_types.total)
        return attempt
