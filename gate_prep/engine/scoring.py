# gate_prep/engine/scoring.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List

from gate_prep.domain.answers import (
    Answer,
    InvalidAnswer,
    MultiChoiceAnswer,
    NumericAnswer,
    SingleChoiceAnswer,
    canonical_type_for,
    normalize_answer,
)
from gate_prep.domain.enums import QuestionKind
from gate_prep.domain.models import DEFAULT_NUMERIC_TOLERANCE, Attempt, Question, QuestionOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreConfig:
    """
    Finestra numerica di default (quando la domanda non ha numeric_range):
    |risposta - corretta| < tolerance, estremi esclusi.
    """
    numeric_tolerance: float = DEFAULT_NUMERIC_TOLERANCE


@dataclass(frozen=True)
class ScoredAttempt:
    attempt: Attempt
    outcomes: List[QuestionOutcome]

    @property
    def score(self) -> int:
        return sum(1 for o in self.outcomes if o.is_correct)


def _report_integrity(question: Question, detail: str) -> None:
    logger.warning("[SCORING] DataIntegrityWarning: %s (kind=%s, question=%.80r)",
                   detail, question.kind.value, question.text)


def _decimal(x: float) -> Decimal:
    # str() evita l'errore binario: 10.01 - 10 == 0.01 esatto
    return Decimal(str(x))


def evaluate_single_choice(user: SingleChoiceAnswer, correct: SingleChoiceAnswer) -> bool:
    return user.value.strip() == correct.value.strip()


def evaluate_multi_choice(user: MultiChoiceAnswer, correct: MultiChoiceAnswer) -> bool:
    """Uguaglianza di insiemi: ogni scelta dell'utente è corretta e nessuna corretta manca."""
    return user.values <= correct.values and correct.values <= user.values


def evaluate_numeric(user: NumericAnswer, question: Question, cfg: ScoreConfig = ScoreConfig()) -> bool:
    value = _decimal(user.value)
    rng = question.numeric_range
    if rng is not None:
        return _decimal(rng.min) <= value <= _decimal(rng.max)

    correct = question.correct_answer
    if not isinstance(correct, NumericAnswer):
        return False
    return abs(value - _decimal(correct.value)) < _decimal(cfg.numeric_tolerance)


def evaluate_answer(question: Question, answer: Answer, cfg: ScoreConfig = ScoreConfig()) -> bool:
    """
    Router unico per tipo di domanda. Non solleva mai:
    - risposta omessa / non valida -> False
    - forma della risposta (o della corretta) incoerente con `kind` -> warning + False
    """
    expected = canonical_type_for(question.kind)

    correct = question.correct_answer
    # con numeric_range la corretta serve solo come fallback
    has_range = question.kind is QuestionKind.NUMERIC and question.numeric_range is not None
    if not has_range and not isinstance(correct, expected):
        _report_integrity(question, f"stored correct answer is {type(correct).__name__}")
        return False

    if isinstance(answer, InvalidAnswer):
        if answer.shape_mismatch:
            _report_integrity(question, f"user answer rejected: {answer.reason}")
        return False
    if not answer:
        return False
    if not isinstance(answer, expected):
        _report_integrity(question, f"user answer is {type(answer).__name__}")
        return False

    if question.kind is QuestionKind.SINGLE_CHOICE:
        return evaluate_single_choice(answer, correct)
    if question.kind is QuestionKind.MULTI_CHOICE:
        return evaluate_multi_choice(answer, correct)
    return evaluate_numeric(answer, question, cfg)


def evaluate_raw(question: Question, raw: Any, cfg: ScoreConfig = ScoreConfig()) -> bool:
    return evaluate_answer(question, normalize_answer(raw, question.kind, question.options), cfg)


def normalize_answers(attempt: Attempt) -> Dict[int, Answer]:
    return {
        i: normalize_answer(attempt.user_answers.get(i), q.kind, q.options)
        for i, q in enumerate(attempt.questions)
    }


def build_outcomes(attempt: Attempt, cfg: ScoreConfig = ScoreConfig()) -> List[QuestionOutcome]:
    answers = normalize_answers(attempt)
    return [
        QuestionOutcome(index=i, is_correct=evaluate_answer(q, answers[i], cfg), answer=answers[i])
        for i, q in enumerate(attempt.questions)
    ]


def compute_score(attempt: Attempt, cfg: ScoreConfig = ScoreConfig()) -> ScoredAttempt:
    """
    Ricalcola il punteggio lato server (il valore del client non conta mai).
    Imposta attempt.score e attempt.outcomes.
    """
    outcomes = build_outcomes(attempt, cfg)
    attempt.outcomes = outcomes
    attempt.score = sum(1 for o in outcomes if o.is_correct)

    logger.info("[SCORING] user=%s score=%d/%d", attempt.user_id, attempt.score, len(outcomes))
    return ScoredAttempt(attempt=attempt, outcomes=outcomes)
