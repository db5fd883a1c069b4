# gate_prep/domain/enums.py
from __future__ import annotations

from enum import Enum


class QuestionKind(str, Enum):
    SINGLE_CHOICE = "SingleChoice"
    MULTI_CHOICE = "MultiChoice"
    NUMERIC = "Numeric"

    @property
    def has_options(self) -> bool:
        return self is not QuestionKind.NUMERIC


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class ErrorType(str, Enum):
    CORRECT = "Correct"
    CONCEPTUAL = "Conceptual"
    CARELESS_SLIP = "Careless Slip"
    QUESTION_MISINTERPRETATION = "Question Misinterpretation"


class AnalysisStatus(str, Enum):
    PENDING = "pending"
    UNAVAILABLE = "unavailable"
    PRESENT = "present"


# Il modello (e i dati vecchi) usano sigle diverse per lo stesso tipo
_KIND_ALIASES = {
    "singlechoice": QuestionKind.SINGLE_CHOICE,
    "single": QuestionKind.SINGLE_CHOICE,
    "mcq": QuestionKind.SINGLE_CHOICE,
    "multichoice": QuestionKind.MULTI_CHOICE,
    "multi": QuestionKind.MULTI_CHOICE,
    "msq": QuestionKind.MULTI_CHOICE,
    "numeric": QuestionKind.NUMERIC,
    "ntq": QuestionKind.NUMERIC,
}

_ERROR_ALIASES = {
    "correct": ErrorType.CORRECT,
    "conceptual": ErrorType.CONCEPTUAL,
    "conceptualerror": ErrorType.CONCEPTUAL,
    "carelessslip": ErrorType.CARELESS_SLIP,
    "careless": ErrorType.CARELESS_SLIP,
    "questionmisinterpretation": ErrorType.QUESTION_MISINTERPRETATION,
    "misinterpretation": ErrorType.QUESTION_MISINTERPRETATION,
}


def _squash(value: str) -> str:
    return "".join(ch for ch in value.lower() if ch.isalnum())


def parse_kind(value: str) -> QuestionKind:
    """Accepts 'MCQ', 'MultiChoice', 'multi choice', ... Raises ValueError."""
    kind = _KIND_ALIASES.get(_squash(str(value)))
    if kind is None:
        raise ValueError(f"unknown question kind: {value!r}")
    return kind


def parse_difficulty(value: str) -> Difficulty:
    key = str(value).strip().capitalize()
    return Difficulty(key)


def parse_error_type(value: str) -> ErrorType:
    err = _ERROR_ALIASES.get(_squash(str(value)))
    if err is None:
        raise ValueError(f"unknown error type: {value!r}")
    return err
