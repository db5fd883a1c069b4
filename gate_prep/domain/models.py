# gate_prep/domain/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from gate_prep.domain.answers import UNANSWERED, Answer
from gate_prep.domain.enums import AnalysisStatus, Difficulty, ErrorType, QuestionKind

DEFAULT_NUMERIC_TOLERANCE = 0.01


@dataclass(frozen=True)
class NumericRange:
    min: float
    max: float


@dataclass
class Question:
    text: str
    kind: QuestionKind
    correct_answer: Answer
    difficulty: Difficulty = Difficulty.MEDIUM
    options: List[str] = field(default_factory=list)
    numeric_range: Optional[NumericRange] = None
    topic: str = ""

    # aggiornati durante / dopo il tentativo
    time_taken_seconds: float = 0.0
    error_type: Optional[ErrorType] = None


@dataclass(frozen=True)
class QuizConfig:
    exam: str
    stream: str
    syllabus: str
    difficulty: Difficulty
    number_of_questions: int
    user_id: str


@dataclass(frozen=True)
class QuestionOutcome:
    index: int
    is_correct: bool
    answer: Answer = UNANSWERED

    @property
    def answered(self) -> bool:
        return bool(self.answer)


@dataclass(frozen=True)
class ErrorTypeCounts:
    conceptual: int = 0
    careless: int = 0
    misinterpretation: int = 0

    @property
    def total(self) -> int:
        return self.conceptual + self.careless + self.misinterpretation


@dataclass(frozen=True)
class PerformanceAnalysis:
    feedback: str
    weakest_topics: Tuple[str, ...] = ()
    error_types: ErrorTypeCounts = ErrorTypeCounts()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Attempt:
    user_id: str
    config: QuizConfig
    questions: List[Question] = field(default_factory=list)
    # indice domanda -> risposta grezza così come arriva dal client
    user_answers: Dict[int, Any] = field(default_factory=dict)
    score: Optional[int] = None
    total_time_seconds: float = 0.0
    created_at: datetime = field(default_factory=_utcnow)

    outcomes: List[QuestionOutcome] = field(default_factory=list)
    error_classification: Optional[Dict[int, ErrorType]] = None
    analysis: Optional[PerformanceAnalysis] = None
    analysis_status: AnalysisStatus = AnalysisStatus.PENDING

    attempt_id: Optional[str] = None

    @property
    def is_scored(self) -> bool:
        return self.score is not None


@dataclass
class UserGamificationState:
    user_id: str
    points: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    badges: List[str] = field(default_factory=list)
    last_attempt_date: Optional[date] = None

    # contatore per scrittura ottimistica (vedi JsonFileStore)
    version: int = 0


# --- Contratti verso le capability esterne (generazione / analisi) ---

@dataclass(frozen=True)
class GenerationRequest:
    exam: str
    stream: str
    syllabus: str
    difficulty: Difficulty
    desired_count: int
    exclusion_list: Tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config: QuizConfig, exclusion_list: Tuple[str, ...] = ()) -> "GenerationRequest":
        return cls(
            exam=config.exam,
            stream=config.stream,
            syllabus=config.syllabus,
            difficulty=config.difficulty,
            desired_count=config.number_of_questions,
            exclusion_list=exclusion_list,
        )


@dataclass(frozen=True)
class QuestionResult:
    question_text: str
    topic: str
    difficulty: Difficulty
    time_taken_seconds: float
    user_answer: str
    correct_answer: str
    is_correct: bool


@dataclass(frozen=True)
class AnalysisRequest:
    exam: str
    stream: str
    results: Tuple[QuestionResult, ...]
    learning_style_hint: str = ""


@dataclass(frozen=True)
class QuestionClassification:
    question_text: str
    error_type: ErrorType


@dataclass(frozen=True)
class AnalysisResponse:
    feedback: str
    weakest_topics: Tuple[str, ...] = ()
    per_question: Tuple[QuestionClassification, ...] = ()


@dataclass(frozen=True)
class ExplanationRequest:
    question_text: str
    correct_answer: str
    incorrect_answers: Tuple[str, ...]
    stream: str


@dataclass(frozen=True)
class DashboardStats:
    """Riepilogo per la dashboard; tutto a zero per un utente senza storico."""
    quiz_count: int = 0
    points: int = 0
    badges: Tuple[str, ...] = ()
    current_streak: int = 0
    longest_streak: int = 0
