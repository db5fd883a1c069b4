# tests/helpers.py
from __future__ import annotations

from typing import List, Optional, Set

from gate_prep.domain.answers import MultiChoiceAnswer, NumericAnswer, SingleChoiceAnswer
from gate_prep.domain.enums import Difficulty, QuestionKind
from gate_prep.domain.models import (
    AnalysisRequest,
    AnalysisResponse,
    Attempt,
    GenerationRequest,
    NumericRange,
    Question,
    QuizConfig,
)

OPTIONS = ["Stack", "Queue", "Heap", "Trie"]


def _mk_config(n: int = 10, user_id: str = "student@example.com") -> QuizConfig:
    return QuizConfig(
        exam="GATE",
        stream="Computer Science",
        syllabus="Data Structures",
        difficulty=Difficulty.MEDIUM,
        number_of_questions=n,
        user_id=user_id,
    )


def _mk_single(text: str = "Which structure is LIFO?", correct: str = "Stack", topic: str = "DS") -> Question:
    return Question(
        text=text,
        kind=QuestionKind.SINGLE_CHOICE,
        correct_answer=SingleChoiceAnswer(correct),
        options=list(OPTIONS),
        topic=topic,
    )


def _mk_multi(text: str = "Which are linear structures?", correct=("Stack", "Queue"), topic: str = "DS") -> Question:
    return Question(
        text=text,
        kind=QuestionKind.MULTI_CHOICE,
        correct_answer=MultiChoiceAnswer(frozenset(correct)),
        options=list(OPTIONS),
        topic=topic,
    )


def _mk_numeric(text: str = "Height of a 15-node complete tree?", correct: float = 10.0,
                rng: Optional[NumericRange] = None, topic: str = "Trees") -> Question:
    return Question(
        text=text,
        kind=QuestionKind.NUMERIC,
        correct_answer=NumericAnswer(correct),
        numeric_range=rng,
        topic=topic,
    )


def _mk_question_set(n: int, prefix: str = "Q") -> List[Question]:
    return [_mk_single(text=f"{prefix}{i}: which structure is LIFO?") for i in range(n)]


def _mk_attempt(questions: List[Question], answers=None, user_id: str = "student@example.com") -> Attempt:
    return Attempt(
        user_id=user_id,
        config=_mk_config(len(questions), user_id),
        questions=questions,
        user_answers=dict(answers or {}),
    )


class FakeSource:
    """Restituisce le risposte in ordine; un'eccezione nello script viene sollevata."""

    def __init__(self, script):
        self.script = list(script)
        self.requests: List[GenerationRequest] = []

    async def generate(self, request: GenerationRequest) -> List[Question]:
        self.requests.append(request)
        step = self.script[min(len(self.requests), len(self.script)) - 1]
        if isinstance(step, Exception):
            raise step
        return step(request) if callable(step) else list(step)


class FakeHistory:
    def __init__(self, texts: Optional[Set[str]] = None):
        self.texts = set(texts or ())

    async def get_all_question_texts_for_user(self, user_id: str) -> Set[str]:
        return set(self.texts)


class FakeCoach:
    def __init__(self, response: Optional[AnalysisResponse] = None, error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.requests: List[AnalysisRequest] = []

    async def analyze(self, request: AnalysisRequest) -> AnalysisResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response
