# gate_prep/storage/serialization.py
"""
Conversione domain <-> dict JSON.

Le risposte corrette MultiChoice vengono salvate come lista (mai come stringa
unita da virgole); in lettura si accettano anche i formati vecchi, che passano
dal normalizzatore come ogni altra risposta grezza.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from gate_prep.domain.answers import answer_to_raw, normalize_answer
from gate_prep.domain.enums import AnalysisStatus, parse_difficulty, parse_error_type, parse_kind
from gate_prep.domain.models import (
    Attempt,
    ErrorTypeCounts,
    NumericRange,
    PerformanceAnalysis,
    Question,
    QuizConfig,
    UserGamificationState,
)


def question_to_dict(q: Question) -> Dict[str, Any]:
    data = {
        "question": q.text,
        "type": q.kind.value,
        "options": list(q.options),
        "correctAnswer": answer_to_raw(q.correct_answer),
        "difficulty": q.difficulty.value,
        "topic": q.topic,
        "timeTaken": q.time_taken_seconds,
    }
    if q.numeric_range is not None:
        data["numericRange"] = {"min": q.numeric_range.min, "max": q.numeric_range.max}
    if q.error_type is not None:
        data["errorType"] = q.error_type.value
    return data


def question_from_dict(data: Dict[str, Any]) -> Question:
    kind = parse_kind(data["type"])
    options = [str(o) for o in data.get("options") or []]
    rng = data.get("numericRange")
    return Question(
        text=data["question"],
        kind=kind,
        correct_answer=normalize_answer(data.get("correctAnswer"), kind, options),
        difficulty=parse_difficulty(data.get("difficulty", "Medium")),
        options=options,
        numeric_range=NumericRange(float(rng["min"]), float(rng["max"])) if rng else None,
        topic=data.get("topic") or "",
        time_taken_seconds=float(data.get("timeTaken") or 0),
        error_type=parse_error_type(data["errorType"]) if data.get("errorType") else None,
    )


def config_to_dict(c: QuizConfig) -> Dict[str, Any]:
    return {
        "exam": c.exam,
        "stream": c.stream,
        "syllabus": c.syllabus,
        "difficulty": c.difficulty.value,
        "numberOfQuestions": c.number_of_questions,
        "userId": c.user_id,
    }


def config_from_dict(data: Dict[str, Any]) -> QuizConfig:
    return QuizConfig(
        exam=data["exam"],
        stream=data["stream"],
        syllabus=data["syllabus"],
        difficulty=parse_difficulty(data["difficulty"]),
        number_of_questions=int(data["numberOfQuestions"]),
        user_id=data["userId"],
    )


def _jsonable(value: Any) -> Any:
    if isinstance(value, (set, frozenset, tuple)):
        return sorted(str(v) for v in value) if isinstance(value, (set, frozenset)) else list(value)
    return value


def user_answers_from_raw(raw: Any) -> Dict[int, Any]:
    # storico: a volte un array, a volte un oggetto {"0": ...}
    if isinstance(raw, list):
        return {i: v for i, v in enumerate(raw) if v is not None}
    if isinstance(raw, dict):
        return {int(k): v for k, v in raw.items() if v is not None}
    return {}


def analysis_to_dict(a: PerformanceAnalysis) -> Dict[str, Any]:
    return {
        "feedback": a.feedback,
        "weakestTopics": list(a.weakest_topics),
        "errorTypes": {
            "conceptual": a.error_types.conceptual,
            "careless": a.error_types.careless,
            "misinterpretation": a.error_types.misinterpretation,
        },
    }


def analysis_from_dict(data: Optional[Dict[str, Any]]) -> Optional[PerformanceAnalysis]:
    if not data:
        return None
    counts = data.get("errorTypes") or {}
    return PerformanceAnalysis(
        feedback=data.get("feedback", ""),
        weakest_topics=tuple(data.get("weakestTopics") or ()),
        error_types=ErrorTypeCounts(
            conceptual=int(counts.get("conceptual", 0)),
            careless=int(counts.get("careless", 0)),
            misinterpretation=int(counts.get("misinterpretation", 0)),
        ),
    )


def classification_to_dict(c: Optional[Dict[int, Any]]) -> Optional[Dict[str, str]]:
    if c is None:
        return None
    return {str(i): e.value for i, e in c.items()}


def attempt_to_dict(a: Attempt) -> Dict[str, Any]:
    return {
        "id": a.attempt_id,
        "userId": a.user_id,
        "date": a.created_at.isoformat(),
        "config": config_to_dict(a.config),
        "questions": [question_to_dict(q) for q in a.questions],
        "userAnswers": {str(i): _jsonable(v) for i, v in a.user_answers.items()},
        "score": a.score,
        "totalTime": a.total_time_seconds,
        "errorClassification": classification_to_dict(a.error_classification),
        "performanceAnalysis": analysis_to_dict(a.analysis) if a.analysis else None,
        "analysisStatus": a.analysis_status.value,
    }


def attempt_from_dict(data: Dict[str, Any]) -> Attempt:
    classification = data.get("errorClassification")
    created = datetime.fromisoformat(data["date"]) if data.get("date") else datetime.now(timezone.utc)
    return Attempt(
        user_id=data["userId"],
        config=config_from_dict(data["config"]),
        questions=[question_from_dict(q) for q in data.get("questions", [])],
        user_answers=user_answers_from_raw(data.get("userAnswers")),
        score=data.get("score"),
        total_time_seconds=float(data.get("totalTime") or 0),
        created_at=created,
        error_classification=(
            {int(k): parse_error_type(v) for k, v in classification.items()} if classification is not None else None
        ),
        analysis=analysis_from_dict(data.get("performanceAnalysis")),
        analysis_status=AnalysisStatus(data.get("analysisStatus", AnalysisStatus.PENDING.value)),
        attempt_id=data.get("id"),
    )


def gamification_to_dict(s: UserGamificationState) -> Dict[str, Any]:
    return {
        "userId": s.user_id,
        "points": s.points,
        "currentStreak": s.current_streak,
        "longestStreak": s.longest_streak,
        "badges": list(s.badges),
        "lastAttemptDate": s.last_attempt_date.isoformat() if s.last_attempt_date else None,
        "version": s.version,
    }


def gamification_from_dict(data: Dict[str, Any]) -> UserGamificationState:
    last = data.get("lastAttemptDate")
    return UserGamificationState(
        user_id=data["userId"],
        points=int(data.get("points", 0)),
        current_streak=int(data.get("currentStreak", 0)),
        longest_streak=int(data.get("longestStreak", 0)),
        badges=list(data.get("badges") or []),
        last_attempt_date=date.fromisoformat(last[:10]) if last else None,
        version=int(data.get("version", 0)),
    )

