# gate_prep/ai/response_parser.py
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List

from gate_prep.domain.answers import normalize_answer, MultiChoiceAnswer, NumericAnswer, SingleChoiceAnswer
from gate_prep.domain.enums import QuestionKind, parse_difficulty, parse_error_type, parse_kind
from gate_prep.domain.models import AnalysisResponse, NumericRange, Question, QuestionClassification

logger = logging.getLogger(__name__)

OPTIONS_PER_QUESTION = 4
MULTI_CHOICE_MIN_CORRECT = 2
MULTI_CHOICE_MAX_CORRECT = 3


class ResponseParseError(Exception):
    pass


def parse_question_from_llm_json(data: Dict[str, Any]) -> Question:
    if not isinstance(data, dict):
        raise ResponseParseError("Question is not an object")

    text = _require_str(data, "question")
    kind = _require_kind(data, "type")
    difficulty = _require_difficulty(data, "difficulty")
    topic = data.get("topic") if isinstance(data.get("topic"), str) else ""

    if kind is QuestionKind.NUMERIC:
        correct = _require_number(data, "correctAnswer")
        return Question(
            text=text,
            kind=kind,
            correct_answer=NumericAnswer(correct),
            difficulty=difficulty,
            numeric_range=_optional_range(data, "numericRange"),
            topic=topic.strip(),
        )

    options = _require_options(data)
    correct_answer = normalize_answer(data.get("correctAnswer"), kind, options)

    if kind is QuestionKind.SINGLE_CHOICE:
        if not isinstance(correct_answer, SingleChoiceAnswer):
            raise ResponseParseError("correctAnswer must be a single option")
        chosen = {correct_answer.value}
    else:
        if not isinstance(correct_answer, MultiChoiceAnswer):
            raise ResponseParseError("correctAnswer must list the correct options")
        chosen = set(correct_answer.values)
        if not MULTI_CHOICE_MIN_CORRECT <= len(chosen) <= MULTI_CHOICE_MAX_CORRECT:
            raise ResponseParseError(f"MSQ needs 2-3 correct options, got {len(chosen)}")

    if not chosen <= set(options):
        raise ResponseParseError("correctAnswer is not among the options")

    return Question(
        text=text,
        kind=kind,
        correct_answer=correct_answer,
        difficulty=difficulty,
        options=options,
        topic=topic.strip(),
    )


def parse_question_set_from_llm_json(data: Any) -> List[Question]:
    """
    Accetta {"questions": [...]} (anche la vecchia chiave "mcqQuestions") o una lista.
    Le domande malformate vengono scartate: il conteggio finale lo verifica il generatore.
    """
    if isinstance(data, dict):
        items = data.get("questions", data.get("mcqQuestions"))
    else:
        items = data
    if not isinstance(items, list):
        raise ResponseParseError("Missing 'questions' array")

    questions = []
    for i, item in enumerate(items):
        try:
            questions.append(parse_question_from_llm_json(item))
        except ResponseParseError as e:
            logger.warning("[PARSER] Discarded question #%d: %s", i + 1, e)
    return questions


def parse_analysis_from_llm_json(data: Any) -> AnalysisResponse:
    if not isinstance(data, dict):
        raise ResponseParseError("Analysis is not an object")

    feedback = _require_str(data, "overallFeedback")
    topics = tuple(_require_str_list(data, "weakestTopics"))

    per_question = []
    for item in data.get("errorAnalysis") or []:
        if not isinstance(item, dict):
            continue
        try:
            per_question.append(QuestionClassification(
                question_text=_require_str(item, "question"),
                error_type=parse_error_type(_require_str(item, "errorType")),
            ))
        except (ResponseParseError, ValueError) as e:
            logger.warning("[PARSER] Skipped error classification: %s", e)

    return AnalysisResponse(feedback=feedback, weakest_topics=topics, per_question=tuple(per_question))


def parse_explanation_from_llm_json(data: Any) -> str:
    if isinstance(data, dict):
        return _require_str(data, "explanation")
    raise ResponseParseError("Explanation is not an object")


# --- Helpers ---
def _require_str(data, key):
    v = data.get(key)
    if not isinstance(v, str) or not v.strip():
        raise ResponseParseError(f"Missing {key}")
    return v.strip()


def _require_kind(data, key):
    try:
        return parse_kind(_require_str(data, key))
    except ValueError as e:
        raise ResponseParseError(str(e)) from e


def _require_difficulty(data, key):
    try:
        return parse_difficulty(_require_str(data, key))
    except ValueError as e:
        raise ResponseParseError(f"{data.get(key)!r} not valid for {key}") from e


def _require_number(data, key):
    v = data.get(key)
    if isinstance(v, str):
        try:
            v = float(v.strip())
        except ValueError:
            raise ResponseParseError(f"{key} is not a number") from None
    if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v):
        raise ResponseParseError(f"{key} is not a number")
    return float(v)


def _optional_range(data, key):
    rng = data.get(key)
    if not isinstance(rng, dict):
        return None
    lo = _require_number(rng, "min")
    hi = _require_number(rng, "max")
    if lo > hi:
        raise ResponseParseError(f"{key}: min > max")
    return NumericRange(min=lo, max=hi)


def _require_options(data):
    opts = data.get("options")
    if not isinstance(opts, list):
        raise ResponseParseError("Missing options")
    cleaned = [str(o).strip() for o in opts if o is not None and str(o).strip()]
    if len(cleaned) != OPTIONS_PER_QUESTION or len(set(cleaned)) != OPTIONS_PER_QUESTION:
        raise ResponseParseError(f"Need {OPTIONS_PER_QUESTION} unique options, got {cleaned}")
    return cleaned


def _require_str_list(data, key):
    v = data.get(key, [])
    if not isinstance(v, list):
        return []
    return [str(x).strip() for x in v if str(x).strip()]
