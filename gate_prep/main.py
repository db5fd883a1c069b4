# gate_prep/main.py
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

from gate_prep.ai.capabilities import GeminiExplainer, GeminiPerformanceCoach, GeminiQuestionSource
from gate_prep.ai.gemini_client import GeminiClient
from gate_prep.config import AppConfig
from gate_prep.domain.answers import answer_to_text
from gate_prep.domain.enums import QuestionKind, parse_difficulty
from gate_prep.domain.errors import GenerationFailed, TransportError
from gate_prep.domain.models import Attempt, Question, QuizConfig
from gate_prep.domain.rules import GamificationRules
from gate_prep.engine.performance import PerformanceAnalyzer
from gate_prep.engine.question_generator import QuestionSetGenerator
from gate_prep.engine.quiz_service import QuizService
from gate_prep.storage.json_store import JsonFileStore

LETTERS = "ABCD"


def _print_question(i: int, q: Question) -> None:
    print("\n" + "=" * 80)
    print(f"Q{i + 1} | {q.kind.value} | {q.difficulty.value} | {q.topic or '-'}")
    print("-" * 80)
    print(q.text)
    print("-" * 80)
    for letter, opt in zip(LETTERS, q.options):
        print(f"{letter}) {opt}")
    print("=" * 80)


def _read_answer(q: Question) -> Optional[Any]:
    if q.kind is QuestionKind.NUMERIC:
        hint = "number"
    elif q.kind is QuestionKind.MULTI_CHOICE:
        hint = "letters, e.g. A,C"
    else:
        hint = "A/B/C/D"
    s = input(f"Answer ({hint}, enter=skip, Q=quit): ").strip()
    if not s:
        return None
    if s.lower() in ("q", "quit", "exit"):
        raise KeyboardInterrupt()
    if q.kind is QuestionKind.NUMERIC:
        return s

    # lettere -> testo dell'opzione
    picked = []
    for part in s.upper().replace(" ", "").split(","):
        if len(part) == 1 and part in LETTERS[: len(q.options)]:
            picked.append(q.options[LETTERS.index(part)])
    if q.kind is QuestionKind.SINGLE_CHOICE:
        return picked[0] if picked else s
    return picked


def _ask(prompt: str, default: str = "") -> str:
    s = input(f"{prompt}{f' [{default}]' if default else ''}: ").strip()
    return s or default


def build_service(cfg: AppConfig) -> QuizService:
    gemini = GeminiClient(cfg.gemini)
    store = JsonFileStore(cfg.data_dir)
    generator = QuestionSetGenerator(
        GeminiQuestionSource(gemini), store, max_attempts=cfg.max_generation_attempts
    )
    return QuizService(
        generator=generator,
        store=store,
        analyzer=PerformanceAnalyzer(GeminiPerformanceCoach(gemini), store),
        explainer=GeminiExplainer(gemini),
        rules=GamificationRules(points_per_correct=cfg.points_per_correct),
    )


def _print_result(attempt: Attempt, result) -> None:
    print("\n--- RESULT ---")
    print(f"Score: {attempt.score}/{len(attempt.questions)} | Time: {attempt.total_time_seconds:.0f}s")
    for o in attempt.outcomes:
        q = attempt.questions[o.index]
        mark = "OK " if o.is_correct else "NO "
        tag = f" [{q.error_type.value}]" if q.error_type else ""
        print(f"{mark} Q{o.index + 1}: yours={answer_to_text(o.answer)} | correct={answer_to_text(q.correct_answer)}{tag}")

    g = result.gamification
    print(f"\n+{g.points_earned} points -> {g.state.points} | streak {g.state.current_streak} "
          f"(best {g.state.longest_streak})")
    if g.new_badges:
        print("New badges:", ", ".join(g.new_badges))
    if attempt.analysis:
        print("\n--- COACH ---")
        print(attempt.analysis.feedback)
        if attempt.analysis.weakest_topics:
            print("Weakest topics:", ", ".join(attempt.analysis.weakest_topics))
    else:
        print(f"\n(analysis {attempt.analysis_status.value})")


async def run(cfg: AppConfig) -> int:
    service = build_service(cfg)

    print("GATE PREP (CLI)")
    print(f"- Model: {cfg.gemini.model}")
    print(f"- Data: {cfg.data_dir}")
    print("Press Q to quit.\n")

    user_id = _ask("User id (email)")
    stats = await service.dashboard(user_id)
    print(f"Quizzes: {stats.quiz_count} | Points: {stats.points} | "
          f"Streak: {stats.current_streak} (best {stats.longest_streak})")
    if stats.badges:
        print("Badges:", ", ".join(stats.badges))

    quiz = QuizConfig(
        user_id=user_id,
        exam=_ask("Exam", "GATE"),
        stream=_ask("Stream", "Computer Science"),
        syllabus=_ask("Syllabus topics"),
        difficulty=parse_difficulty(_ask("Difficulty (Easy/Medium/Hard)", "Medium")),
        number_of_questions=int(_ask("Number of questions", "10")),
    )

    try:
        attempt = await service.start_quiz(quiz)
    except GenerationFailed as e:
        print(f"ERROR: {e}")
        return 1
    except TransportError as e:
        print(f"NETWORK ERROR: could not reach the AI service. {e}")
        return 1

    for i, q in enumerate(attempt.questions):
        _print_question(i, q)
        started = time.monotonic()
        try:
            ans = _read_answer(q)
        except KeyboardInterrupt:
            print("\nExit.")
            return 0
        service.record_time(attempt, i, time.monotonic() - started)
        service.select_answer(attempt, i, ans)

    result = await service.submit_attempt(attempt)
    _print_result(attempt, result)
    return 0


def main() -> int:
    cfg = AppConfig.from_env()
    logging.basicConfig(level=cfg.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    if not cfg.gemini.api_key:
        print("ERROR: GEMINI_API_KEY is not set.")
        return 2
    return asyncio.run(run(cfg))


if __name__ == "__main__":
    raise SystemExit(main())
