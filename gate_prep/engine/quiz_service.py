# gate_prep/engine/quiz_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, List, Optional, Protocol

from gate_prep.domain.answers import MultiChoiceAnswer, answer_to_text
from gate_prep.domain.errors import StaleStateError
from gate_prep.domain.models import (
    Attempt,
    DashboardStats,
    ExplanationRequest,
    Question,
    QuizConfig,
    UserGamificationState,
)
from gate_prep.domain.rules import GamificationRules
from gate_prep.engine.gamification import GamificationUpdate, UserLocks, update_gamification
from gate_prep.engine.performance import PerformanceAnalyzer
from gate_prep.engine.question_generator import QuestionSetGenerator
from gate_prep.engine.scoring import ScoreConfig, build_outcomes, compute_score

logger = logging.getLogger(__name__)


class AttemptStore(Protocol):
    async def save_attempt(self, attempt: Attempt) -> str: ...

    async def list_attempts(self, user_id: str) -> List[Attempt]: ...

    async def load_gamification_state(self, user_id: str) -> Optional[UserGamificationState]: ...

    async def save_gamification_state(self, user_id: str, state: UserGamificationState) -> UserGamificationState: ...


class Explainer(Protocol):
    async def explain(self, request: ExplanationRequest) -> str: ...


@dataclass(frozen=True)
class SubmissionResult:
    attempt: Attempt
    gamification: GamificationUpdate

    @property
    def score(self) -> int:
        return self.attempt.score or 0


class QuizService:
    """
    Ciclo di vita di un tentativo:
    generazione -> risposte/tempi domanda per domanda -> consegna.
    Alla consegna l'ordine è fisso: punteggio, gamification, salvataggio, analisi.
    """

    def __init__(
        self,
        generator: QuestionSetGenerator,
        store: AttemptStore,
        analyzer: Optional[PerformanceAnalyzer] = None,
        explainer: Optional[Explainer] = None,
        rules: GamificationRules = GamificationRules(),
        score_cfg: ScoreConfig = ScoreConfig(),
        max_state_retries: int = 3,
    ):
        if max_state_retries < 1:
            raise ValueError("max_state_retries must be >= 1")
        self.generator = generator
        self.store = store
        self.analyzer = analyzer
        self.explainer = explainer
        self.rules = rules
        self.score_cfg = score_cfg
        self.max_state_retries = max_state_retries
        self.locks = UserLocks()

    # --- FASE 1: GENERAZIONE ---
    async def start_quiz(self, config: QuizConfig) -> Attempt:
        questions = await self.generator.generate_questions(config)
        return self.start_attempt(config, questions)

    def start_attempt(self, config: QuizConfig, questions: List[Question]) -> Attempt:
        return Attempt(user_id=config.user_id, config=config, questions=list(questions))

    # --- FASE 2: SESSIONE ---
    def select_answer(self, attempt: Attempt, index: int, raw: Any) -> None:
        self._check_index(attempt, index)
        if raw is None:
            attempt.user_answers.pop(index, None)
        else:
            attempt.user_answers[index] = raw

    def record_time(self, attempt: Attempt, index: int, seconds: float) -> None:
        self._check_index(attempt, index)
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        attempt.questions[index].time_taken_seconds += seconds
        attempt.total_time_seconds += seconds

    @staticmethod
    def _check_index(attempt: Attempt, index: int) -> None:
        if not 0 <= index < len(attempt.questions):
            raise IndexError(f"question index {index} out of range")

    # --- FASE 3: CONSEGNA ---
    async def submit_attempt(
        self,
        attempt: Attempt,
        attempt_date: Optional[date] = None,
        learning_style_hint: str = "",
    ) -> SubmissionResult:
        scored = compute_score(attempt, self.score_cfg)
        update = await self.update_user_stats(attempt.user_id, attempt_date or date.today(), scored.score)

        await self.store.save_attempt(attempt)

        if self.analyzer is not None:
            await self.analyzer.analyze(attempt, learning_style_hint)

        return SubmissionResult(attempt=attempt, gamification=update)

    async def update_user_stats(self, user_id: str, attempt_date: date, score: int) -> GamificationUpdate:
        """Read-modify-write dello stato utente, serializzato per utente e con retry ottimistico."""
        last_error: Optional[StaleStateError] = None
        async with self.locks.hold(user_id):
            for _ in range(self.max_state_retries):
                state = await self.store.load_gamification_state(user_id) or UserGamificationState(user_id=user_id)
                update = update_gamification(state, attempt_date, score, self.rules)
                try:
                    saved = await self.store.save_gamification_state(user_id, update.state)
                except StaleStateError as e:
                    logger.warning("[QUIZ] %s, retrying", e)
                    last_error = e
                    continue
                return replace(update, state=saved)
        raise last_error

    # --- EXTRA ---
    async def explain_question(self, question: Question, stream: str) -> str:
        if self.explainer is None:
            raise RuntimeError("No explainer configured.")
        ca = question.correct_answer
        correct = answer_to_text(ca)
        right = ca.values if isinstance(ca, MultiChoiceAnswer) else {correct}
        wrong = tuple(o for o in question.options if o not in right)
        return await self.explainer.explain(ExplanationRequest(
            question_text=question.text,
            correct_answer=correct,
            incorrect_answers=wrong,
            stream=stream,
        ))

    async def history(self, user_id: str) -> List[Attempt]:
        """Tentativi salvati, dal più recente, con le risposte rinormalizzate per tipo di domanda."""
        attempts = await self.store.list_attempts(user_id)
        for a in attempts:
            a.outcomes = build_outcomes(a, self.score_cfg)
        return attempts

    async def dashboard(self, user_id: str) -> DashboardStats:
        state = await self.store.load_gamification_state(user_id)
        quiz_count = len(await self.store.list_attempts(user_id))
        if state is None:
            return DashboardStats(quiz_count=quiz_count)
        return DashboardStats(
            quiz_count=quiz_count,
            points=state.points,
            badges=tuple(state.badges),
            current_streak=state.current_streak,
            longest_streak=state.longest_streak,
        )
