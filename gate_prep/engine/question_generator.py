# gate_prep/engine/question_generator.py
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from typing import List, Optional, Protocol, Set, Tuple, Union

from gate_prep.ai.response_parser import ResponseParseError
from gate_prep.domain.errors import GenerationCountMismatch, GenerationFailed, TransportError
from gate_prep.domain.models import GenerationRequest, Question, QuizConfig

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


class QuestionSource(Protocol):
    async def generate(self, request: GenerationRequest) -> List[Question]: ...


class QuestionHistory(Protocol):
    async def get_all_question_texts_for_user(self, user_id: str) -> Set[str]: ...


@dataclass(frozen=True)
class GenerationSuccess:
    questions: List[Question]
    attempts: int


@dataclass(frozen=True)
class GenerationFailure:
    requested: int
    last_count: int
    attempts: int
    last_error: Optional[Exception] = None
    transport_only: bool = False

    def to_error(self) -> Exception:
        # servizio irraggiungibile a ogni tentativo: l'errore di trasporto sale così com'è
        if self.transport_only and isinstance(self.last_error, TransportError):
            return self.last_error
        return GenerationFailed(self.requested, self.last_count, self.attempts)


GenerationResult = Union[GenerationSuccess, GenerationFailure]


def fisher_yates_shuffle(items: List[str], rng: random.Random) -> List[str]:
    """Mescola una copia di `items` (Fisher–Yates, non distorto)."""
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def unique_count(questions: List[Question]) -> int:
    return len({q.text.strip() for q in questions})


class QuestionSetGenerator:
    """
    Genera esattamente N domande uniche per una QuizConfig:
    1. legge lo storico delle domande dell'utente (lista di esclusione)
    2. chiama la sorgente (LLM) chiedendo N domande
    3. se il conteggio non torna, ripete da capo fino a max_attempts
    4. a successo mescola le opzioni di ogni domanda a scelta
    """

    def __init__(
        self,
        source: QuestionSource,
        history: QuestionHistory,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        rng: Optional[random.Random] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.source = source
        self.history = history
        self.max_attempts = max_attempts
        self.rng = rng or random.Random()

    async def exclusion_list(self, user_id: str) -> Tuple[str, ...]:
        texts = await self.history.get_all_question_texts_for_user(user_id)
        return tuple(sorted({t.strip() for t in texts if t and t.strip()}))

    async def generate(self, config: QuizConfig) -> GenerationResult:
        if config.number_of_questions < 1:
            raise ValueError("number_of_questions must be >= 1")

        excluded = await self.exclusion_list(config.user_id)
        logger.info("[GENERATOR] user=%s: %d previously asked questions", config.user_id, len(excluded))
        request = GenerationRequest.from_config(config, excluded)
        wanted = request.desired_count

        last_count = 0
        last_error: Optional[Exception] = None
        transport_only = True

        for attempt in range(1, self.max_attempts + 1):
            logger.info("[GENERATOR] Calling question source, attempt %d...", attempt)
            try:
                questions = await self.source.generate(request)
            except TransportError as e:
                last_count, last_error = 0, e
                logger.warning("[GENERATOR] Attempt %d failed: %s", attempt, e)
                continue
            except ResponseParseError as e:
                last_count, last_error, transport_only = 0, e, False
                logger.warning("[GENERATOR] Attempt %d returned malformed output: %s", attempt, e)
                continue

            transport_only = False
            last_count = unique_count(questions)
            if len(questions) == wanted and last_count == wanted:
                logger.info("[GENERATOR] Generated %d questions on attempt %d.", wanted, attempt)
                return GenerationSuccess(questions=self.shuffle_options(questions), attempts=attempt)

            last_error = GenerationCountMismatch(wanted, last_count)
            logger.warning("[GENERATOR] Attempt %d failed. %s", attempt, last_error)

        logger.error("[GENERATOR] Failed to generate %d questions after %d attempts.", wanted, self.max_attempts)
        return GenerationFailure(
            requested=wanted,
            last_count=last_count,
            attempts=self.max_attempts,
            last_error=last_error,
            transport_only=transport_only,
        )

    async def generate_questions(self, config: QuizConfig) -> List[Question]:
        """Come generate(), ma solleva GenerationFailed / TransportError invece di restituire il fallimento."""
        result = await self.generate(config)
        if isinstance(result, GenerationFailure):
            raise result.to_error()
        return result.questions

    def shuffle_options(self, questions: List[Question]) -> List[Question]:
        return [
            replace(q, options=fisher_yates_shuffle(q.options, self.rng)) if q.kind.has_options else q
            for q in questions
        ]
