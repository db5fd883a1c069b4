# gate_prep/domain/errors.py
from __future__ import annotations


class QuizError(Exception):
    pass


class GenerationCountMismatch(QuizError):
    """Il modello ha restituito un numero di domande diverso da quello richiesto."""

    def __init__(self, requested: int, received: int):
        super().__init__(f"Generated {received} of {requested} questions.")
        self.requested = requested
        self.received = received


class GenerationFailed(QuizError):
    """Tentativi esauriti senza un set di domande della dimensione esatta."""

    def __init__(self, requested: int, last_count: int, attempts: int):
        super().__init__(
            f"The AI failed to generate the requested {requested} questions "
            f"(last attempt returned {last_count}, {attempts} attempts). "
            "Please try modifying your syllabus topics and try again."
        )
        self.requested = requested
        self.last_count = last_count
        self.attempts = attempts


class TransportError(QuizError):
    """Servizio AI irraggiungibile o configurato male (rete, quota, modello)."""


class AnalysisUnavailable(QuizError):
    pass


class StaleStateError(QuizError):
    """Scrittura ottimistica persa: lo stato è cambiato dopo la lettura."""

    def __init__(self, user_id: str, expected_version: int, actual_version: int):
        super().__init__(
            f"Gamification state for {user_id!r} is at version {actual_version}, expected {expected_version}."
        )
        self.user_id = user_id
        self.expected_version = expected_version
        self.actual_version = actual_version
