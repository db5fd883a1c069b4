# gate_prep/domain/answers.py
"""
Forma canonica delle risposte.

Le risposte arrivano (dal client o dallo storage) come stringhe, liste,
stringhe separate da virgola, numeri o JSON serializzato. Questo modulo è
l'unico punto che le converte nel tipo richiesto dal `kind` della domanda:
oltre questo confine nessuno vede più valori "grezzi".
"""
from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, Optional, Sequence, Union

from gate_prep.domain.enums import QuestionKind

MULTI_CHOICE_DELIMITER = ","


@dataclass(frozen=True)
class SingleChoiceAnswer:
    value: str


@dataclass(frozen=True)
class MultiChoiceAnswer:
    values: FrozenSet[str]


@dataclass(frozen=True)
class NumericAnswer:
    value: float


@dataclass(frozen=True)
class InvalidAnswer:
    raw: Any
    reason: str
    # True se il valore ha la forma sbagliata per il kind (es. lista per SingleChoice)
    shape_mismatch: bool = False


class _Unanswered:
    _instance: Optional["_Unanswered"] = None

    def __new__(cls) -> "_Unanswered":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNANSWERED"

    def __bool__(self) -> bool:
        return False


UNANSWERED = _Unanswered()

Answer = Union[SingleChoiceAnswer, MultiChoiceAnswer, NumericAnswer, InvalidAnswer, _Unanswered]

_CANONICAL_TYPE = {
    QuestionKind.SINGLE_CHOICE: SingleChoiceAnswer,
    QuestionKind.MULTI_CHOICE: MultiChoiceAnswer,
    QuestionKind.NUMERIC: NumericAnswer,
}


def canonical_type_for(kind: QuestionKind) -> type:
    return _CANONICAL_TYPE[kind]


def is_blank(raw: Any) -> bool:
    if raw is None:
        return True
    if isinstance(raw, str):
        return not raw.strip()
    if isinstance(raw, (list, tuple, set, frozenset)):
        return all(is_blank(x) for x in raw)
    return False


def normalize_answer(raw: Any, kind: QuestionKind, options: Optional[Sequence[str]] = None) -> Answer:
    """
    Converte `raw` nella forma canonica per `kind`. Funzione pura, non solleva.
    - None / "" / [] -> UNANSWERED
    - forma incompatibile o numero non valido -> InvalidAnswer
    `options` serve solo alle MultiChoice: una stringa identica a un'opzione
    non viene spezzata sulle virgole.
    """
    if isinstance(raw, (SingleChoiceAnswer, MultiChoiceAnswer, NumericAnswer, InvalidAnswer, _Unanswered)):
        return raw
    if is_blank(raw):
        return UNANSWERED

    if kind is QuestionKind.SINGLE_CHOICE:
        return _normalize_single(raw)
    if kind is QuestionKind.MULTI_CHOICE:
        return _normalize_multi(raw, options)
    return _normalize_numeric(raw)


def _normalize_single(raw: Any) -> Answer:
    if isinstance(raw, (list, tuple, set, frozenset, dict)):
        return InvalidAnswer(raw=raw, reason="collection given for a single-choice answer", shape_mismatch=True)
    return SingleChoiceAnswer(str(raw).strip())


def _normalize_multi(raw: Any, options: Optional[Sequence[str]]) -> Answer:
    if isinstance(raw, dict):
        return InvalidAnswer(raw=raw, reason="mapping given for a multi-choice answer", shape_mismatch=True)
    if isinstance(raw, (list, tuple, set, frozenset)):
        return _multi_from_items(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if options and text in {o.strip() for o in options}:
            return MultiChoiceAnswer(frozenset([text]))
        decoded = _decode_json_list(text)
        if decoded is not None:
            return _multi_from_items(decoded)
        return _multi_from_items(text.split(MULTI_CHOICE_DELIMITER))
    return MultiChoiceAnswer(frozenset([str(raw).strip()]))


def _multi_from_items(items: Iterable[Any]) -> Answer:
    values = frozenset(str(x).strip() for x in items if x is not None and str(x).strip())
    if not values:
        return UNANSWERED
    return MultiChoiceAnswer(values)


def _decode_json_list(text: str) -> Optional[list]:
    if not text.startswith("["):
        return None
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, list) else None


def _normalize_numeric(raw: Any) -> Answer:
    # bool è un int in Python, ma non è una risposta numerica
    if isinstance(raw, bool):
        return InvalidAnswer(raw=raw, reason="boolean given for a numeric answer", shape_mismatch=True)
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return InvalidAnswer(raw=raw, reason="not a number")
    else:
        return InvalidAnswer(raw=raw, reason=f"{type(raw).__name__} given for a numeric answer",
                             shape_mismatch=True)

    if math.isnan(value) or math.isinf(value):
        return InvalidAnswer(raw=raw, reason="not a finite number")
    return NumericAnswer(value)


def answer_to_raw(answer: Answer) -> Any:
    """Forma JSON-friendly di una risposta canonica (per storage e prompt)."""
    if isinstance(answer, SingleChoiceAnswer):
        return answer.value
    if isinstance(answer, MultiChoiceAnswer):
        return sorted(answer.values)
    if isinstance(answer, NumericAnswer):
        return answer.value
    if isinstance(answer, InvalidAnswer):
        return answer.raw
    return None


def answer_to_text(answer: Answer) -> str:
    if isinstance(answer, MultiChoiceAnswer):
        return ", ".join(sorted(answer.values))
    if isinstance(answer, NumericAnswer):
        return f"{answer.value:g}"
    if isinstance(answer, SingleChoiceAnswer):
        return answer.value
    if isinstance(answer, InvalidAnswer):
        return str(answer.raw)
    return "(unanswered)"
