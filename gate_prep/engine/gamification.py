# gate_prep/engine/gamification.py
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import AsyncIterator, Dict, List, Union

from gate_prep.domain.models import UserGamificationState
from gate_prep.domain.rules import GamificationRules, points_for_score

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GamificationUpdate:
    state: UserGamificationState
    points_earned: int
    new_badges: List[str]


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def next_streak(current_streak: int, last_attempt: Union[date, None], attempt_date: date) -> int:
    """
    - nessun tentativo precedente -> 1
    - ieri -> +1
    - stesso giorno -> invariato (niente doppio incremento)
    - altrimenti (buco di 2+ giorni) -> reset a 1
    """
    if last_attempt is None:
        return 1
    if last_attempt == attempt_date - timedelta(days=1):
        return current_streak + 1
    if last_attempt == attempt_date:
        return current_streak
    return 1


def update_gamification(
    state: UserGamificationState,
    attempt_date: Union[date, datetime],
    score: int,
    rules: GamificationRules = GamificationRules(),
) -> GamificationUpdate:
    """
    Calcola il nuovo stato: punti, streak, badge. Funzione pura: lo stato in
    ingresso non viene modificato, la persistenza è compito del chiamante.
    """
    today = _as_date(attempt_date)
    earned = points_for_score(score, rules)

    current = next_streak(state.current_streak, state.last_attempt_date, today)
    updated = replace(
        state,
        points=state.points + earned,
        current_streak=current,
        longest_streak=max(state.longest_streak, current),
        last_attempt_date=today,
        badges=list(state.badges),
    )

    new_badges = []
    for rule in rules.badge_rules:
        if rule.name not in updated.badges and rule.earned(updated):
            updated.badges.append(rule.name)
            new_badges.append(rule.name)

    if new_badges:
        logger.info("[GAMIFICATION] user=%s new badges: %s", state.user_id, ", ".join(new_badges))
    return GamificationUpdate(state=updated, points_earned=earned, new_badges=new_badges)


class UserLocks:
    """
    Un asyncio.Lock per utente: serializza il read-modify-write dello stato
    di gamification dello stesso utente, utenti diversi non si bloccano.
    Il lock viene rimosso quando l'ultimo che lo tiene (o lo aspetta) esce.
    """

    def __init__(self) -> None:
        # user_id -> [lock, quanti lo tengono o lo aspettano]
        self._locks: Dict[str, list] = {}

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        entry = self._locks.get(user_id)
        if entry is None:
            entry = self._locks[user_id] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[user_id]

    def is_held(self, user_id: str) -> bool:
        entry = self._locks.get(user_id)
        return entry is not None and entry[0].locked()

    def __len__(self) -> int:
        return len(self._locks)
