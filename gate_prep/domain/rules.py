# gate_prep/domain/rules.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Tuple

from gate_prep.domain.models import UserGamificationState


@dataclass(frozen=True)
class BadgeRule:
    """Un badge viene assegnato (una sola volta) quando `earned(state)` è vero."""
    name: str
    earned: Callable[[UserGamificationState], bool]


POINT_COLLECTOR = "Point Collector"
FIVE_DAY_STREAK = "5-Day Streak"

DEFAULT_BADGE_RULES: Tuple[BadgeRule, ...] = (
    BadgeRule(POINT_COLLECTOR, lambda s: s.points > 1000),
    BadgeRule(FIVE_DAY_STREAK, lambda s: s.current_streak >= 5),
)


@dataclass(frozen=True)
class GamificationRules:
    """
    Regole di gamification.
    - punti: 10 per ogni risposta corretta
    - badge: tabella di regole valutate dopo punti e streak
    """
    points_per_correct: int = 10
    badge_rules: Tuple[BadgeRule, ...] = field(default=DEFAULT_BADGE_RULES)


def points_for_score(score: int, rules: GamificationRules) -> int:
    return max(0, score) * rules.points_per_correct
