"""Outcome rules for the game kinds the platform can settle."""

from typing import Dict, FrozenSet

from wagerhub.core.models import GameType

from .base import GameRule
from .crash import CrashRule, crash_rule
from .mines import MinesRule, mines_rule, mines_multiplier
from .limbo import LimboRule, limbo_rule
from .blackjack import BlackjackRule, blackjack_rule
from .hilo import HiLoRule, hilo_rule, hilo_multiplier

RULES: Dict[GameType, GameRule] = {
    rule.game_type: rule
    for rule in (crash_rule, mines_rule, limbo_rule, blackjack_rule, hilo_rule)
}

# Recorded by clients but without a verification rule; claims for these are rejected.
UNRATED_GAMES: FrozenSet[GameType] = frozenset(
    {
        GameType.PLINKO,
        GameType.WHEEL,
        GameType.KENO,
        GameType.POKER,
        GameType.CHICKEN,
        GameType.PUMP,
        GameType.DRAGON,
    }
)

__all__ = [
    "GameRule",
    "CrashRule",
    "crash_rule",
    "MinesRule",
    "mines_rule",
    "mines_multiplier",
    "LimboRule",
    "limbo_rule",
    "BlackjackRule",
    "blackjack_rule",
    "HiLoRule",
    "hilo_rule",
    "hilo_multiplier",
    "RULES",
    "UNRATED_GAMES",
]
