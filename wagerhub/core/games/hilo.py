"""
Hi-Lo: guess whether the next card is higher or lower.
Each correct guess grows the streak; cashing out pays 1 + 0.3 per streak step.
"""

from decimal import Decimal
from typing import Any, List, Optional

from wagerhub.core.games.base import GameData, GameRule, close
from wagerhub.core.models import ClaimedResult, GameType, ValidationOutcome


STREAK_STEP = Decimal("0.3")


def hilo_multiplier(streak: int) -> Decimal:
    return Decimal(1) + streak * STREAK_STEP


class HiLoData(GameData):
    streak: int
    final_multiplier: Optional[Decimal] = None
    recent_cards: Optional[List[Any]] = None


class HiLoRule(GameRule):
    game_type = GameType.HILO
    data_model = HiLoData

    def check(self, claim: ClaimedResult, data: HiLoData, tolerance: Decimal) -> ValidationOutcome:
        if data.streak < 0:
            return ValidationOutcome.reject("Invalid streak")

        if claim.is_win and data.streak == 0:
            return ValidationOutcome.reject("Cannot win with 0 streak")

        expected = hilo_multiplier(data.streak) if claim.is_win else Decimal(0)
        if not close(claim.multiplier, expected, tolerance):
            return ValidationOutcome.reject("Invalid multiplier calculation")

        expected_win = claim.bet_amount * claim.multiplier if claim.is_win else Decimal(0)
        return self.check_winnings(claim, expected_win, tolerance)


hilo_rule = HiLoRule()
