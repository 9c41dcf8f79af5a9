"""
Blackjack: settled against a fixed payout table keyed by the round's result.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field

from wagerhub.core.games.base import GameData, GameRule
from wagerhub.core.models import ClaimedResult, GameType, ValidationOutcome


class BlackjackData(GameData):
    player_cards: List[Any] = Field(min_length=1)
    dealer_cards: List[Any] = Field(min_length=1)
    result: str
    player_total: int
    dealer_total: Optional[int] = None


class BlackjackRule(GameRule):
    """
    Payout multipliers include the returned stake:
    a natural pays 3:2 (2.5x), a win 1:1 (2x), a push returns the bet (1x).
    """

    game_type = GameType.BLACKJACK
    data_model = BlackjackData

    PAYOUTS: Dict[str, Decimal] = {
        "blackjack": Decimal("2.5"),
        "win": Decimal("2"),
        "dealer-bust": Decimal("2"),
        "push": Decimal("1"),
        "lose": Decimal("0"),
        "bust": Decimal("0"),
    }

    MIN_TOTAL = 2
    MAX_TOTAL = 30

    def check(self, claim: ClaimedResult, data: BlackjackData, tolerance: Decimal) -> ValidationOutcome:
        if data.player_total < self.MIN_TOTAL or data.player_total > self.MAX_TOTAL:
            return ValidationOutcome.reject("Invalid player total")

        expected_multiplier = self.PAYOUTS.get(data.result)
        if expected_multiplier is None:
            return ValidationOutcome.reject("Invalid game result")

        # Table values are exact; no rounding tolerance on the multiplier itself
        if claim.multiplier != expected_multiplier:
            return ValidationOutcome.reject("Invalid multiplier for result")

        if claim.is_win != (expected_multiplier > 1):
            return ValidationOutcome.reject("Invalid win condition")

        return self.check_winnings(claim, claim.bet_amount * expected_multiplier, tolerance)


blackjack_rule = BlackjackRule()
