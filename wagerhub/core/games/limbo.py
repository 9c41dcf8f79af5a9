"""
Limbo: the player picks a target; the round wins when the rolled multiplier reaches it.
"""

from decimal import Decimal

from wagerhub.core.games.base import GameData, GameRule, close
from wagerhub.core.models import ClaimedResult, GameType, ValidationOutcome


class LimboData(GameData):
    target_multiplier: Decimal
    result_multiplier: Decimal


class LimboRule(GameRule):
    game_type = GameType.LIMBO
    data_model = LimboData

    def check(self, claim: ClaimedResult, data: LimboData, tolerance: Decimal) -> ValidationOutcome:
        target = data.target_multiplier
        rolled = data.result_multiplier

        if target <= 1:
            return ValidationOutcome.reject("Target multiplier must be greater than 1")

        if rolled <= 0:
            return ValidationOutcome.reject("Invalid result multiplier")

        should_win = rolled >= target
        if claim.is_win != should_win:
            return ValidationOutcome.reject("Invalid win condition")

        expected_multiplier = target if should_win else Decimal(0)
        if not close(claim.multiplier, expected_multiplier, tolerance):
            return ValidationOutcome.reject("Invalid multiplier")

        return self.check_winnings(claim, claim.bet_amount * expected_multiplier, tolerance)


limbo_rule = LimboRule()
