"""
Crash: a multiplier climbs until it crashes; the player cashes out before that or loses the bet.
"""

from decimal import Decimal
from typing import Optional

from wagerhub.core.games.base import GameData, GameRule
from wagerhub.core.models import ClaimedResult, GameType, ValidationOutcome


class CrashData(GameData):
    crashed_at: Optional[Decimal] = None


class CrashRule(GameRule):
    """
    A cashed-out round pays ``bet * multiplier``; a crashed round pays nothing.
    Multipliers above MAX_MULTIPLIER are outside anything the client can produce.
    """

    game_type = GameType.CRASH
    data_model = CrashData

    MAX_MULTIPLIER = Decimal("1000")

    def check(self, claim: ClaimedResult, data: CrashData, tolerance: Decimal) -> ValidationOutcome:
        if claim.multiplier < 0:
            return ValidationOutcome.reject("Invalid multiplier")

        if claim.multiplier > self.MAX_MULTIPLIER:
            return ValidationOutcome.reject("Multiplier too high")

        if claim.is_win:
            if claim.multiplier == 0:
                return ValidationOutcome.reject("Cannot win with 0x multiplier")
            if data.crashed_at is not None and claim.multiplier > data.crashed_at + tolerance:
                return ValidationOutcome.reject("Cannot cash out after the crash point")

        expected_win = claim.bet_amount * claim.multiplier if claim.is_win else Decimal(0)
        return self.check_winnings(claim, expected_win, tolerance)


crash_rule = CrashRule()
