"""
Mines: a 5x5 grid hides N mines; each safe tile revealed compounds the multiplier.
"""

from decimal import Decimal
from typing import List, Optional

from wagerhub.core.games.base import GameData, GameRule, close
from wagerhub.core.models import ClaimedResult, GameType, ValidationOutcome


GRID_SIZE = 25


def mines_multiplier(mine_count: int, tiles_revealed: int) -> Decimal:
    """Payout after revealing ``tiles_revealed`` safe tiles: (1 + m / (25 - m)) ** n."""
    safe_tiles = GRID_SIZE - mine_count
    step = Decimal(1) + Decimal(mine_count) / Decimal(safe_tiles)
    return step ** tiles_revealed


class MinesData(GameData):
    mine_count: int
    tiles_revealed: int
    mine_positions: Optional[List[int]] = None


class MinesRule(GameRule):
    game_type = GameType.MINES
    data_model = MinesData

    def check(self, claim: ClaimedResult, data: MinesData, tolerance: Decimal) -> ValidationOutcome:
        mine_count = data.mine_count
        tiles_revealed = data.tiles_revealed

        if mine_count < 1 or mine_count > GRID_SIZE - 1:
            return ValidationOutcome.reject("Invalid mine count")

        if tiles_revealed < 0 or tiles_revealed > GRID_SIZE - mine_count:
            return ValidationOutcome.reject("Invalid tiles revealed")

        if data.mine_positions is not None:
            positions = data.mine_positions
            if len(positions) != mine_count or len(set(positions)) != mine_count:
                return ValidationOutcome.reject("Mine positions do not match mine count")
            if any(p < 0 or p >= GRID_SIZE for p in positions):
                return ValidationOutcome.reject("Mine position outside the grid")

        if claim.is_win:
            if tiles_revealed == 0:
                return ValidationOutcome.reject("Cannot win without revealing tiles")
            expected = mines_multiplier(mine_count, tiles_revealed)
            if not close(claim.multiplier, expected, tolerance):
                return ValidationOutcome.reject("Invalid multiplier calculation")

        expected_win = claim.bet_amount * claim.multiplier if claim.is_win else Decimal(0)
        return self.check_winnings(claim, expected_win, tolerance)


mines_rule = MinesRule()
