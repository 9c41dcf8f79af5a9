"""
Shared plumbing for per-game outcome rules.

A rule parses the claim's ``gameData`` into its own typed model and then
checks the claimed multiplier and amounts against what the game allows.
Rules never raise; every violation becomes a rejected ValidationOutcome.
"""

from decimal import Decimal, DecimalException
from typing import Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from wagerhub.core.models import ClaimedResult, GameType, ValidationOutcome


class GameData(BaseModel):
    """Base for per-game payloads. Unknown keys are kept for the history record."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


def close(a, b, tolerance: Decimal) -> bool:
    return abs(Decimal(a) - Decimal(b)) <= tolerance


def describe_errors(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error["loc"]) or "gameData"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


class GameRule:
    game_type: GameType
    data_model: Type[GameData] = GameData

    def parse_data(self, claim: ClaimedResult) -> Tuple[Optional[GameData], Optional[str]]:
        try:
            return self.data_model.model_validate(claim.game_data), None
        except ValidationError as e:
            return None, f"Missing game data ({describe_errors(e)})"

    def validate(self, claim: ClaimedResult, tolerance: Decimal) -> ValidationOutcome:
        data, error = self.parse_data(claim)
        if error:
            return ValidationOutcome.reject(error)
        try:
            return self.check(claim, data, tolerance)
        except DecimalException:
            # gameData figures too large to compare against the claim
            return ValidationOutcome.reject("Invalid game data")

    def check(self, claim: ClaimedResult, data: GameData, tolerance: Decimal) -> ValidationOutcome:
        raise NotImplementedError

    @staticmethod
    def check_winnings(claim: ClaimedResult, expected_win: Decimal, tolerance: Decimal) -> ValidationOutcome:
        """Compare the claimed win amount with what the game pays out."""
        if not close(claim.win_amount, expected_win, tolerance):
            if not claim.is_win and claim.win_amount > 0 and expected_win == 0:
                return ValidationOutcome.reject("Lost game cannot have winnings")
            return ValidationOutcome.reject("Invalid win amount calculation")
        return ValidationOutcome.accept()
