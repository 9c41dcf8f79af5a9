"""
Outcome validator: decides whether a claimed game result is internally consistent.

Pure and deterministic. Common checks run first, then the rule registered
for the claim's game type. Failures are returned as a rejected
ValidationOutcome with a human-readable reason, never raised.
"""

from decimal import Decimal

from wagerhub.core.games import RULES, UNRATED_GAMES
from wagerhub.core.games.base import close
from wagerhub.core.models import ClaimedResult, ValidationOutcome

DEFAULT_TOLERANCE = Decimal("0.01")


class OutcomeValidator:
    def __init__(self, tolerance: Decimal = DEFAULT_TOLERANCE):
        self.tolerance = Decimal(tolerance)

    def validate(self, claim: ClaimedResult) -> ValidationOutcome:
        outcome = self._check_common(claim)
        if not outcome.ok:
            return outcome

        rule = RULES.get(claim.game_type)
        if rule is None:
            if claim.game_type in UNRATED_GAMES:
                return ValidationOutcome.reject(
                    f"Game type '{claim.game_type.value}' cannot be verified yet"
                )
            return ValidationOutcome.reject("Unknown game type")

        return rule.validate(claim, self.tolerance)

    def _check_common(self, claim: ClaimedResult) -> ValidationOutcome:
        if claim.bet_amount <= 0:
            return ValidationOutcome.reject("Invalid bet amount")

        if claim.win_amount < 0:
            return ValidationOutcome.reject("Invalid win amount")

        if not close(claim.profit, claim.win_amount - claim.bet_amount, self.tolerance):
            return ValidationOutcome.reject("Invalid profit calculation")

        if claim.is_win != (claim.win_amount > claim.bet_amount):
            return ValidationOutcome.reject("Win flag does not match win amount")

        return ValidationOutcome.accept()
