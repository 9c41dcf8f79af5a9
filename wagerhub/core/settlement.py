"""
Settlement pipeline.

One claimed result moves through
    Unauthenticated -> Authenticated -> ShapeValid -> OutcomeValid -> FundsSufficient -> Settled
and stops at the first failing stage with that stage's error. Only the last
stage writes, and it writes the ledger mutation and the history record in
one transaction, so a failed attempt leaves nothing behind.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from wagerhub.config import AppConfig, GamesConfig
from wagerhub.core.database import Database
from wagerhub.core.exceptions import AccountNotFound, InvalidOutcome, MalformedRequest
from wagerhub.core.history import HistoryStore
from wagerhub.core.identity import IdentityProvider, SignedTokenIdentityProvider
from wagerhub.core.ledger import LedgerService
from wagerhub.core.logger import get_logger
from wagerhub.core.models import Account, ClaimedResult, SettledGame, SettledGameInput
from wagerhub.core.throttle import SettlementThrottle
from wagerhub.core.validator import OutcomeValidator

logger = get_logger("settlement")
# Rejected claims are potential tampering and go to their own channel
warden_logger = get_logger("warden")


@dataclass(frozen=True)
class SettlementReceipt:
    account: Account
    record: SettledGame

    @property
    def message(self) -> str:
        return "Congratulations!" if self.record.is_win else "Better luck next time!"

    def to_dict(self) -> Dict:
        return {
            "success": True,
            "newBalance": str(self.account.balance),
            "historyRecord": self.record.to_dict(),
            "message": self.message,
        }


def _violations(exc: ValidationError) -> List[str]:
    violations = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error["loc"]) or "body"
        violations.append(f"{location}: {error['msg']}")
    return violations


class SettlementPipeline:
    def __init__(
        self,
        identity_provider: IdentityProvider,
        ledger: LedgerService,
        history: HistoryStore,
        validator: OutcomeValidator,
        throttle: SettlementThrottle,
        games: Optional[GamesConfig] = None,
    ):
        self.identity_provider = identity_provider
        self.ledger = ledger
        self.history = history
        self.validator = validator
        self.throttle = throttle
        self.games = games or GamesConfig()

    def parse(self, payload: Any) -> ClaimedResult:
        """Shape check: fixed schema, enumerated game type, signed numeric fields, game limits."""
        if not isinstance(payload, dict):
            raise MalformedRequest(["body: must be a JSON object"])

        try:
            claim = ClaimedResult.model_validate(payload)
        except ValidationError as e:
            raise MalformedRequest(_violations(e))

        game_config = self.games.for_game(claim.game_type.value)
        if not game_config.enabled:
            raise MalformedRequest([f"gameType: '{claim.game_type.value}' is disabled"])
        if claim.bet_amount < game_config.min_bet or claim.bet_amount > game_config.max_bet:
            raise MalformedRequest(
                [f"betAmount: must be between {game_config.min_bet} and {game_config.max_bet}"]
            )
        return claim

    def submit(self, credential: Optional[str], payload: Any) -> SettlementReceipt:
        identity = self.identity_provider.verify(credential)

        claim = self.parse(payload)

        outcome = self.validator.validate(claim)
        if not outcome.ok:
            warden_logger.warning(
                "Rejected claimed game result",
                extra={
                    "subject_id": identity.subject_id,
                    "game_type": claim.game_type.value,
                    "bet_amount": str(claim.bet_amount),
                    "claimed_multiplier": str(claim.multiplier),
                    "reason": outcome.reason,
                },
            )
            raise InvalidOutcome(outcome.reason)

        account = self.ledger.find_account(identity.subject_id)
        if account is None:
            # Accounts are provisioned on first login, so this is an integrity fault
            logger.error("Verified identity has no account", extra={"subject_id": identity.subject_id})
            raise AccountNotFound()

        record = SettledGameInput.from_claim(account.id, claim)
        with self.ledger.account_lock(account.id):
            self.throttle.admit(account.id)
            account, settled = self.ledger.settle(
                account.id, record.bet_amount, record.win_amount, record=record
            )

        logger.info(
            "Settled game",
            extra={
                "account_id": account.id,
                "game_type": settled.game_type.value,
                "bet_amount": str(settled.bet_amount),
                "win_amount": str(settled.win_amount),
                "balance": str(account.balance),
            },
        )
        return SettlementReceipt(account=account, record=settled)


def build_pipeline(
    config: AppConfig,
    database: Optional[Database] = None,
    identity_provider: Optional[IdentityProvider] = None,
) -> SettlementPipeline:
    """Wire the settlement core from configuration."""
    if database is None:
        database = Database(config.paths.get_db_path(), busy_timeout=config.database.busy_timeout_seconds)
    if identity_provider is None:
        identity_provider = SignedTokenIdentityProvider.from_settings(config.security)

    return SettlementPipeline(
        identity_provider=identity_provider,
        ledger=LedgerService(database, starting_balance=config.economy.starting_balance),
        history=HistoryStore(database, max_limit=config.history.max_limit),
        validator=OutcomeValidator(tolerance=config.economy.tolerance),
        throttle=SettlementThrottle(
            min_interval=config.rate_limit.settle_min_interval_seconds,
            ttl=config.rate_limit.throttle_ttl_seconds,
            capacity=config.rate_limit.throttle_capacity,
        ),
        games=config.games,
    )
