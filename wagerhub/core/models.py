"""
Domain models for settlement: the claimed result submitted by a client,
the account ledger row, and the immutable history record.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Optional

import orjson
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

CENTS = Decimal("0.01")
MULTIPLIER_PLACES = Decimal("0.0001")

# Upper bounds on claimed figures; anything larger is not a plausible round
MAX_AMOUNT = Decimal("1000000000")
MAX_MULTIPLIER = Decimal("1000000")


def money(value) -> Decimal:
    """Quantize an amount to whole cents."""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def ratio(value) -> Decimal:
    """Quantize a multiplier to four decimal places."""
    return Decimal(value).quantize(MULTIPLIER_PLACES, rounding=ROUND_HALF_UP)


class GameType(str, Enum):
    CRASH = "crash"
    MINES = "mines"
    LIMBO = "limbo"
    BLACKJACK = "blackjack"
    HILO = "hilo"
    PLINKO = "plinko"
    WHEEL = "wheel"
    KENO = "keno"
    POKER = "poker"
    CHICKEN = "chicken"
    PUMP = "pump"
    DRAGON = "dragon"


class ClaimedResult(BaseModel):
    """
    A finished round as reported by the client, before verification.

    Amounts are rounded to cents and the multiplier to four places on the
    way in, so verification sees exactly the figures that get settled.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    game_type: GameType
    bet_amount: Decimal = Field(gt=0, le=MAX_AMOUNT)
    multiplier: Decimal = Field(ge=0, le=MAX_MULTIPLIER)
    win_amount: Decimal = Field(ge=0, le=MAX_AMOUNT)
    profit: Decimal = Field(ge=-MAX_AMOUNT, le=MAX_AMOUNT)
    is_win: bool
    game_data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("bet_amount", "win_amount", "profit")
    @classmethod
    def _round_amount(cls, value: Decimal) -> Decimal:
        return money(value)

    @field_validator("bet_amount")
    @classmethod
    def _positive_after_rounding(cls, value: Decimal) -> Decimal:
        if value <= 0:
            raise ValueError("must be at least 0.01")
        return value

    @field_validator("multiplier")
    @classmethod
    def _round_multiplier(cls, value: Decimal) -> Decimal:
        return ratio(value)

    @field_validator("game_data", mode="before")
    @classmethod
    def _null_game_data(cls, value):
        return {} if value is None else value

    @field_validator("game_data")
    @classmethod
    def _storable_game_data(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        # The record is stored as JSON; orjson refuses integers beyond 64 bits
        try:
            orjson.dumps(value, default=str)
        except orjson.JSONEncodeError as e:
            raise ValueError(f"cannot be stored: {e}")
        return value


@dataclass(frozen=True)
class ValidationOutcome:
    ok: bool
    reason: Optional[str] = None

    @classmethod
    def accept(cls) -> "ValidationOutcome":
        return cls(ok=True)

    @classmethod
    def reject(cls, reason: str) -> "ValidationOutcome":
        return cls(ok=False, reason=reason)


@dataclass(frozen=True)
class Identity:
    """Caller identity as vouched for by the identity provider."""

    subject_id: str
    email: Optional[str] = None
    name: Optional[str] = None


@dataclass
class Account:
    id: str
    subject_id: str
    email: Optional[str]
    display_name: Optional[str]
    balance: Decimal
    total_wagered: Decimal
    total_won: Decimal
    games_played: int
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "subjectId": self.subject_id,
            "email": self.email,
            "displayName": self.display_name,
            "balance": str(self.balance),
            "totalWagered": str(self.total_wagered),
            "totalWon": str(self.total_won),
            "gamesPlayed": self.games_played,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class SettledGameInput:
    """History record fields supplied by the caller; id and timestamp are assigned on append."""

    account_id: str
    game_type: GameType
    bet_amount: Decimal
    multiplier: Decimal
    win_amount: Decimal
    profit: Decimal
    is_win: bool
    game_data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_claim(cls, account_id: str, claim: ClaimedResult) -> "SettledGameInput":
        bet = money(claim.bet_amount)
        win = money(claim.win_amount)
        # Profit and the win flag are derived so the stored record is consistent with its amounts
        return cls(
            account_id=account_id,
            game_type=claim.game_type,
            bet_amount=bet,
            multiplier=ratio(claim.multiplier),
            win_amount=win,
            profit=win - bet,
            is_win=win > bet,
            game_data=dict(claim.game_data),
        )


@dataclass(frozen=True)
class SettledGame:
    id: str
    account_id: str
    game_type: GameType
    bet_amount: Decimal
    multiplier: Decimal
    win_amount: Decimal
    profit: Decimal
    is_win: bool
    game_data: Dict[str, Any]
    created_at: datetime

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "userId": self.account_id,
            "gameType": self.game_type.value,
            "betAmount": str(self.bet_amount),
            "multiplier": str(self.multiplier),
            "winAmount": str(self.win_amount),
            "profit": str(self.profit),
            "gameData": self.game_data,
            "isWin": self.is_win,
            "createdAt": self.created_at.isoformat(),
        }
