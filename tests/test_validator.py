"""
Outcome validator tests: common checks and the per-game payout rules.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from wagerhub.core.games import RULES, UNRATED_GAMES, hilo_multiplier, mines_multiplier
from wagerhub.core.models import ClaimedResult, GameType, money, ratio
from wagerhub.core.validator import OutcomeValidator

from conftest import make_payload

validator = OutcomeValidator()


def validate(payload):
    return validator.validate(ClaimedResult.model_validate(payload))


# ==================== Registry ====================


def test_every_game_type_is_rated_or_unrated():
    assert set(RULES) | UNRATED_GAMES == set(GameType)
    assert not set(RULES) & UNRATED_GAMES


@pytest.mark.parametrize("game_type", sorted(g.value for g in UNRATED_GAMES))
def test_unrated_games_are_rejected(game_type):
    outcome = validate(make_payload(game_type, 10, 2, game_data={"anything": 1}))
    assert not outcome.ok
    assert game_type in outcome.reason


# ==================== Common checks ====================


def test_profit_must_match_win_minus_bet():
    payload = make_payload("crash", 10, 2, profit="15.00")
    outcome = validate(payload)
    assert not outcome.ok
    assert outcome.reason == "Invalid profit calculation"


def test_profit_within_tolerance_is_accepted():
    assert validate(make_payload("crash", 10, 2, profit="10.01")).ok


def test_win_flag_must_follow_win_amount():
    outcome = validate(make_payload("crash", 10, 2, is_win=False))
    assert not outcome.ok
    assert outcome.reason == "Win flag does not match win amount"


def test_missing_game_data_is_rejected():
    outcome = validate(make_payload("mines", 10, 0, win=0))
    assert not outcome.ok
    assert outcome.reason.startswith("Missing game data")


# ==================== Crash ====================


def test_crash_cash_out_accepted():
    assert validate(make_payload("crash", 10, "2.35", game_data={"crashedAt": "3.10"})).ok


def test_crash_loss_accepted():
    assert validate(make_payload("crash", 10, "0", game_data={"crashedAt": "1.20"})).ok


def test_crash_multiplier_above_cap_rejected():
    outcome = validate(make_payload("crash", 1, "1001"))
    assert outcome.reason == "Multiplier too high"


def test_crash_loss_multiplier_above_cap_rejected():
    outcome = validate(make_payload("crash", "10.00", "1001", win="0", is_win=False))
    assert outcome.reason == "Multiplier too high"


def test_crash_cash_out_after_crash_point_rejected():
    outcome = validate(make_payload("crash", 10, "5", game_data={"crashedAt": "2.00"}))
    assert outcome.reason == "Cannot cash out after the crash point"


def test_crash_win_amount_must_match_multiplier():
    outcome = validate(make_payload("crash", 10, "2", win="25.00"))
    assert outcome.reason == "Invalid win amount calculation"


# ==================== Mines ====================


def test_mines_multiplier_formula():
    assert abs(mines_multiplier(3, 2) - Decimal(625) / Decimal(484)) < Decimal("1e-20")
    assert ratio(mines_multiplier(3, 2)) == Decimal("1.2913")
    assert mines_multiplier(5, 0) == 1


@pytest.mark.parametrize("mine_count", range(1, 25))
def test_mines_correct_multiplier_accepted_across_grid(mine_count):
    for tiles in range(1, 25 - mine_count + 1):
        multiplier = ratio(mines_multiplier(mine_count, tiles))
        payload = make_payload(
            "mines", 10, multiplier, game_data={"mineCount": mine_count, "tilesRevealed": tiles}
        )
        outcome = validate(payload)
        assert outcome.ok, f"m={mine_count} n={tiles}: {outcome.reason}"


@pytest.mark.parametrize("mine_count", [1, 3, 12, 24])
def test_mines_wrong_multiplier_rejected(mine_count):
    for tiles in range(1, 25 - mine_count + 1):
        multiplier = ratio(mines_multiplier(mine_count, tiles)) + Decimal("0.05")
        payload = make_payload(
            "mines", 10, multiplier, game_data={"mineCount": mine_count, "tilesRevealed": tiles}
        )
        outcome = validate(payload)
        assert outcome.reason == "Invalid multiplier calculation", f"m={mine_count} n={tiles}"


def test_mines_win_without_reveals_rejected():
    outcome = validate(make_payload("mines", 10, 2, game_data={"mineCount": 3, "tilesRevealed": 0}))
    assert outcome.reason == "Cannot win without revealing tiles"


def test_mines_loss_with_zero_reveals_accepted():
    assert validate(make_payload("mines", 10, 0, game_data={"mineCount": 3, "tilesRevealed": 0})).ok


@pytest.mark.parametrize(
    "game_data, reason",
    [
        ({"mineCount": 0, "tilesRevealed": 1}, "Invalid mine count"),
        ({"mineCount": 25, "tilesRevealed": 0}, "Invalid mine count"),
        ({"mineCount": 3, "tilesRevealed": 23}, "Invalid tiles revealed"),
        ({"mineCount": 3, "tilesRevealed": -1}, "Invalid tiles revealed"),
        ({"mineCount": 3, "tilesRevealed": 1, "minePositions": [1, 2]}, "Mine positions do not match mine count"),
        ({"mineCount": 2, "tilesRevealed": 1, "minePositions": [4, 4]}, "Mine positions do not match mine count"),
        ({"mineCount": 2, "tilesRevealed": 1, "minePositions": [4, 25]}, "Mine position outside the grid"),
    ],
)
def test_mines_board_checks(game_data, reason):
    assert validate(make_payload("mines", 10, 0, game_data=game_data)).reason == reason


# ==================== Limbo ====================


@pytest.mark.parametrize(
    "target, rolled",
    [("2", "1.5"), ("2", "2"), ("2", "7.31"), ("1.01", "1.00"), ("10", "9.99"), ("10", "10.5")],
)
def test_limbo_win_condition(target, rolled):
    should_win = Decimal(rolled) >= Decimal(target)
    game_data = {"targetMultiplier": target, "resultMultiplier": rolled}

    honest = make_payload("limbo", 10, target if should_win else 0, game_data=game_data)
    assert validate(honest).ok

    if should_win:
        flipped = make_payload("limbo", 10, 0, game_data=game_data)
    else:
        flipped = make_payload("limbo", 10, target, game_data=game_data)
    assert validate(flipped).reason == "Invalid win condition"


def test_limbo_claim_from_overview_is_rejected():
    payload = make_payload(
        "limbo", 10, 2, is_win=True, game_data={"targetMultiplier": 2, "resultMultiplier": "1.5"}
    )
    assert validate(payload).reason == "Invalid win condition"


def test_limbo_figures_too_large_to_compare_rejected():
    game_data = {"targetMultiplier": "1E+999999999", "resultMultiplier": "1E+999999999"}
    outcome = validate(make_payload("limbo", 10, 2, game_data=game_data))
    assert not outcome.ok


def test_limbo_target_must_exceed_one():
    payload = make_payload("limbo", 10, 0, game_data={"targetMultiplier": 1, "resultMultiplier": "0.5"})
    assert validate(payload).reason == "Target multiplier must be greater than 1"


def test_limbo_multiplier_must_equal_target():
    payload = make_payload("limbo", 10, 3, game_data={"targetMultiplier": 2, "resultMultiplier": 4})
    assert validate(payload).reason == "Invalid multiplier"


# ==================== Blackjack ====================


def blackjack_data(result, player_total=20):
    return {
        "playerCards": ["10H", "QS"],
        "dealerCards": ["9C", "8D"],
        "result": result,
        "playerTotal": player_total,
        "dealerTotal": 17,
    }


@pytest.mark.parametrize(
    "result, multiplier",
    [("blackjack", "2.5"), ("win", "2"), ("dealer-bust", "2"), ("push", "1"), ("lose", "0"), ("bust", "0")],
)
def test_blackjack_payout_table(result, multiplier):
    assert validate(make_payload("blackjack", 10, multiplier, game_data=blackjack_data(result))).ok

    for other in ("0", "1", "1.5", "2", "2.5", "3"):
        if Decimal(other) == Decimal(multiplier):
            continue
        outcome = validate(make_payload("blackjack", 10, other, game_data=blackjack_data(result)))
        assert not outcome.ok, f"{result} accepted multiplier {other}"


def test_blackjack_multiplier_has_no_tolerance():
    outcome = validate(make_payload("blackjack", 10, "2.001", win="20.00", game_data=blackjack_data("win")))
    assert outcome.reason == "Invalid multiplier for result"


def test_blackjack_unknown_result_rejected():
    outcome = validate(make_payload("blackjack", 10, 2, game_data=blackjack_data("surrender")))
    assert outcome.reason == "Invalid game result"


@pytest.mark.parametrize("total", [1, 31])
def test_blackjack_player_total_range(total):
    outcome = validate(make_payload("blackjack", 10, 2, game_data=blackjack_data("win", total)))
    assert outcome.reason == "Invalid player total"


def test_blackjack_requires_cards():
    data = blackjack_data("win")
    data["playerCards"] = []
    assert validate(make_payload("blackjack", 10, 2, game_data=data)).reason.startswith("Missing game data")


# ==================== Hi-Lo ====================


@pytest.mark.parametrize("streak", range(1, 21))
def test_hilo_streak_multiplier_accepted(streak):
    multiplier = hilo_multiplier(streak)
    assert multiplier == Decimal(1) + Decimal("0.3") * streak
    assert validate(make_payload("hilo", 10, multiplier, game_data={"streak": streak})).ok


def test_hilo_wrong_multiplier_rejected():
    outcome = validate(make_payload("hilo", 10, "2.5", game_data={"streak": 3}))
    assert outcome.reason == "Invalid multiplier calculation"


def test_hilo_win_needs_a_streak():
    outcome = validate(make_payload("hilo", 10, "1.3", game_data={"streak": 0}))
    assert outcome.reason == "Cannot win with 0 streak"


def test_hilo_loss_requires_zero_multiplier():
    assert validate(make_payload("hilo", 10, 0, game_data={"streak": 4})).ok
    outcome = validate(make_payload("hilo", 10, "0.5", win=0, game_data={"streak": 4}))
    assert outcome.reason == "Invalid multiplier calculation"


def test_hilo_negative_streak_rejected():
    assert validate(make_payload("hilo", 10, 0, game_data={"streak": -1})).reason == "Invalid streak"


def test_validator_is_deterministic():
    payload = make_payload("hilo", money(7), "1.9", game_data={"streak": 3})
    assert validate(payload) == validate(payload)


# ==================== Claim shape ====================


def test_claim_amounts_are_rounded_before_verification():
    claim = ClaimedResult.model_validate(
        make_payload("crash", "10.004", "1.00049", win="10.004", profit="0.004", is_win=True)
    )
    assert claim.bet_amount == Decimal("10.00")
    assert claim.win_amount == Decimal("10.00")
    assert claim.multiplier == Decimal("1.0005")


def test_break_even_after_rounding_is_not_a_win():
    payload = make_payload("crash", "10.00", "1.0004", win="10.004", profit="0.004", is_win=True)
    assert validate(payload).reason == "Win flag does not match win amount"


@pytest.mark.parametrize(
    "overrides",
    [
        {"betAmount": "0.004"},
        {"betAmount": "1E+30"},
        {"multiplier": "1E+30"},
        {"winAmount": "1E+30"},
        {"profit": "-1E+30"},
        {"gameData": {"streak": 10 ** 30}},
    ],
)
def test_implausible_figures_fail_the_shape_check(overrides):
    with pytest.raises(ValidationError):
        ClaimedResult.model_validate({**make_payload("crash", 10, 0), **overrides})
