import os
import tempfile

# Settings are read at import time, so the environment is prepared before any wagerhub import
_tmp_dir = tempfile.mkdtemp(prefix="wagerhub-tests-")
os.environ["DB_PATH"] = os.path.join(_tmp_dir, "wagerhub.db")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SETTLE_MIN_INTERVAL"] = "0"
os.environ["RATE_LIMIT_API_REQUESTS"] = "25/minute"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DEBUG"] = "false"

from decimal import Decimal

import pytest

from wagerhub.config import settings
from wagerhub.core.database import Database
from wagerhub.core.history import HistoryStore
from wagerhub.core.identity import SignedTokenIdentityProvider
from wagerhub.core.ledger import LedgerService
from wagerhub.core.models import Identity
from wagerhub.core.settlement import SettlementPipeline
from wagerhub.core.throttle import SettlementThrottle
from wagerhub.core.validator import OutcomeValidator
from wagerhub.routers.auth import limiter


def make_payload(game_type, bet, multiplier, win=None, is_win=None, game_data=None, profit=None):
    """Build a claimed result as a client would send it; amounts derive from bet and multiplier."""
    bet = Decimal(str(bet))
    multiplier = Decimal(str(multiplier))
    if win is None:
        win = (bet * multiplier).quantize(Decimal("0.01"))
    win = Decimal(str(win))
    if is_win is None:
        is_win = win > bet
    if profit is None:
        profit = win - bet
    return {
        "gameType": game_type,
        "betAmount": str(bet),
        "multiplier": str(multiplier),
        "winAmount": str(win),
        "profit": str(profit),
        "isWin": is_win,
        "gameData": game_data or {},
    }


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


@pytest.fixture
def database(tmp_path):
    db = Database(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def provider():
    return SignedTokenIdentityProvider.from_settings(settings.security)


@pytest.fixture
def ledger(database):
    return LedgerService(database)


@pytest.fixture
def history(database):
    return HistoryStore(database)


@pytest.fixture
def throttle():
    return SettlementThrottle(min_interval=0)


@pytest.fixture
def pipeline(provider, ledger, history, throttle):
    return SettlementPipeline(provider, ledger, history, OutcomeValidator(), throttle)


@pytest.fixture
def open_account(ledger, provider):
    """Provision an account with a given balance; returns (account, bearer token)."""

    def _open(subject_id="player-1", balance="1000.00"):
        identity = Identity(subject_id=subject_id, email=f"{subject_id}@example.com", name=subject_id)
        account, _ = ledger.open_account(identity, balance=Decimal(balance))
        return account, provider.issue(subject_id, email=identity.email, name=identity.name)

    return _open
