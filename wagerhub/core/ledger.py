"""
Ledger service: the only writer of account balances and counters.

Settlements for one account are serialized twice over: an in-process lock
per account keeps threads of this worker from interleaving, and the store's
write transaction keeps separate worker processes from doing so. The funds
check runs inside both, immediately before the write.
"""

import threading
from contextlib import contextmanager
from decimal import Decimal
from typing import Dict, Iterator, Optional, Tuple

from wagerhub.core.database import Database
from wagerhub.core.exceptions import InsufficientBalance, MalformedRequest
from wagerhub.core.logger import get_logger
from wagerhub.core.models import Account, Identity, SettledGame, SettledGameInput, money

logger = get_logger("ledger")


class _AccountLock:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.RLock()
        self.holders = 0


class LedgerService:
    def __init__(self, database: Database, starting_balance: Decimal = Decimal("1000.00")):
        self.db = database
        self.starting_balance = money(starting_balance)
        self._locks: Dict[str, _AccountLock] = {}
        self._guard = threading.Lock()

    @contextmanager
    def account_lock(self, account_id: str) -> Iterator[None]:
        """
        Hold the critical section for one account.
        Re-entrant for the owning thread; entries are dropped once nobody holds or waits on them.
        """
        with self._guard:
            entry = self._locks.get(account_id)
            if entry is None:
                entry = self._locks[account_id] = _AccountLock()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[account_id]

    # ==================== Accounts ====================

    def open_account(
        self,
        identity: Identity,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
        balance: Optional[Decimal] = None,
    ) -> Tuple[Account, bool]:
        """Provision the account for a verified identity, or return the existing one."""
        return self.db.create_account(
            identity.subject_id,
            money(balance) if balance is not None else self.starting_balance,
            email=email or identity.email,
            display_name=display_name or identity.name,
        )

    def find_account(self, subject_id: str) -> Optional[Account]:
        return self.db.get_account_by_subject(subject_id)

    def get_account(self, account_id: str) -> Optional[Account]:
        return self.db.get_account(account_id)

    # ==================== Settlement ====================

    def settle(
        self,
        account_id: str,
        bet: Decimal,
        win: Decimal,
        record: Optional[SettledGameInput] = None,
    ) -> Tuple[Account, Optional[SettledGame]]:
        """
        Debit ``bet`` and credit ``win`` in one atomic step.

        Raises:
            InsufficientBalance: balance is below ``bet`` at mutation time
            AccountNotFound: no account with ``account_id``
            StoreUnavailable: the store could not complete the transaction
        """
        bet = money(bet)
        win = money(win)
        if bet <= 0:
            raise MalformedRequest(["betAmount: must be greater than 0"])
        if win < 0:
            raise MalformedRequest(["winAmount: must not be negative"])

        def apply(account: Account) -> Account:
            if account.balance < bet:
                raise InsufficientBalance(balance=account.balance, bet=bet)
            account.balance = account.balance - bet + win
            account.total_wagered += bet
            account.total_won += win
            account.games_played += 1
            return account

        with self.account_lock(account_id):
            account, settled = self.db.mutate_account(account_id, apply, record)

        logger.debug(
            "Ledger mutation applied",
            extra={"account_id": account_id, "bet": str(bet), "win": str(win), "balance": str(account.balance)},
        )
        return account, settled
