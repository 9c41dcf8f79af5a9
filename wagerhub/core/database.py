"""
Database module for persistent storage.
Uses SQLite for account ledgers and the append-only settled game history.

Amounts are stored as decimal strings. Every account mutation runs inside a
``BEGIN IMMEDIATE`` transaction so the read-modify-write of a balance holds
the database write lock from the read onwards, across processes as well as
threads.
"""

import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from functools import wraps
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import orjson

from wagerhub.core.exceptions import AccountNotFound, StoreUnavailable
from wagerhub.core.logger import get_logger
from wagerhub.core.models import Account, GameType, SettledGame, SettledGameInput

logger = get_logger("database")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _timestamp(value: datetime) -> str:
    # Fixed-width so that text ordering matches time ordering
    return value.isoformat(timespec="microseconds")


def store_errors(func):
    """Translate SQLite operational failures (locked, busy, I/O) into StoreUnavailable."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except sqlite3.OperationalError as e:
            logger.error(f"Storage failure in {func.__name__}: {e}")
            raise StoreUnavailable() from e

    return wrapper


class Database:
    """Thread-safe SQLite wrapper: one connection per thread, explicit transactions."""

    def __init__(self, path: Path, busy_timeout: float = 5.0):
        self.path = Path(path)
        self.busy_timeout = busy_timeout
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()

        self.path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initializing database at {self.path}")
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, "connection", None)
        if conn is None:
            conn = sqlite3.connect(
                str(self.path),
                timeout=self.busy_timeout,
                check_same_thread=False,
                isolation_level=None,  # transactions are opened explicitly
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            self._local.connection = conn
            with self._connections_lock:
                self._connections.append(conn)
        return conn

    def close(self):
        """Close every connection opened by this instance."""
        with self._connections_lock:
            connections, self._connections = self._connections, []
        for conn in connections:
            conn.close()
        self._local = threading.local()

    @contextmanager
    def transaction(self, mode: str = "IMMEDIATE") -> Iterator[sqlite3.Connection]:
        """
        Run a block inside a transaction; roll back on any exception.
        IMMEDIATE takes the write lock up front; DEFERRED gives a read snapshot.
        """
        conn = self._get_connection()
        conn.execute(f"BEGIN {mode}")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        else:
            conn.execute("COMMIT")

    def _init_db(self):
        conn = self._get_connection()
        conn.execute("PRAGMA journal_mode = WAL")

        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS accounts (
                id TEXT PRIMARY KEY,
                subject_id TEXT UNIQUE NOT NULL,
                email TEXT,
                display_name TEXT,
                balance TEXT NOT NULL,
                total_wagered TEXT NOT NULL DEFAULT '0.00',
                total_won TEXT NOT NULL DEFAULT '0.00',
                games_played INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS settled_games (
                id TEXT PRIMARY KEY,
                account_id TEXT NOT NULL,
                game_type TEXT NOT NULL,
                bet_amount TEXT NOT NULL,
                multiplier TEXT NOT NULL,
                win_amount TEXT NOT NULL,
                profit TEXT NOT NULL,
                game_data TEXT,
                is_win INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (account_id) REFERENCES accounts(id)
            );

            CREATE INDEX IF NOT EXISTS idx_settled_games_account_created
                ON settled_games (account_id, created_at DESC);

            CREATE TRIGGER IF NOT EXISTS settled_games_no_update
                BEFORE UPDATE ON settled_games
                BEGIN SELECT RAISE(ABORT, 'settled_games is append-only'); END;

            CREATE TRIGGER IF NOT EXISTS settled_games_no_delete
                BEFORE DELETE ON settled_games
                BEGIN SELECT RAISE(ABORT, 'settled_games is append-only'); END;
            """
        )

    # ==================== Row Mapping ====================

    @staticmethod
    def _to_account(row: sqlite3.Row) -> Account:
        return Account(
            id=row["id"],
            subject_id=row["subject_id"],
            email=row["email"],
            display_name=row["display_name"],
            balance=Decimal(row["balance"]),
            total_wagered=Decimal(row["total_wagered"]),
            total_won=Decimal(row["total_won"]),
            games_played=row["games_played"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    @staticmethod
    def _to_settled_game(row: sqlite3.Row) -> SettledGame:
        return SettledGame(
            id=row["id"],
            account_id=row["account_id"],
            game_type=GameType(row["game_type"]),
            bet_amount=Decimal(row["bet_amount"]),
            multiplier=Decimal(row["multiplier"]),
            win_amount=Decimal(row["win_amount"]),
            profit=Decimal(row["profit"]),
            is_win=bool(row["is_win"]),
            game_data=orjson.loads(row["game_data"]) if row["game_data"] else {},
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # ==================== Accounts ====================

    @store_errors
    def get_account(self, account_id: str) -> Optional[Account]:
        row = self._get_connection().execute(
            "SELECT * FROM accounts WHERE id = ?", (account_id,)
        ).fetchone()
        return self._to_account(row) if row else None

    @store_errors
    def get_account_by_subject(self, subject_id: str) -> Optional[Account]:
        row = self._get_connection().execute(
            "SELECT * FROM accounts WHERE subject_id = ?", (subject_id,)
        ).fetchone()
        return self._to_account(row) if row else None

    @store_errors
    def create_account(
        self,
        subject_id: str,
        balance: Decimal,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> Tuple[Account, bool]:
        """
        Create the account bound to ``subject_id`` unless one exists.

        Returns:
            (account, created) where created is False if the subject already had an account
        """
        now = _timestamp(utcnow())
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO accounts (id, subject_id, email, display_name, balance, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(subject_id) DO NOTHING
                """,
                (str(uuid.uuid4()), subject_id, email, display_name, str(balance), now, now),
            )
            created = cursor.rowcount == 1
            row = conn.execute(
                "SELECT * FROM accounts WHERE subject_id = ?", (subject_id,)
            ).fetchone()

        if created:
            logger.info(f"Created account for subject {subject_id}")
        return self._to_account(row), created

    @store_errors
    def mutate_account(
        self,
        account_id: str,
        fn: Callable[[Account], Account],
        record: Optional[SettledGameInput] = None,
    ) -> Tuple[Account, Optional[SettledGame]]:
        """
        Atomically read an account, apply ``fn`` and write the result back.

        If ``record`` is given it is appended to the history in the same
        transaction. Anything raised by ``fn`` rolls the whole unit back.
        """
        with self.transaction() as conn:
            row = conn.execute("SELECT * FROM accounts WHERE id = ?", (account_id,)).fetchone()
            if not row:
                raise AccountNotFound()

            now = utcnow()
            account = fn(self._to_account(row))
            account.updated_at = now

            conn.execute(
                """
                UPDATE accounts
                SET balance = ?, total_wagered = ?, total_won = ?, games_played = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    str(account.balance),
                    str(account.total_wagered),
                    str(account.total_won),
                    account.games_played,
                    _timestamp(now),
                    account_id,
                ),
            )

            settled = self._insert_history(conn, record, now) if record is not None else None

        return account, settled

    # ==================== Settled Game History ====================

    def _insert_history(
        self, conn: sqlite3.Connection, record: SettledGameInput, created_at: datetime
    ) -> SettledGame:
        settled = SettledGame(
            id=str(uuid.uuid4()),
            account_id=record.account_id,
            game_type=record.game_type,
            bet_amount=record.bet_amount,
            multiplier=record.multiplier,
            win_amount=record.win_amount,
            profit=record.profit,
            is_win=record.is_win,
            game_data=record.game_data,
            created_at=created_at,
        )
        conn.execute(
            """
            INSERT INTO settled_games
                (id, account_id, game_type, bet_amount, multiplier, win_amount, profit, game_data, is_win, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                settled.id,
                settled.account_id,
                settled.game_type.value,
                str(settled.bet_amount),
                str(settled.multiplier),
                str(settled.win_amount),
                str(settled.profit),
                orjson.dumps(settled.game_data, default=str).decode("utf-8"),
                int(settled.is_win),
                _timestamp(created_at),
            ),
        )
        return settled

    @store_errors
    def append_history(self, record: SettledGameInput) -> SettledGame:
        with self.transaction() as conn:
            return self._insert_history(conn, record, utcnow())

    @store_errors
    def query_history(self, account_id: str, limit: int = 10) -> List[SettledGame]:
        rows = self._get_connection().execute(
            """
            SELECT * FROM settled_games
            WHERE account_id = ?
            ORDER BY created_at DESC, rowid DESC
            LIMIT ?
            """,
            (account_id, limit),
        ).fetchall()
        return [self._to_settled_game(row) for row in rows]

    @store_errors
    def aggregate_stats(self, account_id: str) -> Dict:
        """Raw per-account aggregates: counts by game type and summed profit by UTC day."""
        # One read snapshot for both queries so counts and profits agree
        with self.transaction("DEFERRED") as conn:
            by_type = conn.execute(
                """
                SELECT game_type, COUNT(*) AS plays, SUM(is_win) AS wins
                FROM settled_games
                WHERE account_id = ?
                GROUP BY game_type
                """,
                (account_id,),
            ).fetchall()
            profit_rows = conn.execute(
                "SELECT substr(created_at, 1, 10) AS day, profit FROM settled_games WHERE account_id = ?",
                (account_id,),
            ).fetchall()

        # Profit is summed in Python to keep Decimal precision
        profit_by_day: Dict[str, Decimal] = {}
        for row in profit_rows:
            profit_by_day[row["day"]] = profit_by_day.get(row["day"], Decimal("0")) + Decimal(row["profit"])

        return {
            "games_by_type": {row["game_type"]: row["plays"] for row in by_type},
            "wins": sum(row["wins"] or 0 for row in by_type),
            "profit_by_day": profit_by_day,
        }
