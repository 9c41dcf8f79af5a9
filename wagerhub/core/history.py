"""
History store: append-only record of settled games with recent-N queries and per-account statistics.
"""

from typing import Dict, List

from wagerhub.core.database import Database
from wagerhub.core.models import SettledGame, SettledGameInput


class HistoryStore:
    def __init__(self, database: Database, max_limit: int = 100):
        self.db = database
        self.max_limit = max_limit

    def append(self, record: SettledGameInput) -> SettledGame:
        """Write a record once; the id and creation time are assigned here."""
        return self.db.append_history(record)

    def recent(self, account_id: str, limit: int = 10) -> List[SettledGame]:
        """Newest first, at most ``limit`` records (capped at ``max_limit``)."""
        limit = min(limit, self.max_limit)
        if limit <= 0:
            return []
        return self.db.query_history(account_id, limit)

    def stats_for(self, account_id: str) -> Dict:
        raw = self.db.aggregate_stats(account_id)
        games_by_type = raw["games_by_type"]
        total_games = sum(games_by_type.values())
        win_rate = (raw["wins"] / total_games) * 100 if total_games else 0

        return {
            "totalGames": total_games,
            "gamesByType": games_by_type,
            "profitByDay": {day: str(profit) for day, profit in sorted(raw["profit_by_day"].items())},
            "winRate": round(win_rate, 2),
        }
