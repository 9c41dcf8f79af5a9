"""
Settlement error taxonomy.
Each error carries the HTTP status it maps to and a machine-readable code.
"""

from typing import Dict, List, Optional


class SettlementError(Exception):
    status_code = 500
    code = "internal_error"
    retryable = False

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict:
        return {"success": False, "error": self.code, "message": self.message}


class AuthError(SettlementError):
    status_code = 401
    code = "unauthenticated"

    def __init__(self, message: str = "Invalid or missing credential"):
        super().__init__(message)


class MalformedRequest(SettlementError):
    status_code = 400
    code = "malformed_request"

    def __init__(self, violations: List[str], message: str = "Invalid game data"):
        super().__init__(message)
        self.violations = violations

    def to_dict(self) -> Dict:
        return {**super().to_dict(), "violations": self.violations}


class InvalidOutcome(SettlementError):
    status_code = 422
    code = "invalid_outcome"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InsufficientBalance(SettlementError):
    status_code = 409
    code = "insufficient_balance"

    def __init__(self, balance=None, bet=None):
        super().__init__("Insufficient balance")
        self.balance = balance
        self.bet = bet


class AccountNotFound(SettlementError):
    status_code = 404
    code = "account_not_found"

    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class TooFrequent(SettlementError):
    status_code = 429
    code = "too_frequent"
    retryable = True

    def __init__(self, retry_after: float):
        super().__init__("Too many games too quickly")
        self.retry_after = retry_after

    def to_dict(self) -> Dict:
        return {**super().to_dict(), "retry_after": round(self.retry_after, 3)}


class StoreUnavailable(SettlementError):
    status_code = 503
    code = "store_unavailable"
    retryable = True

    def __init__(self, message: str = "Storage temporarily unavailable", retry_after: Optional[float] = 1.0):
        super().__init__(message)
        self.retry_after = retry_after
