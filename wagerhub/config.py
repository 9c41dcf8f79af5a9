"""
Configuration management for WagerHub.
Supports config.json with environment variable overrides.
All paths are resolved relative to the project root.
"""

import json
import os
from decimal import Decimal
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

# Project root directory (parent of 'wagerhub' folder)
PROJECT_ROOT = Path(__file__).parent.parent


def get_env(key: str, default: str = None) -> Optional[str]:
    """Get environment variable with optional default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes", "on")


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def get_env_float(key: str, default: float = 0.0) -> float:
    """Get float environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        return default


# ==================== Configuration Models ====================

class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = True
    name: str = "WagerHub"


class SecurityConfig(BaseModel):
    secret_key: str = "CHANGE_THIS_IN_PRODUCTION_PLEASE"
    token_salt: str = "wagerhub-identity"
    token_max_age_hours: int = 24


class EconomyConfig(BaseModel):
    starting_balance: Decimal = Decimal("1000.00")
    tolerance: Decimal = Decimal("0.01")  # Allowed rounding drift on amounts


class GameConfig(BaseModel):
    enabled: bool = True
    min_bet: Decimal = Decimal("0.01")
    max_bet: Decimal = Decimal("1000.00")


class GamesConfig(BaseModel):
    crash: GameConfig = Field(default_factory=GameConfig)
    mines: GameConfig = Field(default_factory=GameConfig)
    limbo: GameConfig = Field(default_factory=GameConfig)
    blackjack: GameConfig = Field(default_factory=GameConfig)
    hilo: GameConfig = Field(default_factory=GameConfig)
    plinko: GameConfig = Field(default_factory=GameConfig)
    wheel: GameConfig = Field(default_factory=GameConfig)
    keno: GameConfig = Field(default_factory=GameConfig)
    poker: GameConfig = Field(default_factory=GameConfig)
    chicken: GameConfig = Field(default_factory=GameConfig)
    pump: GameConfig = Field(default_factory=GameConfig)
    dragon: GameConfig = Field(default_factory=GameConfig)

    def for_game(self, game: str) -> GameConfig:
        return getattr(self, game, None) or GameConfig()


class RateLimitConfig(BaseModel):
    enabled: bool = True
    api_requests: str = "60/minute"  # slowapi limit for read endpoints
    settle_min_interval_seconds: float = 1.0  # Per-account spacing of settlements
    throttle_ttl_seconds: float = 300.0
    throttle_capacity: int = 10000


class HistoryConfig(BaseModel):
    default_limit: int = 10
    max_limit: int = 100


class DatabaseConfig(BaseModel):
    busy_timeout_seconds: float = 5.0


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_to_file: bool = False
    formatter: str = "color"


class PathsConfig(BaseModel):
    """All paths are relative to PROJECT_ROOT unless absolute."""
    config_file: str = "config.json"
    database: str = "data/wagerhub.db"
    log_file: str = "data/app.log"

    def get_config_path(self) -> Path:
        return PROJECT_ROOT / self.config_file

    def get_db_path(self) -> Path:
        return PROJECT_ROOT / self.database

    def get_log_path(self) -> Path:
        return PROJECT_ROOT / self.log_file


class AppConfig(BaseModel):
    """Main application configuration."""
    server: ServerConfig = Field(default_factory=ServerConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    economy: EconomyConfig = Field(default_factory=EconomyConfig)
    games: GamesConfig = Field(default_factory=GamesConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)


# ==================== Configuration Loading ====================

def load_config() -> AppConfig:
    """
    Load configuration from config.json with environment variable overrides.
    Environment variables take precedence over config.json values.
    """
    config_path = PROJECT_ROOT / "config.json"

    data = {}

    if config_path.exists():
        with open(config_path, "r") as f:
            data = json.load(f)

    # Apply environment variable overrides
    if get_env("SERVER_HOST"):
        data.setdefault("server", {})["host"] = get_env("SERVER_HOST")
    if get_env("SERVER_PORT"):
        data.setdefault("server", {})["port"] = get_env_int("SERVER_PORT", 8000)
    if get_env("DEBUG"):
        data.setdefault("server", {})["debug"] = get_env_bool("DEBUG")

    if get_env("SECRET_KEY"):
        data.setdefault("security", {})["secret_key"] = get_env("SECRET_KEY")
    if get_env("TOKEN_MAX_AGE_HOURS"):
        data.setdefault("security", {})["token_max_age_hours"] = get_env_int("TOKEN_MAX_AGE_HOURS", 24)

    if get_env("STARTING_BALANCE"):
        data.setdefault("economy", {})["starting_balance"] = get_env("STARTING_BALANCE")

    if get_env("DB_PATH"):
        data.setdefault("paths", {})["database"] = get_env("DB_PATH")
    if get_env("DB_BUSY_TIMEOUT"):
        data.setdefault("database", {})["busy_timeout_seconds"] = get_env_float("DB_BUSY_TIMEOUT", 5.0)

    if get_env("LOG_LEVEL"):
        data.setdefault("logging", {})["level"] = get_env("LOG_LEVEL")
    if get_env("LOG_TO_FILE"):
        data.setdefault("logging", {})["log_to_file"] = get_env_bool("LOG_TO_FILE")
    if get_env("LOG_FORMATTER"):
        data.setdefault("logging", {})["formatter"] = get_env("LOG_FORMATTER")

    if get_env("RATE_LIMIT_ENABLED"):
        data.setdefault("rate_limit", {})["enabled"] = get_env_bool("RATE_LIMIT_ENABLED", True)
    if get_env("RATE_LIMIT_API_REQUESTS"):
        data.setdefault("rate_limit", {})["api_requests"] = get_env("RATE_LIMIT_API_REQUESTS")
    if get_env("SETTLE_MIN_INTERVAL"):
        data.setdefault("rate_limit", {})["settle_min_interval_seconds"] = get_env_float(
            "SETTLE_MIN_INTERVAL", 1.0
        )

    return AppConfig(**data)


# Global config instance
settings = load_config()
