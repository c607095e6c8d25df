"""Configuration loading from environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Config:
    db_path: Path = field(default_factory=lambda: Path.home() / ".workspace_metrics" / "wm.db")
    activity_limit: int = 20
    currency: str = "USD"
    log_level: str = "WARNING"
    host: str = "127.0.0.1"
    port: int = 8787

    @classmethod
    def from_env(cls) -> "Config":
        config = cls()

        if db := os.environ.get("WM_DB_PATH"):
            config.db_path = Path(db)

        if limit := os.environ.get("WM_ACTIVITY_LIMIT"):
            config.activity_limit = int(limit)

        if currency := os.environ.get("WM_CURRENCY"):
            config.currency = currency.upper()

        if level := os.environ.get("WM_LOG_LEVEL"):
            config.log_level = level.upper()

        if host := os.environ.get("WM_HOST"):
            config.host = host

        if port := os.environ.get("WM_PORT"):
            config.port = int(port)

        return config


def get_config() -> Config:
    return Config.from_env()
