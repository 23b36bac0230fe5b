from datetime import UTC, datetime
from pathlib import Path

from pydantic_settings import BaseSettings


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Replaces the deprecated ``datetime.utcnow()`` while keeping datetimes
    naive so they stay compatible with SQLite (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "Dutch Drill"
    database_url: str = f"sqlite+aiosqlite:///{Path(__file__).resolve().parent.parent / 'data' / 'dutch_drill.db'}"
    target_retention: float = 0.9
    recent_review_cooldown_minutes: int = 10
    candidate_pool_size: int = 10
    grammar_tip_chance_percent: int = 20
    debug: bool = False

    model_config = {"env_prefix": "DUTCH_DRILL_", "env_file": ".env"}


settings = Settings()
