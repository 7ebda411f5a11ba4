from datetime import UTC, datetime

from pydantic_settings import BaseSettings


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Replaces the deprecated ``datetime.utcnow()`` while keeping datetimes
    naive, the timestamp convention used throughout the scheduler and API.
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "Sage SRS"
    request_retention: float = 0.9
    maximum_interval: int = 36500  # days
    weights: list[float] | None = None  # 17 FSRS weights; None keeps the defaults
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:19006",
        "http://localhost:8081",
    ]
    debug: bool = False

    model_config = {"env_prefix": "SAGE_SRS_", "env_file": ".env"}


settings = Settings()
