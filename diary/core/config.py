import os
from typing import Optional

from diary.core.errors import ConfigurationError


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int, minimum: int, maximum: Optional[int] = None) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f"{minimum}..{maximum}" if maximum is not None else f">= {minimum}"
        raise ConfigurationError(f"{name} must be {bounds}, got {value}")
    return value


class Settings:
    """
    Runtime configuration, read from DIARY_* environment variables.
    Out-of-range values fail at startup rather than on the first write.
    """

    def __init__(self) -> None:
        self.database_url: str = os.environ.get("DIARY_DATABASE_URL", "sqlite:///./diary.db")
        self.log_level: str = os.environ.get("DIARY_LOG_LEVEL", "INFO").upper()

        # Activity type catalog cache (see services/catalog.py)
        self.catalog_cache_ttl: int = _env_int("DIARY_CATALOG_CACHE_TTL", 60, minimum=1)
        self.catalog_cache_size: int = _env_int("DIARY_CATALOG_CACHE_SIZE", 16, minimum=1)

        self.seed_activity_types: bool = _env_bool("DIARY_SEED_ACTIVITY_TYPES", True)
        self.recent_logs_limit: int = _env_int("DIARY_RECENT_LOGS_LIMIT", 15, minimum=1)

        # Intensity written on activity logs mirrored from completed programs, same range as the column check
        self.mirror_intensity: int = _env_int("DIARY_MIRROR_INTENSITY", 5, minimum=1, maximum=10)


settings = Settings()
