"""
Centralized configuration using pydantic-settings.

How it works:
- Reads environment variables automatically (e.g., MAX_CONCURRENT_BUILDS env var → Settings.MAX_CONCURRENT_BUILDS)
- Falls back to defaults defined here if env vars are not set
- Can also read from a .env file in the project root

The BuildQueue itself never reads `settings` directly: it receives plain
constructor arguments, so tests can build isolated queues with any limits.
Only the process entry point (api/main.py) turns settings into objects.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Capacity ────────────────────────────────────────────────
    MAX_CONCURRENT_BUILDS: int = 1     # clamped to 1..4
    ADMIN_IDS: str = ""                # comma-separated submitter ids with queue priority

    # ── Watchdog ────────────────────────────────────────────────
    MAX_BUILD_TIME_MINUTES: float = 45.0
    INACTIVITY_TIMEOUT_MINUTES: float = 10.0
    WATCHDOG_INTERVAL: float = 60.0    # seconds between sweeps

    # ── Estimation ──────────────────────────────────────────────
    DEFAULT_BUILD_MINUTES: int = 3     # used until the first successful build

    # ── Persistence ─────────────────────────────────────────────
    STATE_BACKEND: str = "file"        # "file" or "redis"
    QUEUE_FILE: str = "data/queue.json"
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_STATE_KEY: str = "buildqueue:state"

    # ── Callbacks ───────────────────────────────────────────────
    CALLBACK_POOL_SIZE: int = 4        # threads running on_start / on_queue_update

    # ── App ─────────────────────────────────────────────────────
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    @field_validator("MAX_CONCURRENT_BUILDS")
    @classmethod
    def _clamp_concurrency(cls, value: int) -> int:
        return max(1, min(value, 4))

    @property
    def admin_ids(self) -> list[str]:
        return [part.strip() for part in self.ADMIN_IDS.split(",") if part.strip()]

    @property
    def max_build_seconds(self) -> float:
        return self.MAX_BUILD_TIME_MINUTES * 60

    @property
    def inactivity_seconds(self) -> float:
        return self.INACTIVITY_TIMEOUT_MINUTES * 60

    @property
    def redis_url(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton — import this at process entry points
settings = Settings()
