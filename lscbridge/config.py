from pydantic import BaseModel
import os

def _optional_int(name: str) -> int | None:
    value = os.getenv(name)
    return int(value) if value else None

class Settings(BaseModel):
    api_token: str = os.getenv("API_TOKEN", "change-me")
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    key_namespace: str = os.getenv("LSC_KEY_NAMESPACE", "internal/lsc")
    default_timeout_seconds: float = float(os.getenv("LSC_DEFAULT_TIMEOUT_SECONDS", 60))
    poll_interval_seconds: float = float(os.getenv("LSC_POLL_INTERVAL_SECONDS", 0.5))
    poll_backoff: float = float(os.getenv("LSC_POLL_BACKOFF", 1.5))
    max_poll_interval_seconds: float = float(os.getenv("LSC_MAX_POLL_INTERVAL_SECONDS", 5))
    record_ttl_seconds: int | None = _optional_int("LSC_RECORD_TTL_SECONDS")

settings = Settings()
