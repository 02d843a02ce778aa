from functools import lru_cache
import os


class Settings:
    app_name: str = "Planner Hub"
    secret_key: str = os.getenv("SECRET_KEY", "dev-secret-change-me")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./planner.db")
    session_cookie: str = "planner_session"
    upload_root: str = os.getenv("UPLOAD_ROOT", "data/blobs")
    upload_url_ttl: int = int(os.getenv("UPLOAD_URL_TTL", "3600"))
    download_url_ttl: int = int(os.getenv("DOWNLOAD_URL_TTL", "3600"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    live_poll_seconds: float = float(os.getenv("LIVE_POLL_SECONDS", "15"))
    live_max_polls: int = int(os.getenv("LIVE_MAX_POLLS", "240"))


@lru_cache
def get_settings() -> Settings:
    return Settings()
