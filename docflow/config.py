import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _getenv(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _getenv_bool(name: str, default: bool) -> bool:
    value = _getenv(name)
    if not value:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _resolve_database_url() -> str:
    database_url = _getenv("DATABASE_URL")
    if database_url:
        return database_url

    environment = _getenv("ENVIRONMENT", "development").lower()
    if environment in ("development", "test"):
        return "sqlite:///data/documents.db"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL for non-development "
        "environments or set ENVIRONMENT=development for local defaults."
    )


@dataclass(frozen=True)
class Settings:
    environment: str = _getenv("ENVIRONMENT", "development").lower()
    database_url: str = _resolve_database_url()
    db_timeout: int = int(_getenv("DB_TIMEOUT", "30"))  # seconds
    db_foreign_keys: bool = _getenv_bool("DB_FOREIGN_KEYS", True)
    db_cache_size_kb: int = int(_getenv("DB_CACHE_SIZE_KB", "16384"))  # 16MB
    db_echo: bool = _getenv_bool("DB_ECHO", False)

    log_level: str = _getenv("LOG_LEVEL", "INFO").upper()
    log_format: str = _getenv("LOG_FORMAT", "text").lower()

    # Reject status changes outside the transition table instead of warning.
    workflow_strict_transitions: bool = _getenv_bool(
        "WORKFLOW_STRICT_TRANSITIONS", False
    )

    pagination_default_limit: int = int(_getenv("PAGINATION_DEFAULT_LIMIT", "20"))
    pagination_max_limit: int = int(_getenv("PAGINATION_MAX_LIMIT", "100"))
    recent_documents_days: int = int(_getenv("RECENT_DOCUMENTS_DAYS", "30"))

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
