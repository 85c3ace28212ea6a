# core/config.py
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///shelf.db"
DEFAULT_ISBNDB_BASE_URL = "https://api2.isbndb.com"
DEFAULT_METADATA_TIMEOUT = 10.0
DEFAULT_IDENTITY_HEADER = "X-Subject-Id"
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


@dataclass(frozen=True)
class Settings:
    """Snapshot of process-wide configuration.

    Built from the environment every time ``get_settings`` is called so that
    operators can change values without restarting the process.
    """
    database_url: str = DEFAULT_DATABASE_URL
    isbndb_api_key: Optional[str] = None
    isbndb_base_url: str = DEFAULT_ISBNDB_BASE_URL
    metadata_timeout: float = DEFAULT_METADATA_TIMEOUT
    default_user_id: Optional[str] = None
    admin_subject_id: Optional[str] = None
    identity_header: str = DEFAULT_IDENTITY_HEADER
    image_store_dir: str = "data/images"
    image_base_url: str = "/images"
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {name}={raw!r}, using {default}")
        return default
    return value


def get_settings() -> Settings:
    """Read settings from environment variables"""
    origins = _optional("CORS_ORIGINS")
    return Settings(
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        isbndb_api_key=_optional("ISBNDB_API_KEY"),
        isbndb_base_url=(_optional("ISBNDB_BASE_URL") or DEFAULT_ISBNDB_BASE_URL).rstrip("/"),
        metadata_timeout=_float("METADATA_TIMEOUT", DEFAULT_METADATA_TIMEOUT),
        default_user_id=_optional("DEFAULT_USER_ID"),
        admin_subject_id=_optional("ADMIN_SUBJECT_ID"),
        identity_header=_optional("IDENTITY_HEADER") or DEFAULT_IDENTITY_HEADER,
        image_store_dir=_optional("IMAGE_STORE_DIR") or "data/images",
        image_base_url=(_optional("IMAGE_BASE_URL") or "/images").rstrip("/"),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else list(DEFAULT_CORS_ORIGINS),
    )
