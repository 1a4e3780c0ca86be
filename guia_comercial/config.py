from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent / ".env")


def _origins() -> tuple[str, ...]:
    raw = os.getenv("CORS_ORIGINS", "*")
    return tuple(o.strip() for o in raw.split(",") if o.strip())


@dataclass(frozen=True)
class Settings:
    session_secret: str = os.getenv("SESSION_SECRET", "guia-comercial-secret-change-in-production")
    admin_email: str = os.getenv("ADMIN_EMAIL", "admin@guiacomercial.com")
    cors_origins: tuple[str, ...] = field(default_factory=_origins)
    ad_duration_days: int = int(os.getenv("AD_DURATION_DAYS", "30"))
    history_limit: int = int(os.getenv("HISTORY_LIMIT", "50"))
    analytics_window_days: int = int(os.getenv("ANALYTICS_WINDOW_DAYS", "30"))
    api_base_url: str = os.getenv("API_BASE_URL", "http://localhost:8000")


DEFAULT_SETTINGS = Settings()
