from __future__ import annotations

import json
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings import NoDecode


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "ContentDesk Analytics"
    environment: str = Field(default="development")  # development | production
    log_level: str = Field(default="INFO")

    # Local dev runs on SQLite; production points this at Postgres.
    database_url: str = Field(default="sqlite+pysqlite:///./contentdesk.db")

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalize_postgres_url(cls, v: str | None) -> str | None:
        # Hosting providers hand out postgresql://... which makes SQLAlchemy pick psycopg2.
        # We install psycopg (v3), so force that driver when none is given.
        if v and v.startswith("postgresql://") and "+" not in v.split("?")[0]:
            return "postgresql+psycopg://" + v[len("postgresql://") :]
        return v

    # Accepts a single URL, a comma-separated string or a JSON list.
    # NoDecode keeps pydantic-settings from JSON-parsing before the validator runs.
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        validation_alias="CORS_ORIGINS",
    )

    jwt_secret: str = Field(default="dev-secret-change-me")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expires_minutes: int = Field(default=60 * 24 * 7)  # 7 days
    jwt_cookie_name: str = Field(default="contentdesk_session")
    csrf_cookie_name: str = Field(default="contentdesk_csrf")

    # Dev seed account (only used when the SQLite dev database is empty).
    seed_admin_email: str = Field(default="admin@contentdesk.local")
    seed_admin_password: str = Field(default="admin1234")

    # Analytics
    default_time_range_days: int = Field(default=30)
    max_time_range_days: int = Field(default=365)
    platform_activity_limit: int = Field(default=30)
    activity_feed_limit: int = Field(default=500)
    staff_detail_log_limit: int = Field(default=100)
    inactive_writer_days: int = Field(default=14)
    stale_draft_days: int = Field(default=14)
    blog_stale_draft_days: int = Field(default=7)
    online_window_minutes: int = Field(default=30)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):  # noqa: ANN001
        """
        Accept: string, comma-separated, or JSON list.
        """
        if v is None:
            return v
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return []
            if s.startswith("["):
                try:
                    parsed = json.loads(s)
                except ValueError:
                    parsed = None
                if isinstance(parsed, list):
                    return [str(x).strip() for x in parsed if str(x).strip()]
            return [p.strip() for p in s.split(",") if p.strip()]
        if isinstance(v, (list, tuple, set)):
            return [str(x).strip() for x in v if str(x).strip()]
        return v

    @field_validator("cors_origins", mode="after")
    @classmethod
    def _ensure_cors_origins(cls, v: list[str] | None) -> list[str]:
        result = [x for x in v if x] if isinstance(v, list) else []
        if not result:
            result = ["http://localhost:3000"]
        return result


settings = Settings()
