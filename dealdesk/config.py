"""DealDesk configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class DealDeskSettings(BaseSettings):
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///dealdesk.db"
    echo_sql: bool = False
    app_title: str = "DealDesk CRM"
    log_level: str = "INFO"

    # Bearer tokens issued by /auth/login
    auth_secret: str = "change-me"
    auth_token_ttl_seconds: int = 86400

    invite_ttl_days: int = 7

    # Plan assigned to every new organization; must exist after bootstrap.
    default_plan: str = "start"

    model_config = {"env_prefix": "DEALDESK_", "env_file": ".env", "extra": "ignore"}

    @property
    def base_dir(self) -> Path:
        return Path(__file__).resolve().parent

    @property
    def alembic_ini(self) -> Path:
        return self.base_dir / "alembic.ini"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = DealDeskSettings()
