"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading. Nothing here is secret — the upstream provider is a
public, unauthenticated API.

To extend: add new fields here and document them in .env.example.
See https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from covid_tracker.models.stats import HistoryRange


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── Upstream data provider ────────────────────────────────────
    # disease.sh mirrors the JHU / Worldometers counters.
    provider_base_url: str = "https://disease.sh/v3/covid-19"
    # Every outbound call is bounded; a hung transport must not pin a
    # slot in "loading" forever.
    provider_timeout_seconds: float = 10.0
    provider_user_agent: str = "covid-tracker/0.1"

    # ─── Dashboard defaults ────────────────────────────────────────
    # One of: 7, 30, 90, 180, 365, all
    default_history_range: HistoryRange = HistoryRange.LAST_30

    # When False the app starts empty and waits for POST /refresh.
    # Tests turn this off so startup never touches the network.
    load_on_startup: bool = True

    # ─── CORS ──────────────────────────────────────────────────────
    # Comma-separated allowed origins for the dashboard front-end.
    cors_origins_str: str = "http://localhost:5173,http://localhost:3000"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    # ─── Rate limiting ─────────────────────────────────────────────
    # Applied to every endpoint that triggers an upstream refetch.
    selection_rate_limit: str = "30/minute"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
    )


# Module-level singleton: import this everywhere instead of instantiating Settings()
settings = Settings()
