"""Shared configuration settings across services."""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# API URL of a project started locally with `supabase start`.
LOCAL_SUPABASE_URL = "http://localhost:54321"


def normalize_supabase_rest_url(url: str) -> str:
    """Return the PostgREST base URL for a Supabase project URL."""
    base = url.strip().rstrip("/")
    if base.endswith("/rest/v1"):
        return base
    return f"{base}/rest/v1"


class SharedSettings(BaseSettings):
    """Base settings shared by all services in the monorepo."""

    runtime_env: str = "local"
    log_level: str = "INFO"

    supabase_url: str = LOCAL_SUPABASE_URL  # set SUPABASE_URL for hosted projects.
    supabase_key: str = ""
    supabase_timeout_seconds: float = 8.0
    student_table: str = "v0001_student_database"
    auth_table: str = "v0001_auth"

    redis_url: str = "redis://redis:6379/0"
    redis_key_prefix: str = "profiles"
    redis_socket_connect_timeout: float | None = 5.0
    redis_socket_timeout: float | None = 5.0

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def validate_required_secrets(self) -> "SharedSettings":
        """Require explicit Supabase settings in non-local runtime environments."""
        env = self.runtime_env.strip().lower()
        if env in {"local", "dev", "development", "test"}:
            return self

        if self.supabase_url.strip() in {"", LOCAL_SUPABASE_URL}:
            raise ValueError("SUPABASE_URL must be set when RUNTIME_ENV is non-local.")
        if not self.supabase_key.strip():
            raise ValueError("SUPABASE_KEY must be set when RUNTIME_ENV is non-local.")
        return self

    @property
    def supabase_rest_url(self) -> str:
        """PostgREST endpoint of the configured Supabase project."""
        return normalize_supabase_rest_url(self.supabase_url)
