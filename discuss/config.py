"""Application configuration."""

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class APISettings(BaseModel):
    """Remote API configuration."""

    # GraphQL endpoint every query and mutation is POSTed to
    graphql_url: str = "http://localhost:8080/graphql"

    # Per-request timeout; the caller owns retries
    timeout_seconds: float = 10.0


class SessionSettings(BaseModel):
    """Signed-in user for this process.

    Token storage is owned by the host application; these values are only
    what it hands over at startup.
    """

    user_id: str | None = None
    token: str | None = None


class PaginationSettings(BaseModel):
    """Page sizes requested from the server."""

    comments_per_page: int = Field(default=5, ge=1)
    replies_per_page: int = Field(default=5, ge=1)
    posts_per_page: int = Field(default=2, ge=1)


class ObservabilitySettings(BaseModel):
    """Observability configuration for Logfire."""

    # Logfire API token (optional - if not set, logs only go to console)
    # Can be set via OBSERVABILITY__LOGFIRE_TOKEN env var
    logfire_token: str | None = None

    # Whether to send telemetry to Logfire cloud
    # If None, will auto-determine: sends if token is present, otherwise console-only
    send_to_logfire: bool | None = None


class Settings(BaseSettings):
    """Application settings.

    Set environment variables to override, nested fields use ``__``:

        API__GRAPHQL_URL=https://api.example.com/graphql
        SESSION__USER_ID=64f0c2...
        SESSION__TOKEN=eyJhbGciOi...
        PAGINATION__COMMENTS_PER_PAGE=10
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",  # Allows API__GRAPHQL_URL syntax
    )

    environment: Literal["test", "development", "staging", "production"] = "development"
    debug: bool = False

    # Nested settings
    api: APISettings = APISettings()
    session: SessionSettings = SessionSettings()
    pagination: PaginationSettings = PaginationSettings()
    observability: ObservabilitySettings = ObservabilitySettings()
