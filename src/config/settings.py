"""Application settings using Pydantic Settings for environment-based configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the job-folder-sync service.

    All settings can be overridden via environment variables.
    Prefix is not used so the variable names of existing deployments
    (WFX_CLIENT_ID, DROPBOX_TOKEN, PORT, ...) keep working.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # WorkflowMax (tracking system)
    wfx_client_id: str | None = None
    wfx_client_secret: str | None = None
    wfx_account_id: str | None = None
    wfx_auth_url: str = "https://oauth.workflowmax2.com/oauth/authorize"
    wfx_token_url: str = "https://oauth.workflowmax2.com/oauth/token"
    wfx_api_url: str = "https://api.workflowmax2.com/job.api/list"
    wfx_scope: str = "openid profile email workflowmax offline_access"
    callback_url: str | None = None
    token_file: str = "wfx_tokens.json"
    token_refresh_margin_seconds: int = Field(default=60, ge=0)

    # Dropbox (storage service)
    dropbox_token: str | None = None
    dropbox_namespace_id: str | None = None
    dropbox_api_url: str = "https://api.dropboxapi.com/2"
    dropbox_api_select_user_email: str | None = None
    template_path: str = (
        "ISA SURVEYORS PTY LTD (6 or 9)/00_ISA SURVEYORS JOB FOLDER TEMPLATE"
    )

    # Destination folder name fragments (case-sensitive substring match)
    project_jobs_fragment: str = "ISA PROJECT JOBS"
    survey_fragment: str = "ISA SURVEY PTY LTD"
    surveyors_fragment: str = "ISA SURVEYORS PTY LTD"

    # Polling
    poll_interval_seconds: int = Field(default=60, ge=1)
    lookback_hours: float = Field(default=24.0, gt=0)

    # HTTP retry configuration
    max_http_retries: int = Field(default=3, ge=0, le=10)
    max_backoff_seconds: float = Field(default=60.0, ge=1.0, le=300.0)
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    # Web server (OAuth login pages, health)
    host: str = "0.0.0.0"
    port: int = 3000

    # Observability
    metrics_enabled: bool = True
    metrics_port: int = 8000

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def tracking_configured(self) -> bool:
        """Check if WorkflowMax OAuth client credentials are configured."""
        return (
            self.wfx_client_id is not None
            and self.wfx_client_secret is not None
            and self.wfx_account_id is not None
        )

    @property
    def storage_configured(self) -> bool:
        """Check if the Dropbox team token and namespace are configured."""
        return (
            self.dropbox_token is not None
            and self.dropbox_namespace_id is not None
        )

    @property
    def destination_fragments(self) -> dict[str, str]:
        """Destination category value -> folder name fragment."""
        return {
            "project_jobs": self.project_jobs_fragment,
            "survey": self.survey_fragment,
            "surveyors": self.surveyors_fragment,
        }


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    Clear cache with get_settings.cache_clear() if needed.
    """
    return Settings()
