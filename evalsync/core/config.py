"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. The remote API base URL is required and validated
at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment and .env.

    All settings have defaults except api_base_url, which is checked in
    validate_required_and_timing together with the autosave window.
    """

    # App
    app_name: str = "evalsync"
    app_version: str = "1.0.0"
    debug: bool = False

    # Remote webhook API (operation-tagged POST endpoints)
    api_base_url: str = ""
    evaluations_endpoint: str = "/webhook/evaluations"
    evaluated_endpoint: str = "/webhook/evaluated"
    evaluators_endpoint: str = "/webhook/evaluators"
    evaluation_responses_endpoint: str = "/webhook/evaluation-responses"
    api_token: SecretStr | None = None
    http_timeout_seconds: float = 30.0

    # Request cache TTLs (seconds)
    cache_ttl_default: float = 300
    cache_ttl_pending_evaluations: float = 120
    cache_ttl_evaluation_details: float = 180
    cache_ttl_evaluator_status: float = 60

    # Draft autosave quiescence window
    autosave_debounce_seconds: float = 0.8

    # OpenTelemetry spans (no-op unless an SDK is installed by the host app)
    telemetry_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_required_and_timing(self) -> "Settings":
        """Validate the API base URL, TTLs and the autosave window."""
        if not self.api_base_url:
            raise ValueError(
                "API_BASE_URL is required (e.g. https://integra.example.com). "
                "Set in environment or .env file."
            )
        if not 0.5 <= self.autosave_debounce_seconds <= 1.0:
            raise ValueError(
                "autosave_debounce_seconds must be between 0.5 and 1.0, "
                f"got: {self.autosave_debounce_seconds!r}"
            )
        for name in (
            "cache_ttl_default",
            "cache_ttl_pending_evaluations",
            "cache_ttl_evaluation_details",
            "cache_ttl_evaluator_status",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        return self

    def endpoint_url(self, path: str) -> str:
        """Join api_base_url and an endpoint path."""
        return f"{self.api_base_url.rstrip('/')}/{path.lstrip('/')}"

    @property
    def evaluations_url(self) -> str:
        return self.endpoint_url(self.evaluations_endpoint)

    @property
    def evaluated_url(self) -> str:
        return self.endpoint_url(self.evaluated_endpoint)

    @property
    def evaluators_url(self) -> str:
        return self.endpoint_url(self.evaluators_endpoint)

    @property
    def evaluation_responses_url(self) -> str:
        return self.endpoint_url(self.evaluation_responses_endpoint)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
