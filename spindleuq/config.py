"""
Spindle Uncertainty Engine Configuration.

Pydantic Settings v2 — loads from .env, environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Application ──────────────────────────────────────────────────────
    app_name: str = Field(default="Spindle Uncertainty Engine", alias="APP_NAME")
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # ── Storage ──────────────────────────────────────────────────────────
    storage_backend: str = Field(
        default="file",
        alias="UQ_STORAGE_BACKEND",
        description="memory | file | redis",
    )
    storage_dir: str = Field(default=".spindleuq", alias="UQ_STORAGE_DIR")
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    redis_prefix: str = Field(default="spindleuq:", alias="UQ_REDIS_PREFIX")

    # Blob keys in the key-value medium
    defaults_storage_key: str = Field(default="uncertainty.defaults.v1", alias="UQ_DEFAULTS_KEY")
    state_map_storage_key: str = Field(default="uncertainty.state.map.v1", alias="UQ_STATE_MAP_KEY")
    legacy_state_storage_key: str = Field(default="uncertainty.state.v1", alias="UQ_LEGACY_STATE_KEY")

    # Assessment used when no report/run is selected
    fallback_assessment_key: str = Field(default="__default__", alias="UQ_FALLBACK_ASSESSMENT_KEY")

    # ── Export / reporting ───────────────────────────────────────────────
    export_indent: int = Field(default=2, alias="UQ_EXPORT_INDENT")
    coverage_factor: float = Field(
        default=2.0,
        alias="UQ_COVERAGE_FACTOR",
        description="k used for expanded uncertainty in reports",
    )

    # ── Operational ──────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="console", alias="LOG_FORMAT")


settings = Settings()
