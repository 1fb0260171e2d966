"""Application settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from calc_engine.domain.entities import EvaluationContext


class Settings(BaseSettings):
    """Application settings."""

    # Rendering and date handling, copied into every EvaluationContext
    date_format: str = "%Y-%m-%d"
    timezone: str = "UTC"

    log_level: str = "INFO"
    log_json: bool = True

    # Parquet series store
    parquet_root: str = "data/indicators"
    parquet_inactive_slugs: list[str] = []
    fetch_retry_attempts: int = 3

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="CALC_ENGINE_",
        extra="ignore",
    )

    def evaluation_context(self) -> EvaluationContext:
        """Build the explicit evaluation context from these settings."""
        return EvaluationContext(date_format=self.date_format, timezone=self.timezone)
