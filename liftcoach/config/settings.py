import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_database_url() -> str:
    """Get database URL, using absolute path for SQLite to avoid path resolution issues.

    SQLite is only meant for local development. Set DATABASE_URL to a
    PostgreSQL connection string anywhere data has to survive a rebuild.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info(f"Using DATABASE_URL from environment: {db_url}")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "liftcoach.db"
    db_url = f"sqlite:///{db_path.resolve()}"
    logger.warning(f"Using SQLite database (LOCAL DEV ONLY): {db_url}")
    return db_url


class Settings(BaseSettings):
    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    log_json: bool = Field(default=False, validation_alias="LOG_JSON")

    plan_model: str = Field(default="gpt-4.1", validation_alias="PLAN_MODEL")
    plan_max_tokens: int = Field(default=4000, validation_alias="PLAN_MAX_TOKENS")
    voice_parse_model: str = Field(default="gpt-4o-mini", validation_alias="VOICE_PARSE_MODEL")
    transcription_model: str = Field(default="whisper-1", validation_alias="TRANSCRIPTION_MODEL")
    assessment_model: str = Field(default="gpt-4o-mini", validation_alias="ASSESSMENT_MODEL")
    coach_model: str = Field(default="gpt-4o-mini", validation_alias="COACH_MODEL")
    insight_model: str = Field(default="gpt-4o-mini", validation_alias="INSIGHT_MODEL")
    substitution_model: str = Field(default="gpt-4o-mini", validation_alias="SUBSTITUTION_MODEL")

    insight_spacing_seconds: float = Field(
        default=0.5,
        validation_alias="INSIGHT_SPACING_SECONDS",
        description="Minimum spacing between sequential insight calls",
    )
    history_recent_sets: int = Field(
        default=5,
        validation_alias="HISTORY_RECENT_SETS",
        description="Number of recent sets passed to the plan generator per exercise",
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("openai_api_key")
    @classmethod
    def validate_openai_api_key(cls, value: str) -> str:
        """Warn when the OpenAI key is missing.

        Empty values are allowed so tests and local tooling can import the
        package; every model-backed feature will fail until it is set.
        """
        if not value:
            logger.warning("OPENAI_API_KEY is not set. Plan generation, voice and coach features will not work.")
        return value

    @field_validator("insight_spacing_seconds")
    @classmethod
    def validate_spacing(cls, value: float) -> float:
        if value < 0:
            raise ValueError("INSIGHT_SPACING_SECONDS must be >= 0")
        return value


settings = Settings()
