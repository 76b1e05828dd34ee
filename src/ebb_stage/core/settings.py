"""Application settings and configuration.

This module defines all configuration options for the Ebb Stage service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Ebb Stage", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./ebb.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Redis backs the home timelines and the streaming channels
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Removal pipeline tuning
    stream_entry_batch_size: int = Field(
        default=100,
        ge=1,
        alias="REMOVAL_STREAM_ENTRY_BATCH_SIZE",
    )
    delete_batch_size: int = Field(
        default=1000,
        ge=1,
        alias="REMOVAL_DELETE_BATCH_SIZE",
    )

    # Key and channel naming
    timeline_key_prefix: str = Field(default="feed", alias="TIMELINE_KEY_PREFIX")
    streaming_channel_prefix: str = Field(default="timeline", alias="STREAMING_CHANNEL_PREFIX")

    # Celery broker and queue for follow-up jobs
    job_broker_url: str = Field(default="redis://localhost:6379/1", alias="CELERY_BROKER_URL")
    job_queue: str = Field(default="removals", alias="JOB_QUEUE")

    # Base URL used when rendering federation payloads
    federation_base_url: str = Field(
        default="https://ebb.example",
        alias="FEDERATION_BASE_URL",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
