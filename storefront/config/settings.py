import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_EXCLUDED_FIELDS = "password,secretKey,token,refreshToken,salt,hash,pin,cvv,ssn,creditCard"


def get_database_url() -> str:
    """Get database URL, using absolute path for SQLite to avoid path resolution issues.

    ⚠️ WARNING: SQLite is NOT suitable for production deployments!
    Use PostgreSQL by setting DATABASE_URL environment variable.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info(f"Using DATABASE_URL from environment: {db_url}")
        return db_url

    # Use absolute path for SQLite (LOCAL DEVELOPMENT ONLY)
    db_path = Path(__file__).parent.parent.parent / "storefront.db"
    abs_path = db_path.resolve()
    db_url = f"sqlite:///{abs_path}"
    logger.warning(
        f"⚠️ Using SQLite database (LOCAL DEV ONLY): {db_url}\n"
        "⚠️ Set DATABASE_URL environment variable to use PostgreSQL in production."
    )
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str = Field(default="", validation_alias="LOG_FILE")
    revision_log_file: str = Field(
        default="",
        validation_alias="REVISION_LOG_FILE",
        description="Optional audit log receiving only revision lifecycle messages",
    )
    revision_excluded_fields: str = Field(
        default=DEFAULT_EXCLUDED_FIELDS,
        validation_alias="REVISION_EXCLUDED_FIELDS",
        description="Comma-separated field names never written to the revision log",
    )
    revision_timezone: str = Field(
        default="",
        validation_alias="REVISION_TIMEZONE",
        description="IANA time zone used to render revision timestamps (empty = host local time)",
    )
    revision_track_removed_fields: bool = Field(
        default=True,
        validation_alias="REVISION_TRACK_REMOVED_FIELDS",
        description="Report fields that disappear between snapshots as {old, new: null}",
    )
    revision_max_changes_length: int = Field(default=10000, validation_alias="REVISION_MAX_CHANGES_LENGTH")
    revision_default_page_size: int = Field(default=20, validation_alias="REVISION_DEFAULT_PAGE_SIZE")
    revision_max_page_size: int = Field(default=100, validation_alias="REVISION_MAX_PAGE_SIZE")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

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

    @field_validator("revision_max_page_size", "revision_default_page_size", "revision_max_changes_length")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @property
    def excluded_fields(self) -> frozenset[str]:
        """Parsed REVISION_EXCLUDED_FIELDS."""
        return frozenset(name.strip() for name in self.revision_excluded_fields.split(",") if name.strip())


settings = Settings()
