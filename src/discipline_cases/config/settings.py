"""Runtime settings loaded from environment variables."""

from functools import lru_cache
from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

NonEmptyStr = Annotated[str, Field(min_length=1)]
NonNegativeFloat = Annotated[float, Field(ge=0.0)]
PositiveInt = Annotated[int, Field(gt=0)]


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: NonEmptyStr = Field(validation_alias="DATABASE_URL")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    case_number_timezone: NonEmptyStr = Field(
        default="UTC",
        validation_alias="CASE_NUMBER_TIMEZONE",
    )
    persistence_max_attempts: PositiveInt = Field(
        default=5,
        validation_alias="PERSISTENCE_MAX_ATTEMPTS",
    )
    persistence_retry_backoff_seconds: NonNegativeFloat = Field(
        default=0.05,
        validation_alias="PERSISTENCE_RETRY_BACKOFF_SECONDS",
    )
    case_api_host: NonEmptyStr = Field(default="0.0.0.0", validation_alias="CASE_API_HOST")
    case_api_port: PositiveInt = Field(default=8000, validation_alias="CASE_API_PORT")

    @field_validator("case_number_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as error:
            raise ValueError(f"unknown timezone: {value}") from error
        return value

    @property
    def case_number_zoneinfo(self) -> ZoneInfo:
        """Timezone whose calendar year scopes case numbers."""

        return ZoneInfo(self.case_number_timezone)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()  # type: ignore[call-arg]
