"""
Engine configuration loaded from environment variables.

Environment Variables:
    TABULAR_ROW_LIMIT: maximum data rows read per source (0 = unbounded)
    TABULAR_ENCODING_SAMPLE_BYTES: bytes inspected to detect text encoding
    TABULAR_LOG_LEVEL: log level for the tabular_ingest logger
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TABULAR_",
        env_file=".env",
        extra="ignore",
    )

    ROW_LIMIT: int = Field(default=0, ge=0)
    ENCODING_SAMPLE_BYTES: int = Field(default=65536, gt=0)
    LOG_LEVEL: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
