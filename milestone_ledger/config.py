"""
Configuration settings for the Milestone Ledger.

Uses Pydantic Settings to load environment variables for the state backend,
goal index design, metering budget, database connection and logging.
"""
from __future__ import annotations

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # State backend
    backend: str = Field("file", alias="LEDGER_BACKEND")
    state_path: str = Field(".milestone_ledger.json", alias="LEDGER_STATE_PATH")

    # Goal index and bounded scan
    goal_index: str = Field("membership", alias="LEDGER_GOAL_INDEX")
    max_records_per_owner: int = Field(100, alias="LEDGER_MAX_RECORDS", ge=1)

    # Metering
    meter_budget: int = Field(10_000, alias="LEDGER_METER_BUDGET", ge=1)
    meter_read_cost: int = Field(1, alias="LEDGER_METER_READ_COST", ge=0)
    meter_write_cost: int = Field(5, alias="LEDGER_METER_WRITE_COST", ge=0)

    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("milestone_ledger", alias="DB_NAME")
    db_pool_max_size: int = Field(10, alias="DB_POOL_MAX_SIZE", ge=1)

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
