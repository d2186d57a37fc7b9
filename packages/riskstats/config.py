"""Configuration for risk pack computation loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Risk pack configuration.

    All fields are loaded from environment variables (or a local .env file)
    and have defaults suited to monthly price data. Only the risk pack
    orchestrator reads these; the computation functions take every input
    explicitly.
    """

    RISK_RETURN_METHOD: Literal["log", "simple"] = "log"
    RISK_COV_METHOD: Literal["sample", "lw"] = "sample"
    RISK_ROLLING_WINDOW: int = Field(default=12, ge=2)
    RISK_PERIODS_PER_YEAR: int = Field(default=12, ge=1)
    RISK_LOOKBACK: int = Field(default=0, ge=0)  # 0 = use full history
    RISK_MAX_WORKERS: int = Field(default=1, ge=1)
    RISK_VAR_CONFIDENCE: float = Field(default=0.95, gt=0, lt=1)
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
