"""Configuration for the analytics engine loaded from environment variables."""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from simcore.analytics.behavioral import HOME_COUNTRY
from simcore.analytics.costs import TRANSACTION_COST_BPS
from simcore.analytics.matrices import DEFAULT_NOISE
from simcore.analytics.metrics import MARKET_RETURN, RISK_FREE_RATE
from simcore.analytics.projections import BASE_CAPITAL, DEFAULT_CHUNK_SIZE, DEFAULT_SIMULATIONS

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class EngineSettings(BaseSettings):
    """Analytics engine configuration.

    Every field can be overridden with a SIMCORE_-prefixed environment
    variable (e.g. SIMCORE_RISK_FREE_RATE=4.0) or a .env file.  Rates and
    returns are annual percentages.
    """

    risk_free_rate: float = RISK_FREE_RATE
    market_return: float = MARKET_RETURN
    simulations: int = Field(DEFAULT_SIMULATIONS, ge=1)
    transaction_cost_bps: float = Field(TRANSACTION_COST_BPS, ge=0)
    base_capital: float = Field(BASE_CAPITAL, gt=0)
    correlation_noise: float = Field(DEFAULT_NOISE, ge=0, le=1)
    seed: Optional[int] = Field(None, ge=0)  # None draws fresh entropy per run
    mc_chunk_size: int = Field(DEFAULT_CHUNK_SIZE, ge=1)
    mc_workers: int = Field(1, ge=1)
    home_country: str = HOME_COUNTRY
    log_level: str = "INFO"

    model_config = {
        "env_prefix": "SIMCORE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {value!r}")
        return level


def get_settings() -> EngineSettings:
    """Return a Settings instance read from the environment."""
    return EngineSettings()
