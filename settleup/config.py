import logging
from decimal import Decimal, ROUND_HALF_UP
from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ROUNDING_MODES = {
    "ROUND_UP", "ROUND_DOWN", "ROUND_CEILING", "ROUND_FLOOR",
    "ROUND_HALF_UP", "ROUND_HALF_DOWN", "ROUND_HALF_EVEN", "ROUND_05UP",
}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseSettings):
    rounding_unit: Decimal = Decimal("0.01")
    tolerance: Decimal = Decimal("0.01")
    rounding_mode: str = ROUND_HALF_UP
    currency: str = "INR"
    log_level: str = "INFO"
    settlement_order: Literal["magnitude", "roster"] = "magnitude"

    model_config = SettingsConfigDict(
        env_prefix="SETTLEUP_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("rounding_unit")
    @classmethod
    def _positive_unit(cls, value: Decimal) -> Decimal:
        if value <= 0:
            raise ValueError("rounding_unit must be positive")
        return value

    @field_validator("tolerance")
    @classmethod
    def _non_negative_tolerance(cls, value: Decimal) -> Decimal:
        if value < 0:
            raise ValueError("tolerance must not be negative")
        return value

    @field_validator("rounding_mode")
    @classmethod
    def _known_rounding_mode(cls, value: str) -> str:
        value = value.upper()
        if value not in ROUNDING_MODES:
            raise ValueError(f"unknown rounding mode {value}")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format=LOG_FORMAT,
    )
