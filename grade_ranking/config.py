"""
Engine settings.

Values come from the environment (prefix GRADE_RANKING_) or a local .env file,
e.g. GRADE_RANKING_RANK_POLICY=competition.
"""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ------------------------
    # Grade lookup
    # ------------------------
    # "reject": a score with no matching scale entry is reported per record.
    # "fallback": substitute FALLBACK_LETTER / FALLBACK_GRADE_POINT instead.
    UNRESOLVED_GRADE_POLICY: Literal["reject", "fallback"] = "reject"
    FALLBACK_LETTER: str = "E"
    FALLBACK_GRADE_POINT: float = 0.0

    # ------------------------
    # Ranking
    # ------------------------
    RANK_POLICY: Literal["sequential", "competition"] = "sequential"

    # ------------------------
    # Report formatting
    # ------------------------
    GPA_DECIMALS: int = 2
    LOW_SCORE_WARN: float = 75.0
    LOW_SCORE_FAIL: float = 70.0

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="GRADE_RANKING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("FALLBACK_GRADE_POINT")
    @classmethod
    def _point_in_range(cls, v: float) -> float:
        if not 0.0 <= v <= 4.0:
            raise ValueError("FALLBACK_GRADE_POINT must be between 0 and 4")
        return v

    @field_validator("GPA_DECIMALS")
    @classmethod
    def _non_negative_decimals(cls, v: int) -> int:
        if v < 0:
            raise ValueError("GPA_DECIMALS must not be negative")
        return v

    @model_validator(mode="after")
    def _thresholds_ordered(self):
        if self.LOW_SCORE_FAIL > self.LOW_SCORE_WARN:
            raise ValueError("LOW_SCORE_FAIL must not exceed LOW_SCORE_WARN")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
