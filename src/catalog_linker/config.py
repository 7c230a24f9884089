"""
Runtime configuration: decision thresholds, worker pool size, write retries.

Thresholds are policy, not code. Two matcher variants in the wild used
0.75/0.55 and 0.85/0.60; neither is baked in here beyond a default, and every
entry point accepts an explicit MatchPolicy.

Settings are read from the environment (prefix CATALOG_LINKER_) or a .env
file, e.g. CATALOG_LINKER_AUTO_APPROVE_THRESHOLD=0.9.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MatchPolicy(BaseModel):
    """Decision thresholds: score >= auto approves, score >= review queues, else reject."""

    model_config = {"frozen": True}

    auto_approve_threshold: float = Field(ge=0.0, le=1.0)
    pending_review_threshold: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_order(self) -> "MatchPolicy":
        if self.auto_approve_threshold < self.pending_review_threshold:
            raise ValueError(
                "auto_approve_threshold must be >= pending_review_threshold "
                f"(got {self.auto_approve_threshold} < {self.pending_review_threshold})"
            )
        return self


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CATALOG_LINKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Thresholds used inside a brand partition
    auto_approve_threshold: float = 0.85
    pending_review_threshold: float = 0.60

    # Stricter thresholds when falling back to the whole category
    fallback_auto_approve_threshold: float = 0.92
    fallback_pending_review_threshold: float = 0.75

    brand_guard: bool = True

    # Retailer ids whose titles go through marketplace title cleaning
    marketplace_retailers: List[str] = ["aliexpress"]

    max_workers: Optional[int] = None
    write_retries: int = 3
    retry_delay: float = 0.1

    log_level: str = "INFO"

    def policy(self) -> MatchPolicy:
        return MatchPolicy(
            auto_approve_threshold=self.auto_approve_threshold,
            pending_review_threshold=self.pending_review_threshold,
        )

    def fallback_policy(self) -> MatchPolicy:
        return MatchPolicy(
            auto_approve_threshold=self.fallback_auto_approve_threshold,
            pending_review_threshold=self.fallback_pending_review_threshold,
        )


def configure_logging(level: str = "INFO") -> None:
    """Set up root logging and apply `level` to the catalog_linker loggers."""
    numeric = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("catalog_linker").setLevel(numeric)
