"""Configuration — scoring weights, relaxation thresholds, polling schedule."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

DATA_DIR = Path(__file__).resolve().parent.parent.parent / "data"


class ScoringWeights(BaseModel):
    base_score: int = Field(default=50, ge=0, le=100)
    segment_match: int = Field(default=20, ge=0)
    goal_alignment: int = Field(default=15, ge=0)
    industry_fit: int = Field(default=10, ge=0)
    rating_bonus: int = Field(default=10, ge=0)

    # Advanced filter bonuses
    channel_match: int = Field(default=5, ge=0)
    integration_match: int = Field(default=3, ge=0)
    budget_fit: int = Field(default=10, ge=0)
    governance: int = Field(default=5, ge=0)
    complexity_fit: int = Field(default=5, ge=0)

    brevo_bonus: int = Field(default=3, ge=0)


class DisplaySettings(BaseModel):
    min_vendors_before_relax: int = Field(default=3, ge=1)
    max_reasons: int = Field(default=3, ge=1)
    max_compare_vendors: int = 4
    min_compare_vendors: int = 2


class PollingSettings(BaseModel):
    max_polls: int = Field(default=60, ge=1)
    max_consecutive_errors: int = Field(default=3, ge=1)
    request_timeout: float = Field(default=10.0, gt=0)
    submit_timeout: float = Field(default=8.0, gt=0)
    # (last attempt number covered, delay in seconds); attempts past the
    # final step use ``final_interval``.
    interval_steps: list[tuple[int, float]] = Field(
        default_factory=lambda: [(10, 5.0), (20, 10.0), (30, 15.0)],
    )
    final_interval: float = 20.0


class Settings(BaseSettings):
    ai_gateway_url: str = ""
    ai_gateway_api_key: str = ""
    agent_alias: str = "marketing-plan-generator"

    supabase_url: str = ""
    supabase_key: str = ""
    plans_table: str = "marketing_plans"
    default_email: str = "ai-generated@brevo.com"

    vendors_path: Path = DATA_DIR / "vendors.json"
    log_level: str = "INFO"

    scoring_weights: ScoringWeights = ScoringWeights()
    display: DisplaySettings = DisplaySettings()
    polling: PollingSettings = PollingSettings()

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
