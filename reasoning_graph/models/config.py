"""Engine settings loaded from YAML."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class AnalyticsSettings(BaseModel):
    cache_capacity: int = Field(ge=1, default=128, description="Entries kept by the centrality LRU cache.")
    pagerank_damping: float = Field(gt=0.0, lt=1.0, default=0.85)
    pagerank_iterations: int = Field(ge=1, default=100)
    power_iteration_tolerance: float = Field(gt=0.0, default=1e-9)
    random_seed: int = 42
    bottleneck_utilization: float = Field(ge=0.0, le=1.0, default=0.8)


class GapSettings(BaseModel):
    max_gaps: int = Field(ge=1, default=1000)
    max_placeholders: int = Field(ge=1, default=500)
    max_strategies: int = Field(ge=1, default=200)
    gap_max_age_seconds: float = Field(gt=0.0, default=24 * 3600)
    placeholder_max_age_seconds: float = Field(gt=0.0, default=3600)
    cleanup_interval_seconds: float = Field(gt=0.0, default=30 * 60)
    low_confidence_threshold: float = Field(ge=0.0, le=1.0, default=0.4)
    max_inferred_causal_candidates: int = Field(ge=0, default=10)


class BudgetSettings(BaseModel):
    ema_alpha: float = Field(gt=0.0, le=1.0, default=0.3)
    default_estimate_cost: float = 100.0
    default_estimate_duration: float = 1000.0
    default_operation_duration: float = Field(default=60_000.0, description="Scheduler fallback, ms")


class LoggingSettings(BaseModel):
    level: str = "normal"
    log_to_file: bool = False
    log_file: Optional[str] = None
    audit_log_dir: Optional[str] = None


class EngineSettings(BaseModel):
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    gaps: GapSettings = Field(default_factory=GapSettings)
    budget: BudgetSettings = Field(default_factory=BudgetSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
