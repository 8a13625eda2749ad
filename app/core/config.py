from typing import Dict, Iterable, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from diagnosis.rules import DiagnosticConfig


class Settings(BaseSettings):
    """
    Application configuration settings.
    """
    model_config = SettingsConfigDict(env_prefix="EXEC_DIAGNOSTICS_", env_file=".env", extra="ignore")

    # Service Info
    service_name: str = "execution-diagnostics"
    environment: str = "local"
    log_level: str = "INFO"

    # Evidence sampling
    sampling_limit: int = Field(2, ge=1)
    min_inconsistency_sample: int = Field(2, ge=2)

    # Scoring
    match_threshold: Optional[int] = Field(None, ge=0, le=100)  # Unset: each pattern keeps its declared threshold
    threshold_overrides: Dict[str, int] = Field(default_factory=dict)

    # Timing
    timeout_ceiling_ms: int = Field(300000, gt=0)
    timeout_proximity: float = Field(0.95, gt=0.0, le=1.0)
    history_recency_hours: float = Field(24.0, gt=0.0)

    # Fan-out
    max_workers: int = Field(1, ge=1)

    # Output: "console" | "json" | "none"
    sink: str = "none"

    def to_diagnostic_config(self, pattern_ids: Iterable[str] = ()) -> DiagnosticConfig:
        """
        Map settings onto engine configuration.

        When set, match_threshold applies to every pattern in `pattern_ids`;
        per-pattern threshold_overrides win over it.
        """
        overrides: Dict[str, int] = {}
        if self.match_threshold is not None:
            overrides = {pattern_id: self.match_threshold for pattern_id in pattern_ids}
        overrides.update(self.threshold_overrides)
        return DiagnosticConfig(
            sampling_limit=self.sampling_limit,
            min_inconsistency_sample=self.min_inconsistency_sample,
            threshold_overrides=overrides,
            timeout_ceiling_ms=self.timeout_ceiling_ms,
            timeout_proximity=self.timeout_proximity,
            history_recency_hours=self.history_recency_hours,
            max_workers=self.max_workers,
        )


settings = Settings()
