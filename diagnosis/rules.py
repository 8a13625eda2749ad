"""
Diagnostic Rules

Declarative configuration for evaluation, scoring and combination.

DESIGN RULES:
- Declarative (data, not code)
- Configurable thresholds
- Deterministic evaluation
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple

from signatures.types import RemediationClass

# Earlier entries have narrower signatures and fewer false positives.
DEFAULT_PRIORITY_ORDER: Tuple[str, ...] = (
    "session_visibility",
    "authorization_expiry",
    "rate_limiting",
    "timeout",
    "expression_reference",
    "type_mismatch",
)

# cause -> consequences expected to resolve once the cause is fixed
DEFAULT_COMBINATIONS: Dict[RemediationClass, Tuple[RemediationClass, ...]] = {
    RemediationClass.THROTTLE_REQUESTS: (RemediationClass.EXTEND_TIMEOUT,),
    RemediationClass.REFRESH_CREDENTIALS: (RemediationClass.GUARD_FIELD_ACCESS,),
}


@dataclass(frozen=True)
class DiagnosticConfig:
    """
    Engine configuration with tunable thresholds.

    All thresholds can be adjusted without code changes.
    """

    # Evidence sampling
    sampling_limit: int = 2  # Output records examined per node
    min_inconsistency_sample: int = 2  # Records needed to tell sporadic from uniform absence

    # Scoring
    threshold_overrides: Dict[str, int] = field(default_factory=dict)
    priority_order: Tuple[str, ...] = DEFAULT_PRIORITY_ORDER

    # Combination scenarios
    combinations: Dict[RemediationClass, Tuple[RemediationClass, ...]] = field(
        default_factory=lambda: dict(DEFAULT_COMBINATIONS)
    )

    # Timing
    timeout_ceiling_ms: int = 300000  # Used when the node configures no timeout
    timeout_proximity: float = 0.95  # Fraction of the ceiling counted as "at the limit"

    # History
    history_recency_hours: float = 24.0

    # Fan-out across patterns (1 = synchronous)
    max_workers: int = 1

    def __post_init__(self) -> None:
        if self.sampling_limit < 1:
            raise ValueError("sampling_limit must be at least 1")
        if self.min_inconsistency_sample < 2:
            raise ValueError("min_inconsistency_sample must be at least 2")
        if not 0.0 < self.timeout_proximity <= 1.0:
            raise ValueError("timeout_proximity must be within (0, 1]")
        for pattern_id, threshold in self.threshold_overrides.items():
            if not 0 <= threshold <= 100:
                raise ValueError(f"Threshold for '{pattern_id}' must be within 0..100")

    def threshold_for(self, pattern_id: str, declared: int) -> int:
        return self.threshold_overrides.get(pattern_id, declared)

    def priority_of(self, pattern_id: str) -> int:
        """Position in the tie-break order; undeclared patterns rank last."""
        try:
            return self.priority_order.index(pattern_id)
        except ValueError:
            return len(self.priority_order)

    def consequences_of(self, cause: RemediationClass) -> Tuple[RemediationClass, ...]:
        return self.combinations.get(cause, ())


# Default configuration (can be overridden)
DEFAULT_CONFIG = DiagnosticConfig()
