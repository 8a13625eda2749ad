"""
Signature Types

Declarative building blocks of the signature catalog.

DESIGN RULES:
- Data, not branching logic
- Predicates are pure functions of (trace, context)
- Read-only after registration
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Tuple, TYPE_CHECKING

from tracing.history import ExecutionHistory
from tracing.model import ExecutionTrace, NodeRun

if TYPE_CHECKING:
    from diagnosis.rules import DiagnosticConfig


class CausalDirection(str, Enum):
    """Where a pattern's cause usually lies relative to the symptom node."""
    UPSTREAM = "upstream"
    LOCAL = "local"


class RemediationClass(str, Enum):
    """Fix family the presentation layer selects guidance for."""
    CONSOLIDATE_SESSION = "consolidate_session"
    GUARD_FIELD_ACCESS = "guard_field_access"
    THROTTLE_REQUESTS = "throttle_requests"
    REFRESH_CREDENTIALS = "refresh_credentials"
    EXTEND_TIMEOUT = "extend_timeout"
    COERCE_TYPES = "coerce_types"


@dataclass(frozen=True)
class EvaluationContext:
    """Everything a predicate may read besides the trace itself."""
    config: "DiagnosticConfig"
    history: Optional[ExecutionHistory] = None


# check(trace, ctx) -> reason on hit, None otherwise
CheckFn = Callable[[ExecutionTrace, EvaluationContext], Optional[str]]
# locate(trace, candidate, ctx) -> reason when the candidate explains the defect
LocateFn = Callable[[ExecutionTrace, NodeRun, EvaluationContext], Optional[str]]


@dataclass(frozen=True)
class EvidenceHit:
    """A single satisfied predicate and the weight it contributes."""
    predicate: str
    weight: int
    reason: str


@dataclass(frozen=True)
class EvidencePredicate:
    """
    One weighted check.

    `locate` is optional: predicates that can point at a specific upstream
    node (structural and sample checks) provide it so the tracer can reuse
    the same evidence when walking backward.
    """
    name: str
    weight: int
    check: CheckFn
    locate: Optional[LocateFn] = None
    description: str = ""

    def __post_init__(self) -> None:
        if not 0 <= self.weight <= 100:
            raise ValueError(f"Predicate '{self.name}' weight must be within 0..100, got {self.weight}")


@dataclass(frozen=True)
class SignaturePattern:
    """A named, weighted set of evidence checks defining one failure family."""
    id: str
    display_name: str
    predicates: Tuple[EvidencePredicate, ...]
    remediation_class: RemediationClass
    causal_direction: CausalDirection = CausalDirection.UPSTREAM
    match_threshold: int = 70
    description: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        names = [predicate.name for predicate in self.predicates]
        if len(names) != len(set(names)):
            raise ValueError(f"Pattern '{self.id}' declares duplicate predicate names")
        if not 0 <= self.match_threshold <= 100:
            raise ValueError(f"Pattern '{self.id}' threshold must be within 0..100")

    def predicate(self, name: str) -> Optional[EvidencePredicate]:
        for candidate in self.predicates:
            if candidate.name == name:
                return candidate
        return None
