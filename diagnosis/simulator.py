"""
Diagnosis Simulator

Offline batch diagnosis over many recorded executions.
Answers "which failure families dominate this workflow's history?".

DESIGN RULES:
- Offline only (no runtime hooks)
- Idempotent
- One bad record never aborts the batch
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from diagnosis.engine import DiagnosticEngine
from schemas.diagnosis import DiagnosisResult
from tracing.errors import DiagnosticEngineError, MalformedTraceError

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Aggregate outcome of a batch diagnosis."""
    total_executions: int
    classified: int
    unclassified: int
    malformed: int
    skipped: int  # Executions that did not fail

    # Primary pattern frequency
    patterns: Dict[str, int] = field(default_factory=dict)

    # Diagnoses whose origin is upstream of the symptom node
    inherited_origins: int = 0

    results: List[DiagnosisResult] = field(default_factory=list)

    @property
    def classification_rate(self) -> float:
        diagnosed = self.classified + self.unclassified
        return self.classified / diagnosed if diagnosed else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_executions": self.total_executions,
            "classified": self.classified,
            "unclassified": self.unclassified,
            "malformed": self.malformed,
            "skipped": self.skipped,
            "classification_rate": f"{self.classification_rate:.1%}",
            "patterns": self.patterns,
            "inherited_origins": self.inherited_origins,
        }

    def summary(self) -> str:
        """Human-readable summary."""
        lines = [
            "=" * 50,
            "DIAGNOSIS SIMULATION RESULTS",
            "=" * 50,
            f"Total executions:   {self.total_executions}",
            f"Classified:         {self.classified} ({self.classification_rate:.1%})",
            f"Unclassified:       {self.unclassified}",
            f"Malformed:          {self.malformed}",
            f"Not failed:         {self.skipped}",
            f"Upstream origins:   {self.inherited_origins}",
            "",
            "PRIMARY PATTERNS",
        ]
        for pattern_id, count in self.patterns.items():
            lines.append(f"  {pattern_id}: {count}")
        lines.append("=" * 50)
        return "\n".join(lines)


def simulate(
    records: List[Dict[str, Any]],
    engine: Optional[DiagnosticEngine] = None,
) -> SimulationResult:
    """
    Diagnose a batch of raw execution records.

    Args:
        records: Raw execution records
        engine: Engine to use (a default engine if not provided)

    Returns:
        SimulationResult with breakdown
    """
    engine = engine if engine is not None else DiagnosticEngine()
    result = SimulationResult(
        total_executions=len(records),
        classified=0, unclassified=0, malformed=0, skipped=0,
    )

    for record in records:
        try:
            diagnosis = engine.diagnose(record)
        except MalformedTraceError as e:
            logger.warning(f"Skipping malformed execution record: {e}")
            result.malformed += 1
            continue
        except DiagnosticEngineError:
            result.skipped += 1
            continue

        result.results.append(diagnosis)
        if diagnosis.primary is None:
            result.unclassified += 1
        else:
            result.classified += 1
            pattern_id = diagnosis.primary.pattern_id
            result.patterns[pattern_id] = result.patterns.get(pattern_id, 0) + 1
        if diagnosis.originating_node.inherited:
            result.inherited_origins += 1

    result.patterns = dict(sorted(result.patterns.items(), key=lambda item: (-item[1], item[0])))
    return result
