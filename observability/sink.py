"""
Diagnosis Sink Interface

Abstract sink for diagnosis output.
Storage-agnostic - implementations can write to console, log aggregation, etc.

DESIGN RULES:
- Side-effect only
- Never throw exceptions
- Storage-agnostic interface
"""

import logging
from abc import ABC, abstractmethod
from typing import List

from schemas.diagnosis import DiagnosisResult

logger = logging.getLogger(__name__)


class DiagnosisSink(ABC):
    """
    Abstract base for diagnosis output destinations.

    Implementations:
    - ConsoleDiagnosisSink (human-readable)
    - JsonDiagnosisSink (JSON lines)
    - MemoryDiagnosisSink (collects results in process, e.g. for callers inspecting emitted diagnoses)
    """

    @abstractmethod
    def emit(self, result: DiagnosisResult) -> None:
        """
        Emit a diagnosis to the sink.

        Must not throw - failures should be logged and ignored.
        """
        pass


class ConsoleDiagnosisSink(DiagnosisSink):
    """
    Prints a short, structured summary of each diagnosis.
    """

    def __init__(self, verbose: bool = True):
        """
        Initialize console sink.

        Args:
            verbose: If True, print evidence and all scores. If False, summary only.
        """
        self._verbose = verbose

    def emit(self, result: DiagnosisResult) -> None:
        try:
            marker = "✓" if result.primary else "?"
            print(f"\n{'='*60}")
            print(f"[DIAGNOSIS] {marker} {result.execution_id} ({result.status.value})")
            print(f"{'='*60}")
            print(f"  Workflow: {result.workflow_id}")
            print(f"  Symptom:  {result.symptom_node}")
            print(f"  Origin:   {result.originating_node.node}")
            print(f"  Message:  {self._truncate(result.failure.message)}")

            for position, pattern in enumerate(result.ranked_patterns, start=1):
                print(f"  #{position} {pattern.pattern_id} ({pattern.confidence})")
                if pattern.annotation:
                    print(f"     {self._truncate(pattern.annotation)}")

            if self._verbose:
                if result.evidence:
                    print(f"\n  Evidence:")
                    for hit in result.evidence:
                        print(f"    +{hit.weight:<3} {hit.predicate}: {self._truncate(hit.reason)}")
                print(f"\n  Scores:")
                for score in result.scores:
                    flag = "*" if score.matched else " "
                    print(f"    {flag} {score.pattern_id}: {score.confidence}/{score.threshold}")

            print(f"{'='*60}\n")

        except Exception as e:
            logger.warning(f"Failed to emit diagnosis {result.execution_id}: {e}")

    @staticmethod
    def _truncate(value: str, limit: int = 60) -> str:
        if len(value) > limit:
            return value[:limit - 3] + "..."
        return value


class JsonDiagnosisSink(DiagnosisSink):
    """
    Sink that outputs diagnoses as JSON lines.

    Useful for log aggregation systems.
    """

    def emit(self, result: DiagnosisResult) -> None:
        try:
            print(result.to_json())
        except Exception as e:
            logger.warning(f"Failed to emit JSON diagnosis: {e}")


class MemoryDiagnosisSink(DiagnosisSink):
    """Keeps emitted diagnoses in memory."""

    def __init__(self):
        self.results: List[DiagnosisResult] = []

    def emit(self, result: DiagnosisResult) -> None:
        self.results.append(result)
