"""
Root-Cause Tracer

Walks the execution path backward from the symptom node to find the node
that introduced the defect.

DESIGN RULES:
- Nearest-first reverse scan over nodes_before(symptom)
- Reuses the locating predicates that fired for the winning pattern
- Always terminates on a node in the path; worst case is the symptom node
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from diagnosis.evaluator import PatternEvaluation
from signatures.predicates import inconsistent_field
from signatures.types import CausalDirection, EvaluationContext, EvidencePredicate
from tracing.model import ExecutionTrace, NodeRun

logger = logging.getLogger(__name__)

# Used when nothing matched: look for sporadically dropped fields only.
_DEFAULT_LOCATOR = inconsistent_field("sporadic_field_absence", 0)


@dataclass(frozen=True)
class TracedOrigin:
    """Node identified as the true cause of the failure."""
    node: NodeRun
    index: int
    inherited: bool  # False when the defect is local to the symptom node
    reason: str
    predicate: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node": self.node.name,
            "index": self.index,
            "type_tag": self.node.type_tag,
            "inherited": self.inherited,
            "reason": self.reason,
            "predicate": self.predicate,
        }


class RootCauseTracer:
    """Locates the originating node for a diagnosis."""

    def _locators(self, evaluation: Optional[PatternEvaluation]) -> List[EvidencePredicate]:
        if evaluation is None:
            return [_DEFAULT_LOCATOR]
        return [
            predicate for predicate in evaluation.pattern.predicates
            if predicate.locate is not None and evaluation.fired(predicate.name)
        ]

    def trace_origin(
        self,
        trace: ExecutionTrace,
        evaluation: Optional[PatternEvaluation],
        context: EvaluationContext,
    ) -> TracedOrigin:
        """
        Find the originating node.

        Args:
            trace: A trace with a failure event
            evaluation: Evaluation of the top-ranked pattern, or None if unclassified
            context: Evaluation context shared with the evaluator

        Returns:
            TracedOrigin pointing at a node in trace.path
        """
        if trace.failure is None:
            raise ValueError("Cannot trace the origin of a trace without a failure event")

        symptom_index = trace.failure_index
        symptom = trace.node_at(symptom_index)
        local = TracedOrigin(
            node=symptom,
            index=symptom_index,
            inherited=False,
            reason="no upstream node explains the defect; it is local to the failing node",
        )

        if evaluation is not None and evaluation.pattern.causal_direction == CausalDirection.LOCAL:
            return local

        locators = self._locators(evaluation)
        if not locators:
            return local

        upstream = trace.nodes_before(symptom.name)
        for index in range(len(upstream) - 1, -1, -1):
            candidate = upstream[index]
            for locator in locators:
                try:
                    reason = locator.locate(trace, candidate, context)
                except Exception as e:
                    logger.warning(f"Locator {locator.name} failed on node '{candidate.name}': {e}")
                    reason = None
                if reason is not None:
                    return TracedOrigin(
                        node=candidate,
                        index=index,
                        inherited=True,
                        reason=reason,
                        predicate=locator.name,
                    )
        return local
