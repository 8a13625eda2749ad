"""
Evidence Evaluator

Runs every predicate of every pattern against a trace.

DESIGN RULES:
- Never throws (a failing predicate is "no hit")
- Patterns are evaluated independently
- Result order follows library order regardless of fan-out
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from diagnosis.rules import DEFAULT_CONFIG, DiagnosticConfig
from signatures.library import SignatureLibrary
from signatures.types import EvaluationContext, EvidenceHit, SignaturePattern
from tracing.history import ExecutionHistory
from tracing.model import ExecutionTrace

logger = logging.getLogger(__name__)

MAX_CONFIDENCE = 100


@dataclass(frozen=True)
class PatternEvaluation:
    """All evidence one pattern gathered from one trace."""
    pattern: SignaturePattern
    hits: Tuple[EvidenceHit, ...] = ()

    @property
    def raw_weight(self) -> int:
        return sum(hit.weight for hit in self.hits)

    @property
    def confidence(self) -> int:
        return min(self.raw_weight, MAX_CONFIDENCE)

    def fired(self, predicate_name: str) -> bool:
        return any(hit.predicate == predicate_name for hit in self.hits)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern_id": self.pattern.id,
            "confidence": self.confidence,
            "hits": [
                {"predicate": hit.predicate, "weight": hit.weight, "reason": hit.reason}
                for hit in self.hits
            ],
        }


def evaluate_pattern(
    trace: ExecutionTrace,
    pattern: SignaturePattern,
    context: EvaluationContext,
) -> PatternEvaluation:
    """
    Evaluate one pattern against a trace.

    Args:
        trace: The execution under diagnosis
        pattern: Pattern whose predicates are run
        context: Config and auxiliary history

    Returns:
        PatternEvaluation with every hit, in predicate declaration order
    """
    hits: List[EvidenceHit] = []
    for predicate in pattern.predicates:
        try:
            reason = predicate.check(trace, context)
        except Exception as e:
            # Sparse or odd data must never abort the whole evaluation
            logger.warning(f"Predicate {pattern.id}.{predicate.name} failed on {trace.execution_id}: {e}")
            reason = None
        if reason is not None:
            hits.append(EvidenceHit(predicate=predicate.name, weight=predicate.weight, reason=reason))
    return PatternEvaluation(pattern=pattern, hits=tuple(hits))


class EvidenceEvaluator:
    """
    Fans a trace out across the signature library.

    With max_workers > 1 patterns are scattered to a thread pool and
    gathered back in library order; otherwise evaluation is synchronous.
    """

    def __init__(self, library: SignatureLibrary, config: Optional[DiagnosticConfig] = None):
        self._library = library
        self._config = config if config is not None else DEFAULT_CONFIG

    @property
    def library(self) -> SignatureLibrary:
        return self._library

    def context_for(self, history: Optional[ExecutionHistory] = None) -> EvaluationContext:
        return EvaluationContext(config=self._config, history=history)

    def evaluate(
        self,
        trace: ExecutionTrace,
        history: Optional[ExecutionHistory] = None,
    ) -> List[PatternEvaluation]:
        context = self.context_for(history)
        patterns = list(self._library)

        if self._config.max_workers > 1 and len(patterns) > 1:
            with ThreadPoolExecutor(max_workers=self._config.max_workers) as pool:
                futures = [pool.submit(evaluate_pattern, trace, pattern, context) for pattern in patterns]
                evaluations = [future.result() for future in futures]
        else:
            evaluations = [evaluate_pattern(trace, pattern, context) for pattern in patterns]

        for evaluation in evaluations:
            logger.debug(
                f"[{trace.execution_id}] {evaluation.pattern.id}: confidence={evaluation.confidence} "
                f"hits={[hit.predicate for hit in evaluation.hits]}"
            )
        return evaluations
