"""
Confidence Scorer

Turns pattern evaluations into confidences, applies thresholds and ranks matches.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from diagnosis.evaluator import PatternEvaluation
from diagnosis.rules import DEFAULT_CONFIG, DiagnosticConfig


@dataclass(frozen=True)
class PatternScore:
    """Confidence of one pattern against its effective threshold."""
    evaluation: PatternEvaluation
    confidence: int
    threshold: int

    @property
    def pattern_id(self) -> str:
        return self.evaluation.pattern.id

    @property
    def matched(self) -> bool:
        return self.confidence >= self.threshold


@dataclass(frozen=True)
class ScoringResult:
    """Every score, plus the ranked subset that matched."""
    scores: Tuple[PatternScore, ...]
    ranked: Tuple[PatternScore, ...]

    @property
    def no_match(self) -> bool:
        return not self.ranked

    def score_for(self, pattern_id: str) -> Optional[PatternScore]:
        for score in self.scores:
            if score.pattern_id == pattern_id:
                return score
        return None


class ConfidenceScorer:
    """Aggregates evidence to a 0..100 confidence and ranks matches."""

    def __init__(self, config: Optional[DiagnosticConfig] = None):
        self._config = config if config is not None else DEFAULT_CONFIG

    def _rank_key(self, score: PatternScore) -> Tuple[int, int, str]:
        return (-score.confidence, self._config.priority_of(score.pattern_id), score.pattern_id)

    def score(self, evaluations: List[PatternEvaluation]) -> ScoringResult:
        scores = []
        for evaluation in evaluations:
            pattern = evaluation.pattern
            scores.append(PatternScore(
                evaluation=evaluation,
                confidence=evaluation.confidence,
                threshold=self._config.threshold_for(pattern.id, pattern.match_threshold),
            ))

        ranked = sorted((score for score in scores if score.matched), key=self._rank_key)
        return ScoringResult(scores=tuple(scores), ranked=tuple(ranked))
