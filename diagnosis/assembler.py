"""
Diagnosis Assembler

Combines ranked matches and the traced origin into one DiagnosisResult.
Handles combination scenarios: a consequence pattern is listed after the
pattern that causes it, annotated as expected to resolve with that fix.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from diagnosis.rules import DEFAULT_CONFIG, DiagnosticConfig
from diagnosis.scorer import PatternScore, ScoringResult
from diagnosis.tracer import TracedOrigin
from schemas.diagnosis import (
    DiagnosisResult,
    DiagnosisStatus,
    EvidenceRecord,
    FailureSummary,
    OriginRecord,
    PatternScoreRecord,
    RankedPattern,
)
from tracing.model import ExecutionTrace


@dataclass(frozen=True)
class RankedEntry:
    score: PatternScore
    resolves_with: Optional[str] = None
    annotation: Optional[str] = None


class DiagnosisAssembler:
    """Builds the final, immutable diagnosis."""

    def __init__(self, config: Optional[DiagnosticConfig] = None):
        self._config = config if config is not None else DEFAULT_CONFIG

    def _is_consequence(self, effect: PatternScore, cause: PatternScore) -> bool:
        consequences = self._config.consequences_of(cause.evaluation.pattern.remediation_class)
        return effect.evaluation.pattern.remediation_class in consequences

    def _near_misses(self, primary: PatternScore, scoring: ScoringResult) -> List[PatternScore]:
        return [
            score for score in scoring.scores
            if not score.matched and score.confidence > 0 and self._is_consequence(score, primary)
        ]

    def combine(self, scoring: ScoringResult) -> List[RankedEntry]:
        """
        Reorder matches so causes lead their consequences.

        Returns:
            Entries in final order; the first is the primary finding
        """
        causes: Dict[str, PatternScore] = {}
        for effect in scoring.ranked:
            for cause in scoring.ranked:
                if cause is effect or cause.pattern_id in causes:
                    continue
                if self._is_consequence(effect, cause):
                    causes[effect.pattern_id] = cause
                    break

        entries: List[RankedEntry] = []
        for score in scoring.ranked:
            if score.pattern_id in causes:
                continue
            notes = [
                f"co-occurring {miss.pattern_id} evidence ({miss.confidence}) is below its match "
                f"threshold ({miss.threshold}) and is expected to clear once this is fixed"
                for miss in self._near_misses(score, scoring)
            ]
            entries.append(RankedEntry(score=score, annotation="; ".join(notes) or None))

        for score in scoring.ranked:
            cause = causes.get(score.pattern_id)
            if cause is None:
                continue
            entries.append(RankedEntry(
                score=score,
                resolves_with=cause.pattern_id,
                annotation=f"expected to resolve once {cause.pattern_id} is fixed",
            ))
        return entries

    def assemble(
        self,
        trace: ExecutionTrace,
        scoring: ScoringResult,
        entries: List[RankedEntry],
        origin: TracedOrigin,
    ) -> DiagnosisResult:
        failure = trace.failure
        primary = entries[0].score if entries else None

        ranked = [
            RankedPattern(
                pattern_id=entry.score.pattern_id,
                display_name=entry.score.evaluation.pattern.display_name,
                confidence=entry.score.confidence,
                remediation_class=entry.score.evaluation.pattern.remediation_class.value,
                resolves_with=entry.resolves_with,
                annotation=entry.annotation,
            )
            for entry in entries
        ]

        evidence = []
        if primary is not None:
            evidence = [
                EvidenceRecord(predicate=hit.predicate, weight=hit.weight, reason=hit.reason)
                for hit in primary.evaluation.hits
            ]

        return DiagnosisResult(
            execution_id=trace.execution_id,
            workflow_id=trace.workflow_id,
            status=DiagnosisStatus.CLASSIFIED if ranked else DiagnosisStatus.UNCLASSIFIED,
            ranked_patterns=ranked,
            originating_node=OriginRecord(
                node=origin.node.name,
                index=origin.index,
                type_tag=origin.node.type_tag,
                inherited=origin.inherited,
                reason=origin.reason,
            ),
            symptom_node=failure.node_ref,
            evidence=evidence,
            failure=FailureSummary(
                node=failure.node_ref,
                message=failure.message,
                code=failure.code,
                failing_expression=failure.failing_expression,
            ),
            scores=[
                PatternScoreRecord(
                    pattern_id=score.pattern_id,
                    confidence=score.confidence,
                    threshold=score.threshold,
                    matched=score.matched,
                )
                for score in scoring.scores
            ],
        )
