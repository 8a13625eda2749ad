# Diagnosis Package
from diagnosis.rules import DiagnosticConfig, DEFAULT_CONFIG
from diagnosis.evaluator import EvidenceEvaluator, PatternEvaluation, evaluate_pattern
from diagnosis.scorer import ConfidenceScorer, PatternScore, ScoringResult
from diagnosis.tracer import RootCauseTracer, TracedOrigin
from diagnosis.assembler import DiagnosisAssembler, RankedEntry
from diagnosis.engine import DiagnosticEngine
from diagnosis.simulator import simulate, SimulationResult

__all__ = [
    "DiagnosticConfig",
    "DEFAULT_CONFIG",
    "EvidenceEvaluator",
    "PatternEvaluation",
    "evaluate_pattern",
    "ConfidenceScorer",
    "PatternScore",
    "ScoringResult",
    "RootCauseTracer",
    "TracedOrigin",
    "DiagnosisAssembler",
    "RankedEntry",
    "DiagnosticEngine",
    "simulate",
    "SimulationResult",
]
