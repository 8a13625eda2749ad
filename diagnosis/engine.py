"""
Diagnostic Engine

Single entry point for diagnosing a failed execution.

Flow:
1. Build the immutable trace (only step allowed to fail)
2. Evaluate every signature's evidence
3. Score and rank matches
4. Apply combination rules to pick the primary finding
5. Trace the originating node, seeded by the primary finding
6. Assemble and emit the diagnosis
"""

import logging
from typing import Any, Dict, Iterable, Optional, Union

from diagnosis.assembler import DiagnosisAssembler
from diagnosis.evaluator import EvidenceEvaluator
from diagnosis.rules import DEFAULT_CONFIG, DiagnosticConfig
from diagnosis.scorer import ConfidenceScorer
from diagnosis.tracer import RootCauseTracer
from observability.sink import DiagnosisSink
from schemas.diagnosis import DiagnosisResult
from signatures.library import SignatureLibrary, default_library
from tracing.builder import build_trace
from tracing.errors import TraceNotDiagnosableError
from tracing.history import ExecutionHistory
from tracing.model import ExecutionStatus, ExecutionTrace

logger = logging.getLogger(__name__)

HistoryInput = Union[ExecutionHistory, Iterable[Dict[str, Any]], None]


class DiagnosticEngine:
    """
    The Engine.

    Stateless between runs: the same engine instance can diagnose
    independent traces concurrently.
    """

    def __init__(
        self,
        library: Optional[SignatureLibrary] = None,
        config: Optional[DiagnosticConfig] = None,
        sink: Optional[DiagnosisSink] = None,
    ):
        """
        Initialize the engine.

        Args:
            library: Signature catalog. Defaults to the six built-in families.
            config: Thresholds and tables. Defaults to DEFAULT_CONFIG.
            sink: Optional destination each diagnosis is emitted to.
        """
        self._config = config if config is not None else DEFAULT_CONFIG
        self._library = library if library is not None else default_library()
        self._evaluator = EvidenceEvaluator(self._library, self._config)
        self._scorer = ConfidenceScorer(self._config)
        self._tracer = RootCauseTracer()
        self._assembler = DiagnosisAssembler(self._config)
        self._sink = sink

    @property
    def config(self) -> DiagnosticConfig:
        return self._config

    @property
    def library(self) -> SignatureLibrary:
        return self._library

    def build(self, raw: Dict[str, Any]) -> ExecutionTrace:
        return build_trace(raw, sampling_limit=self._config.sampling_limit)

    def diagnose(
        self,
        execution: Union[ExecutionTrace, Dict[str, Any]],
        history: HistoryInput = None,
    ) -> DiagnosisResult:
        """
        Diagnose one failed execution.

        Args:
            execution: A built ExecutionTrace or a raw execution record
            history: Optional prior executions of the same workflow

        Returns:
            DiagnosisResult (classified or unclassified)

        Raises:
            MalformedTraceError: raw input violates the trace invariants
            TraceNotDiagnosableError: the execution did not fail
        """
        trace = execution if isinstance(execution, ExecutionTrace) else self.build(execution)
        if history is not None and not isinstance(history, ExecutionHistory):
            history = ExecutionHistory.from_raw(history)

        if trace.status != ExecutionStatus.ERROR or trace.failure is None:
            raise TraceNotDiagnosableError(
                f"Execution {trace.execution_id} has status '{trace.status.value}'; only failed runs are diagnosed"
            )

        logger.info(
            f"[{trace.execution_id}] Diagnosing failure at '{trace.failure.node_ref}' "
            f"({len(trace.path)} nodes, {len(self._library)} signatures)"
        )

        evaluations = self._evaluator.evaluate(trace, history)
        scoring = self._scorer.score(evaluations)
        entries = self._assembler.combine(scoring)

        primary = entries[0].score.evaluation if entries else None
        origin = self._tracer.trace_origin(trace, primary, self._evaluator.context_for(history))

        result = self._assembler.assemble(trace, scoring, entries, origin)

        if result.primary is None:
            logger.info(f"[{trace.execution_id}] No signature reached its threshold; unclassified")
        else:
            logger.info(
                f"[{trace.execution_id}] Diagnosed {result.primary.pattern_id} "
                f"({result.primary.confidence}), origin '{result.originating_node.node}'"
            )

        self._emit(result)
        return result

    def _emit(self, result: DiagnosisResult) -> None:
        if self._sink is None:
            return
        try:
            self._sink.emit(result)
        except Exception as e:
            logger.warning(f"Diagnosis sink failed for {result.execution_id}: {e}")
