# Tracing Package
from tracing.errors import DiagnosticEngineError, MalformedTraceError, TraceNotDiagnosableError
from tracing.model import ExecutionStatus, ExecutionTrace, FailureEvent, NodeRun, NodeStatus
from tracing.builder import build_trace, DEFAULT_SAMPLING_LIMIT
from tracing.history import ExecutionHistory, HistoryEntry

__all__ = [
    "DiagnosticEngineError",
    "MalformedTraceError",
    "TraceNotDiagnosableError",
    "ExecutionStatus",
    "ExecutionTrace",
    "FailureEvent",
    "NodeRun",
    "NodeStatus",
    "build_trace",
    "DEFAULT_SAMPLING_LIMIT",
    "ExecutionHistory",
    "HistoryEntry",
]
