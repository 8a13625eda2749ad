"""
Diagnostic Engine Errors

Only input validation is fatal. Everything downstream of a
successfully built trace degrades to "no hit" instead of raising.
"""


class DiagnosticEngineError(Exception):
    """Base class for errors surfaced to callers of the engine."""


class MalformedTraceError(DiagnosticEngineError):
    """Raised when raw execution data violates the trace invariants. Never retried."""


class TraceNotDiagnosableError(DiagnosticEngineError):
    """Raised when a trace did not fail, so there is nothing to diagnose."""
