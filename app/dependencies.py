"""
FastAPI Dependencies

All object creation happens here, not per request.
This module provides dependency injection for the diagnosis layer.

RULE: FastAPI routes call exactly one entry point: DiagnosticEngine.diagnose()
"""

from functools import lru_cache
from typing import Optional

from app.core.config import settings
from diagnosis.engine import DiagnosticEngine
from observability.sink import ConsoleDiagnosisSink, DiagnosisSink, JsonDiagnosisSink
from signatures.library import default_library


def _build_sink(mode: str) -> Optional[DiagnosisSink]:
    if mode == "console":
        return ConsoleDiagnosisSink(verbose=True)
    if mode == "json":
        return JsonDiagnosisSink()
    return None


@lru_cache(maxsize=1)
def get_engine() -> DiagnosticEngine:
    """
    Create and cache the DiagnosticEngine singleton.

    Wired here:
    - SignatureLibrary: the built-in failure families
    - DiagnosticConfig: thresholds and tables from Settings
    - DiagnosisSink: optional output selected by settings.sink

    Returns:
        DiagnosticEngine: The single entry point for diagnosis.
    """
    library = default_library()
    config = settings.to_diagnostic_config(library.ids())
    return DiagnosticEngine(
        library=library,
        config=config,
        sink=_build_sink(settings.sink.lower()),
    )
