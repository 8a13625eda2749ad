# Observability Package
from observability.sink import DiagnosisSink, ConsoleDiagnosisSink, JsonDiagnosisSink, MemoryDiagnosisSink

__all__ = ["DiagnosisSink", "ConsoleDiagnosisSink", "JsonDiagnosisSink", "MemoryDiagnosisSink"]
