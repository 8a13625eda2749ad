"""
Diagnose API Route

Thin delegation layer to the diagnostic engine.
Contains NO diagnostic logic: no matching, no scoring, no tracing.

DESIGN RULE: This file should never change when signatures are added.
All intelligence lives in the signatures and diagnosis layers.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from app.dependencies import get_engine
from diagnosis.engine import DiagnosticEngine
from diagnosis.simulator import simulate
from schemas.diagnosis import DiagnosisResult
from tracing.errors import MalformedTraceError, TraceNotDiagnosableError


router = APIRouter()


class DiagnoseRequest(BaseModel):
    """API request for a single diagnosis."""
    execution: Dict[str, Any] = Field(..., description="Raw execution record")
    history: Optional[List[Dict[str, Any]]] = Field(default=None, description="Prior executions of the workflow")


class BatchDiagnoseRequest(BaseModel):
    """API request for a batch diagnosis."""
    executions: List[Dict[str, Any]] = Field(..., description="Raw execution records")


class BatchDiagnoseResponse(BaseModel):
    """Aggregate counts plus every diagnosis produced."""
    summary: Dict[str, Any]
    results: List[DiagnosisResult] = Field(default_factory=list)


@router.post("/diagnose", response_model=DiagnosisResult)
def diagnose(request: DiagnoseRequest, engine: DiagnosticEngine = Depends(get_engine)) -> DiagnosisResult:
    """
    Diagnose one failed execution.

    422 for records that break the trace invariants,
    409 for executions that did not fail.
    """
    try:
        return engine.diagnose(request.execution, history=request.history)
    except MalformedTraceError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except TraceNotDiagnosableError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/diagnose/batch", response_model=BatchDiagnoseResponse)
def diagnose_batch(
    request: BatchDiagnoseRequest,
    engine: DiagnosticEngine = Depends(get_engine),
) -> BatchDiagnoseResponse:
    """Diagnose many executions; bad records are counted, not fatal."""
    result = simulate(request.executions, engine=engine)
    return BatchDiagnoseResponse(summary=result.to_dict(), results=result.results)
