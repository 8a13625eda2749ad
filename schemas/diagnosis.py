import json
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

# --- Diagnosis Output Contract ---


class DiagnosisStatus(str, Enum):
    """Terminal outcome of one diagnosis run."""
    CLASSIFIED = "classified"
    UNCLASSIFIED = "unclassified"


class EvidenceRecord(BaseModel):
    """A predicate hit retained for audit."""
    model_config = ConfigDict(frozen=True)

    predicate: str
    weight: int = Field(..., ge=0, le=100)
    reason: str


class PatternScoreRecord(BaseModel):
    """Score of a single pattern, matched or not."""
    model_config = ConfigDict(frozen=True)

    pattern_id: str
    confidence: int = Field(..., ge=0, le=100)
    threshold: int = Field(..., ge=0, le=100)
    matched: bool


class RankedPattern(BaseModel):
    """
    A matched pattern in final diagnosis order.

    Secondary findings carry `resolves_with`, the id of the pattern whose fix
    is expected to clear them.
    """
    model_config = ConfigDict(frozen=True)

    pattern_id: str
    display_name: str
    confidence: int = Field(..., ge=0, le=100)
    remediation_class: str = Field(..., description="Fix family for the presentation layer")
    resolves_with: Optional[str] = Field(default=None, description="Primary pattern this one depends on")
    annotation: Optional[str] = Field(default=None, description="Combination note")


class FailureSummary(BaseModel):
    """Raw failure data, always carried so unclassified results stay useful."""
    model_config = ConfigDict(frozen=True)

    node: str
    message: str
    code: Optional[str] = None
    failing_expression: Optional[str] = None


class OriginRecord(BaseModel):
    """Where the defect was introduced."""
    model_config = ConfigDict(frozen=True)

    node: str
    index: int = Field(..., ge=0)
    type_tag: str
    inherited: bool = Field(..., description="False when the defect is local to the failing node")
    reason: str


class DiagnosisResult(BaseModel):
    """
    Structured diagnosis of one failed execution.

    This is the ONLY output format the engine produces.
    No prose, no fix text: rendering belongs to the reporting layer.
    """
    model_config = ConfigDict(frozen=True)

    execution_id: str
    workflow_id: str
    status: DiagnosisStatus
    ranked_patterns: List[RankedPattern] = Field(default_factory=list)
    originating_node: OriginRecord
    symptom_node: str
    evidence: List[EvidenceRecord] = Field(default_factory=list, description="Hits behind the primary pattern")
    failure: FailureSummary
    scores: List[PatternScoreRecord] = Field(default_factory=list, description="Every evaluated pattern")

    @property
    def primary(self) -> Optional[RankedPattern]:
        return self.ranked_patterns[0] if self.ranked_patterns else None

    @property
    def combined(self) -> bool:
        """True when more than one pattern matched."""
        return len(self.ranked_patterns) > 1

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    def to_json(self) -> str:
        """Deterministic serialization: identical diagnoses give identical bytes."""
        return json.dumps(self.to_dict(), sort_keys=True, ensure_ascii=False)
