# Signatures Package
from signatures.types import (
    CausalDirection,
    EvaluationContext,
    EvidenceHit,
    EvidencePredicate,
    RemediationClass,
    SignaturePattern,
)
from signatures.library import SignatureLibrary, default_library

__all__ = [
    "CausalDirection",
    "EvaluationContext",
    "EvidenceHit",
    "EvidencePredicate",
    "RemediationClass",
    "SignaturePattern",
    "SignatureLibrary",
    "default_library",
]
