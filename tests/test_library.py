import pytest

from diagnosis.engine import DiagnosticEngine
from signatures import predicates as p
from signatures.library import CATALOG, SignatureLibrary, default_library
from signatures.types import CausalDirection, EvidencePredicate, RemediationClass, SignaturePattern


def _custom_pattern():
    return SignaturePattern(
        id="disk_full",
        display_name="Disk full on remote host",
        remediation_class=RemediationClass.CONSOLIDATE_SESSION,
        causal_direction=CausalDirection.LOCAL,
        predicates=(
            p.message_signature("disk_full_message", r"no space left on device", 80),
            p.symptom_role("remote_shell_consumer", ["remote-shell"], 20),
        ),
    )


def test_default_library_holds_six_families():
    library = default_library()
    assert len(library) == len(CATALOG) == 6
    assert set(library.ids()) == {
        "session_visibility",
        "expression_reference",
        "rate_limiting",
        "authorization_expiry",
        "timeout",
        "type_mismatch",
    }


@pytest.mark.parametrize("pattern", list(default_library()), ids=lambda pattern: pattern.id)
def test_catalog_weights_reach_full_confidence(pattern):
    assert sum(predicate.weight for predicate in pattern.predicates) == 100
    assert pattern.match_threshold == 70


def test_duplicate_registration_is_rejected():
    library = default_library()
    with pytest.raises(ValueError, match="already registered"):
        library.register(default_library().get("timeout"))


def test_pattern_rejects_duplicate_predicate_names():
    with pytest.raises(ValueError):
        SignaturePattern(
            id="broken",
            display_name="Broken",
            remediation_class=RemediationClass.EXTEND_TIMEOUT,
            predicates=(
                p.message_signature("same", "a", 10),
                p.message_signature("same", "b", 10),
            ),
        )


def test_predicate_weight_is_bounded():
    with pytest.raises(ValueError):
        EvidencePredicate(name="too_heavy", weight=120, check=lambda trace, ctx: None)


def test_library_lookup():
    library = default_library()
    assert "rate_limiting" in library
    assert "unknown" not in library
    assert library.get("unknown") is None
    assert library.get("timeout").predicate("near_ceiling").weight == 30
    assert library.get("timeout").predicate("missing") is None


def test_registered_pattern_is_evaluated_without_engine_changes():
    library = default_library()
    library.register(_custom_pattern())
    engine = DiagnosticEngine(library=library)

    result = engine.diagnose({
        "id": "exec-disk",
        "workflowId": "wf-9",
        "status": "error",
        "path": [
            {"name": "Trigger", "type": "trigger"},
            {"name": "Backup", "type": "remote-shell", "status": "error"},
        ],
        "failure": {"node": "Backup", "message": "tar: write error: No space left on device"},
    })

    assert result.primary.pattern_id == "disk_full"
    assert result.primary.confidence == 100
    assert result.originating_node.node == "Backup"
    assert result.originating_node.inherited is False


def test_empty_library_always_yields_unclassified(rate_limit_raw):
    engine = DiagnosticEngine(library=SignatureLibrary())
    result = engine.diagnose(rate_limit_raw)

    assert len(engine.library) == 0
    assert result.primary is None
    assert result.scores == []
