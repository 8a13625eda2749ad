from diagnosis.simulator import simulate
from factories import execution, node


def test_batch_breakdown(session_visibility_raw, expression_reference_raw, rate_limit_raw,
                         rate_limit_with_slow_call_raw, uniform_absence_raw):
    records = [
        session_visibility_raw,
        expression_reference_raw,
        rate_limit_raw,
        rate_limit_with_slow_call_raw,
        uniform_absence_raw,
        execution(path=[node("A", "transform")], failure=None, status="success"),
        {"status": "error", "path": "not-a-list"},
    ]

    result = simulate(records)

    assert result.total_executions == 7
    assert result.classified == 4
    assert result.unclassified == 1
    assert result.skipped == 1
    assert result.malformed == 1
    assert list(result.patterns.items()) == [
        ("rate_limiting", 2),
        ("expression_reference", 1),
        ("session_visibility", 1),
    ]
    assert result.inherited_origins == 2
    assert len(result.results) == 5
    assert result.classification_rate == 0.8


def test_summary_and_dict(rate_limit_raw):
    result = simulate([rate_limit_raw])

    assert result.to_dict()["classification_rate"] == "100.0%"
    summary = result.summary()
    assert "DIAGNOSIS SIMULATION RESULTS" in summary
    assert "rate_limiting: 1" in summary


def test_empty_batch():
    result = simulate([])
    assert result.total_executions == 0
    assert result.classification_rate == 0.0
    assert result.patterns == {}


def test_simulation_is_idempotent(session_visibility_raw, uniform_absence_raw):
    first = simulate([session_visibility_raw, uniform_absence_raw])
    second = simulate([session_visibility_raw, uniform_absence_raw])
    assert first.to_dict() == second.to_dict()
    assert [r.to_json() for r in first.results] == [r.to_json() for r in second.results]
