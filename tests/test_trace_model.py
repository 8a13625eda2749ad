import pytest

from factories import execution, node
from tracing.builder import build_trace
from tracing.errors import MalformedTraceError
from tracing.history import ExecutionHistory
from tracing.model import ExecutionStatus, ExecutionTrace, FailureEvent, NodeRun, NodeStatus


# ---------------------------------------------------------------------------
# Construction and invariants
# ---------------------------------------------------------------------------

def test_build_trace_from_raw(session_visibility_raw):
    trace = build_trace(session_visibility_raw)

    assert trace.execution_id == "exec-a"
    assert trace.workflow_id == "wf-1"
    assert trace.status == ExecutionStatus.ERROR
    assert [n.name for n in trace.path] == ["Webhook", "CleanInput", "WriteFile", "ExecuteCommand"]
    assert trace.failure.node_ref == "ExecuteCommand"
    assert trace.failure_node.result_status == NodeStatus.ERROR
    assert trace.duration_ms == 2000


def test_error_without_failure_is_malformed():
    raw = execution(path=[node("A", "transform")], failure=None)
    with pytest.raises(MalformedTraceError, match="no failure event"):
        build_trace(raw)


def test_failure_outside_path_is_malformed():
    raw = execution(path=[node("A", "transform")], failure={"node": "Ghost", "message": "boom"})
    with pytest.raises(MalformedTraceError, match="Ghost"):
        build_trace(raw)


def test_failure_on_successful_run_is_malformed():
    raw = execution(path=[node("A", "transform")], failure={"node": "A", "message": "boom"}, status="success")
    with pytest.raises(MalformedTraceError):
        build_trace(raw)


def test_unknown_status_is_malformed():
    raw = execution(path=[], failure=None, status="exploded")
    with pytest.raises(MalformedTraceError):
        build_trace(raw)


def test_non_mapping_input_is_malformed():
    with pytest.raises(MalformedTraceError):
        build_trace(["not", "a", "record"])


def test_successful_trace_may_have_empty_path():
    trace = build_trace(execution(path=[], failure=None, status="success"))
    assert trace.path == ()
    assert trace.failure is None
    assert trace.failure_node is None


def test_platform_status_names_are_folded():
    raw = execution(path=[node("A", "transform")], failure={"node": "A", "message": "x"}, status="failed")
    assert build_trace(raw).status == ExecutionStatus.ERROR


def test_missing_node_status_is_inferred():
    raw = execution(path=[{"name": "A"}, {"name": "B"}], failure={"node": "B", "message": "x"})
    trace = build_trace(raw)
    assert trace.node("A").result_status == NodeStatus.SUCCESS
    assert trace.node("B").result_status == NodeStatus.ERROR


def test_platform_node_types_map_to_semantic_tags():
    raw = execution(
        path=[node("Ssh", "n8n-nodes-base.ssh"), node("Call", "n8n-nodes-base.httpRequest", status="error")],
        failure={"node": "Call", "message": "x"},
    )
    trace = build_trace(raw)
    assert trace.node("Ssh").type_tag == "remote-shell"
    assert trace.node("Call").type_tag == "http-call"


def test_numeric_failure_code_becomes_text(rate_limit_raw):
    assert build_trace(rate_limit_raw).failure.code == "429"


# ---------------------------------------------------------------------------
# Accessors
# ---------------------------------------------------------------------------

def test_node_at_and_index_of(session_visibility_raw):
    trace = build_trace(session_visibility_raw)
    assert trace.node_at(2).name == "WriteFile"
    assert trace.index_of("WriteFile") == 2
    assert trace.index_of("Missing") is None
    with pytest.raises(IndexError):
        trace.node_at(10)


def test_nodes_before(session_visibility_raw):
    trace = build_trace(session_visibility_raw)
    assert [n.name for n in trace.nodes_before("WriteFile")] == ["Webhook", "CleanInput"]
    assert trace.nodes_before("Webhook") == ()
    assert trace.nodes_before("Missing") == ()


def test_sample_is_clamped_and_never_throws(expression_reference_raw):
    trace = build_trace(expression_reference_raw)
    assert len(trace.sample("Webhook", 1)) == 1
    assert len(trace.sample("Webhook", 10)) == 2
    assert trace.sample("Webhook", 0) == []
    assert trace.sample("Nobody", 5) == []


def test_sampling_limit_caps_output_at_construction():
    records = [{"i": i} for i in range(10)]
    raw = execution(path=[node("A", "transform", output=records), node("B", "transform", status="error")],
                    failure={"node": "B", "message": "x"})
    assert len(build_trace(raw, sampling_limit=3).node("A").output_sample) == 3
    assert len(build_trace(raw).node("A").output_sample) == 2


def test_item_wrappers_and_branches_are_flattened():
    output = [[{"json": {"a": 1}, "pairedItem": {"item": 0}}], [{"json": {"a": 2}}]]
    raw = execution(path=[node("A", "transform", output=output), node("B", "transform", status="error")],
                    failure={"node": "B", "message": "x"})
    assert build_trace(raw).node("A").output_sample == ({"a": 1}, {"a": 2})


def test_duplicate_names_resolve_to_latest_run():
    raw = execution(
        path=[node("Loop", "transform"), node("Other", "transform"), node("Loop", "transform", status="error")],
        failure={"node": "Loop", "message": "x"},
    )
    trace = build_trace(raw)
    assert trace.index_of("Loop") == 2
    assert trace.failure_index == 2
    assert [n.name for n in trace.nodes_before("Loop")] == ["Loop", "Other"]


def test_construction_copies_caller_data(expression_reference_raw):
    trace = build_trace(expression_reference_raw)
    expression_reference_raw["path"][0]["output"][0]["body"]["email"] = "changed@x.com"
    assert trace.sample("Webhook", 1)[0]["body"]["email"] == "a@x.com"


def test_construction_is_idempotent(type_mismatch_raw):
    first = build_trace(type_mismatch_raw)
    second = build_trace(type_mismatch_raw)

    assert first == second
    for name in ("ReadSheet", "Compute", "Missing"):
        assert first.index_of(name) == second.index_of(name)
        assert first.nodes_before(name) == second.nodes_before(name)
        assert first.sample(name, 2) == second.sample(name, 2)
    assert first.to_dict() == second.to_dict()


def test_sample_returns_copies(expression_reference_raw):
    trace = build_trace(expression_reference_raw)
    trace.sample("Webhook", 2)[1]["body"]["email"] = "b@x.com"
    assert trace.sample("Webhook", 2)[1] == {"body": {}}


def test_stored_records_and_config_are_read_only():
    raw = execution(
        path=[node("A", "transform", output=[{"tags": ["x"]}], config={"options": {"timeout": 10}}),
              node("B", "transform", status="error")],
        failure={"node": "B", "message": "x"},
    )
    run = build_trace(raw).node("A")

    with pytest.raises(TypeError):
        run.output_sample[0]["tags"] = []
    with pytest.raises(TypeError):
        run.config["options"]["timeout"] = 0
    assert run.output_sample[0]["tags"] == ("x",)


# ---------------------------------------------------------------------------
# Direct construction
# ---------------------------------------------------------------------------

def test_direct_construction_enforces_failure_node_in_path():
    with pytest.raises(MalformedTraceError, match="Ghost"):
        ExecutionTrace(
            execution_id="exec-x",
            workflow_id="wf-1",
            status=ExecutionStatus.ERROR,
            path=(NodeRun("A", "transform"),),
            failure=FailureEvent("Ghost", "boom"),
        )


def test_direct_construction_enforces_status_pairing():
    with pytest.raises(MalformedTraceError):
        ExecutionTrace(execution_id="exec-x", workflow_id="wf-1", status=ExecutionStatus.ERROR,
                       path=(NodeRun("A", "transform"),))
    with pytest.raises(MalformedTraceError):
        ExecutionTrace(execution_id="exec-x", workflow_id="wf-1", status=ExecutionStatus.SUCCESS,
                       path=(NodeRun("A", "transform"),), failure=FailureEvent("A", "boom"))


def test_node_run_copies_caller_data():
    config = {"command": "ls"}
    run = NodeRun("A", "remote-shell", config=config)
    config["command"] = "rm -rf /tmp/x"
    assert run.config["command"] == "ls"


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

def test_history_orders_entries_and_finds_latest():
    history = ExecutionHistory.from_raw([
        {"id": 2, "status": "success", "startedAt": "2026-10-01T09:00:00Z"},
        {"id": 1, "status": "failed", "startedAt": "2026-10-01T08:00:00Z"},
    ])
    trace = build_trace(execution(path=[node("A", "http-call", status="error")],
                                  failure={"node": "A", "message": "x"}))

    assert [e.execution_id for e in history.entries] == ["1", "2"]
    assert history.entries[0].status == ExecutionStatus.ERROR
    assert history.latest_before(trace.started_at).execution_id == "2"


def test_history_rejects_invalid_entries():
    with pytest.raises(MalformedTraceError):
        ExecutionHistory.from_raw([{"id": "x", "status": "success"}])
