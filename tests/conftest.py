import pytest

from diagnosis.engine import DiagnosticEngine
from factories import execution, node


@pytest.fixture
def engine():
    return DiagnosticEngine()


@pytest.fixture
def session_visibility_raw():
    """Scenario A: file written in one remote session, read from another."""
    return execution(
        path=[
            node("Webhook", "webhook-source", output=[{"body": {"report": "q3"}}]),
            node("CleanInput", "transform", output=[{"report": "q3"}]),
            node("WriteFile", "remote-shell"),
            node("ExecuteCommand", "remote-shell", status="error"),
        ],
        failure={"node": "ExecuteCommand", "message": "file does not exist"},
        execution_id="exec-a",
    )


@pytest.fixture
def expression_reference_raw():
    """Scenario B: field present in one webhook record, missing in the other."""
    return execution(
        path=[
            node("Webhook", "webhook-source", output=[{"body": {"email": "a@x.com"}}, {"body": {}}]),
            node("SetEmail", "transform", status="error"),
        ],
        failure={
            "node": "SetEmail",
            "message": "cannot read property email of undefined",
            "expression": "body.email",
        },
        execution_id="exec-b",
    )


@pytest.fixture
def rate_limit_raw():
    """Scenario C: HTTP 429 on the failing call."""
    return execution(
        path=[
            node("Schedule", "trigger"),
            node("FetchUsers", "http-call", status="error"),
        ],
        failure={
            "node": "FetchUsers",
            "message": "Request failed with status code 429: Too Many Requests",
            "code": 429,
        },
        execution_id="exec-c",
    )


@pytest.fixture
def uniform_absence_raw():
    """Scenario D: referenced field absent from every sampled record."""
    return execution(
        path=[
            node("Webhook", "webhook-source", output=[{"body": {}}, {"body": {"name": "Ada"}}]),
            node("SetEmail", "transform", status="error"),
        ],
        failure={
            "node": "SetEmail",
            "message": "cannot read property email of undefined",
            "expression": "body.email",
        },
        execution_id="exec-d",
    )


@pytest.fixture
def rate_limit_with_slow_call_raw():
    """Scenario E: 429 plus a call that ran close to its timeout."""
    return execution(
        path=[
            node("Schedule", "trigger"),
            node("FetchUsers", "http-call", status="error", exec_time_ms=290000),
        ],
        failure={
            "node": "FetchUsers",
            "message": "Request timed out waiting for upstream: 429 Too Many Requests",
            "code": "429",
        },
        execution_id="exec-e",
    )


@pytest.fixture
def type_mismatch_raw():
    return execution(
        path=[
            node("ReadSheet", "http-call", output=[{"amount": "12"}, {"amount": 7}]),
            node("Compute", "transform", status="error"),
        ],
        failure={
            "node": "Compute",
            "message": "expected type number but received type string",
            "expression": "{{ $json.amount * 2 }}",
        },
        execution_id="exec-t",
    )
