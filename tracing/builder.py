"""
Trace Builder

Validating build step from raw, untrusted execution data to an
immutable ExecutionTrace.

DESIGN RULES:
- The only boundary in the engine allowed to fail
- Fails completely or not at all (no partial traces)
- Copies caller data, never aliases it
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from tracing.errors import MalformedTraceError
from tracing.model import (
    ExecutionStatus,
    ExecutionTrace,
    FailureEvent,
    NodeRun,
    NodeStatus,
    as_utc,
    coerce_status,
)

logger = logging.getLogger(__name__)

DEFAULT_SAMPLING_LIMIT = 2

# Platform node types mapped to the semantic categories predicates reason about.
TYPE_TAG_ALIASES = {
    "n8n-nodes-base.ssh": "remote-shell",
    "n8n-nodes-base.executecommand": "remote-shell",
    "n8n-nodes-base.httprequest": "http-call",
    "n8n-nodes-base.webhook": "webhook-source",
    "n8n-nodes-base.set": "transform",
    "n8n-nodes-base.code": "transform",
    "n8n-nodes-base.function": "transform",
    "n8n-nodes-base.functionitem": "transform",
}


def normalize_type_tag(type_tag: str) -> str:
    text = (type_tag or "").strip()
    if not text:
        return "unknown"
    return TYPE_TAG_ALIASES.get(text.lower(), text)


# --- Raw Schemas ---

class RawNodeRun(BaseModel):
    """A node run as supplied by the execution data source."""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    type_tag: str = Field("unknown", validation_alias=AliasChoices("type_tag", "typeTag", "type"))
    config: Dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("config", "parameters"))
    output: List[Any] = Field(
        default_factory=list,
        validation_alias=AliasChoices("output", "output_sample", "outputSample", "data"),
    )
    exec_time_ms: Optional[int] = Field(
        None, ge=0, validation_alias=AliasChoices("exec_time_ms", "execTimeMs", "executionTime")
    )
    status: Optional[NodeStatus] = Field(None, validation_alias=AliasChoices("status", "result_status", "resultStatus"))

    @field_validator("type_tag")
    @classmethod
    def semantic_type_tag(cls, v: str) -> str:
        return normalize_type_tag(v)


class RawFailure(BaseModel):
    """The error object of a failed execution."""
    model_config = ConfigDict(extra="ignore")

    node: str = Field(..., min_length=1, validation_alias=AliasChoices("node", "node_ref", "nodeRef"))
    message: str = ""
    code: Optional[Union[int, str]] = Field(
        None, validation_alias=AliasChoices("code", "http_code", "httpCode")
    )
    stack: Optional[str] = None
    expression: Optional[str] = Field(
        None, validation_alias=AliasChoices("expression", "failing_expression", "failingExpression")
    )

    @field_validator("code")
    @classmethod
    def code_as_text(cls, v: Optional[Union[int, str]]) -> Optional[str]:
        if v is None:
            return None
        text = str(v).strip()
        return text or None


class RawExecution(BaseModel):
    """Top-level raw execution record."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field("unknown", validation_alias=AliasChoices("id", "execution_id", "executionId"))
    workflow_id: str = Field("unknown", validation_alias=AliasChoices("workflow_id", "workflowId"))
    status: ExecutionStatus
    path: List[RawNodeRun] = Field(default_factory=list, validation_alias=AliasChoices("path", "nodes"))
    failure: Optional[RawFailure] = Field(None, validation_alias=AliasChoices("failure", "error"))
    started_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("started_at", "startedAt"))
    stopped_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("stopped_at", "stoppedAt"))

    @field_validator("id", "workflow_id", mode="before")
    @classmethod
    def identifier_as_text(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("status", mode="before")
    @classmethod
    def platform_status(cls, v: Any) -> Any:
        return coerce_status(v)

    @field_validator("started_at", "stopped_at")
    @classmethod
    def instants_in_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


# --- Normalization ---

def _normalize_records(output: List[Any], limit: int) -> tuple:
    """Flatten branch lists, unwrap {"json": ...} items and cap at `limit`."""
    flat: List[Any] = []
    for item in output:
        if isinstance(item, list):
            flat.extend(item)
        else:
            flat.append(item)

    records = []
    for item in flat[:max(limit, 0)]:
        if isinstance(item, dict) and set(item.keys()) <= {"json", "pairedItem", "binary"} and isinstance(item.get("json"), dict):
            item = item["json"]
        if not isinstance(item, dict):
            item = {"value": item}
        records.append(item)
    return tuple(records)


def build_trace(raw: Dict[str, Any], sampling_limit: int = DEFAULT_SAMPLING_LIMIT) -> ExecutionTrace:
    """
    Build an ExecutionTrace from a raw execution record.

    Args:
        raw: Nested key-value execution record
        sampling_limit: Max output records kept per node

    Returns:
        Immutable ExecutionTrace

    Raises:
        MalformedTraceError: if the record cannot be parsed or breaks an invariant
    """
    if not isinstance(raw, dict):
        raise MalformedTraceError(f"Execution record must be a mapping, got {type(raw).__name__}")

    try:
        parsed = RawExecution.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Rejected malformed execution record: {e.error_count()} validation error(s)")
        raise MalformedTraceError(f"Invalid execution record: {e}") from e

    failing_node = parsed.failure.node if parsed.failure else None
    last_position = {node.name: i for i, node in enumerate(parsed.path)}

    path = []
    for position, node in enumerate(parsed.path):
        status = node.status
        if status is None:
            is_symptom = node.name == failing_node and last_position[node.name] == position
            status = NodeStatus.ERROR if is_symptom else NodeStatus.SUCCESS
        path.append(NodeRun(
            name=node.name,
            type_tag=node.type_tag,
            config=node.config,
            output_sample=_normalize_records(node.output, sampling_limit),
            exec_time_ms=node.exec_time_ms,
            result_status=status,
        ))

    failure = None
    if parsed.failure is not None:
        failure = FailureEvent(
            node_ref=parsed.failure.node,
            message=parsed.failure.message,
            code=parsed.failure.code,
            stack=parsed.failure.stack,
            failing_expression=parsed.failure.expression,
        )

    # Status/failure pairing and the failure node are checked by ExecutionTrace itself
    return ExecutionTrace(
        execution_id=parsed.id,
        workflow_id=parsed.workflow_id,
        status=parsed.status,
        path=tuple(path),
        failure=failure,
        started_at=parsed.started_at,
        stopped_at=parsed.stopped_at,
    )
