"""
Execution Trace Model

Normalized, immutable view of one recorded workflow execution.

DESIGN RULES:
- Pure data container, no inference
- Immutable after construction
- Accessors never throw on missing nodes (except node_at out of range)
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from tracing.errors import MalformedTraceError


class ExecutionStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    RUNNING = "running"


# Platform status spellings folded into the three statuses the engine knows.
STATUS_ALIASES = {
    "failed": "error",
    "crashed": "error",
    "new": "running",
    "waiting": "running",
}


def coerce_status(value: Any) -> Any:
    """Pre-validation hook mapping platform status names onto ExecutionStatus values."""
    if isinstance(value, str):
        text = value.strip().lower()
        return STATUS_ALIASES.get(text, text)
    return value


def as_utc(instant: Optional[datetime]) -> Optional[datetime]:
    """Naive instants are taken to be UTC so all comparisons are well defined."""
    if instant is None or instant.tzinfo is not None:
        return instant
    return instant.replace(tzinfo=timezone.utc)


class NodeStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


def freeze(value: Any) -> Any:
    """Read-only deep copy: mappings become MappingProxyType, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Plain, caller-owned deep copy of a frozen value."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [thaw(item) for item in value]
    return value


@dataclass(frozen=True)
class NodeRun:
    """One node's execution within a trace."""

    name: str
    type_tag: str
    config: Mapping[str, Any] = field(default_factory=dict)
    output_sample: Tuple[Mapping[str, Any], ...] = ()
    exec_time_ms: Optional[int] = None
    result_status: NodeStatus = NodeStatus.SUCCESS

    def __post_init__(self) -> None:
        # Callers keep their own data; the run only holds read-only copies
        object.__setattr__(self, "config", freeze(self.config))
        object.__setattr__(self, "output_sample", tuple(freeze(record) for record in self.output_sample))

    @property
    def succeeded(self) -> bool:
        return self.result_status == NodeStatus.SUCCESS


@dataclass(frozen=True)
class FailureEvent:
    """The error observed on the symptom node."""

    node_ref: str
    message: str
    code: Optional[str] = None
    stack: Optional[str] = None
    failing_expression: Optional[str] = None


@dataclass(frozen=True)
class ExecutionTrace:
    """
    Immutable trace of one failed (or finished) workflow run.

    `path` order is execution order. The tracer depends on it.
    """

    execution_id: str
    workflow_id: str
    status: ExecutionStatus
    path: Tuple[NodeRun, ...] = ()
    failure: Optional[FailureEvent] = None
    started_at: Optional[datetime] = None
    stopped_at: Optional[datetime] = None
    _index: Dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", tuple(self.path))
        index: Dict[str, int] = {}
        for position, node in enumerate(self.path):
            # Later runs of the same node win: the most recent run is the relevant one.
            index[node.name] = position
        object.__setattr__(self, "_index", index)
        self._check_invariants()

    def _check_invariants(self) -> None:
        if self.status == ExecutionStatus.ERROR and self.failure is None:
            raise MalformedTraceError(f"Execution {self.execution_id} has status 'error' but no failure event")
        if self.failure is not None and self.status != ExecutionStatus.ERROR:
            raise MalformedTraceError(
                f"Execution {self.execution_id} carries a failure event but has status '{self.status.value}'"
            )
        if self.failure is not None and self.failure.node_ref not in self._index:
            raise MalformedTraceError(
                f"Failure references node '{self.failure.node_ref}' which is not in the execution path"
            )

    @property
    def duration_ms(self) -> Optional[int]:
        """Wall-clock duration in milliseconds, None if either instant is unknown."""
        if self.started_at is None or self.stopped_at is None:
            return None
        delta: timedelta = self.stopped_at - self.started_at
        return int(delta.total_seconds() * 1000)

    @property
    def failure_index(self) -> Optional[int]:
        if self.failure is None:
            return None
        return self.index_of(self.failure.node_ref)

    @property
    def failure_node(self) -> Optional[NodeRun]:
        position = self.failure_index
        if position is None:
            return None
        return self.path[position]

    def node_at(self, index: int) -> NodeRun:
        return self.path[index]

    def index_of(self, node_name: str) -> Optional[int]:
        return self._index.get(node_name)

    def node(self, node_name: str) -> Optional[NodeRun]:
        position = self.index_of(node_name)
        return None if position is None else self.path[position]

    def nodes_before(self, node_name: str) -> Tuple[NodeRun, ...]:
        """Ordered prefix of `path` preceding the named node. Empty if first or absent."""
        position = self.index_of(node_name)
        if position is None:
            return ()
        return self.path[:position]

    def sample(self, node_name: str, limit: int) -> List[Dict[str, Any]]:
        """Up to `limit` output records for a node, as copies; empty for unknown nodes."""
        node = self.node(node_name)
        if node is None or limit <= 0:
            return []
        return [thaw(record) for record in node.output_sample[:limit]]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for logging/export."""
        return {
            "execution_id": self.execution_id,
            "workflow_id": self.workflow_id,
            "status": self.status.value,
            "path": [
                {
                    "name": node.name,
                    "type_tag": node.type_tag,
                    "result_status": node.result_status.value,
                    "exec_time_ms": node.exec_time_ms,
                    "sample_size": len(node.output_sample),
                }
                for node in self.path
            ],
            "failure": None if self.failure is None else {
                "node": self.failure.node_ref,
                "message": self.failure.message,
                "code": self.failure.code,
                "failing_expression": self.failure.failing_expression,
            },
            "duration_ms": self.duration_ms,
        }
