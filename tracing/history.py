"""
Execution History

Auxiliary context: prior executions of the same workflow.
Only consulted by history predicates, never required.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from tracing.errors import MalformedTraceError
from tracing.model import ExecutionStatus, as_utc, coerce_status


class RawHistoryEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field("unknown", validation_alias=AliasChoices("id", "execution_id", "executionId"))
    status: ExecutionStatus
    started_at: datetime = Field(..., validation_alias=AliasChoices("started_at", "startedAt"))

    @field_validator("id", mode="before")
    @classmethod
    def identifier_as_text(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("status", mode="before")
    @classmethod
    def platform_status(cls, v: Any) -> Any:
        return coerce_status(v)

    @field_validator("started_at")
    @classmethod
    def instant_in_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


@dataclass(frozen=True)
class HistoryEntry:
    execution_id: str
    status: ExecutionStatus
    started_at: datetime


@dataclass(frozen=True)
class ExecutionHistory:
    """Prior executions ordered oldest first."""

    entries: Tuple[HistoryEntry, ...] = ()

    @classmethod
    def from_raw(cls, raw_entries: Iterable[Dict[str, Any]]) -> "ExecutionHistory":
        entries: List[HistoryEntry] = []
        try:
            for raw in raw_entries:
                parsed = RawHistoryEntry.model_validate(raw)
                entries.append(HistoryEntry(
                    execution_id=str(parsed.id),
                    status=parsed.status,
                    started_at=parsed.started_at,
                ))
        except ValidationError as e:
            raise MalformedTraceError(f"Invalid execution history: {e}") from e
        entries.sort(key=lambda entry: entry.started_at)
        return cls(entries=tuple(entries))

    def latest_before(self, instant: Optional[datetime]) -> Optional[HistoryEntry]:
        """Most recent entry strictly before `instant` (or overall if instant is None)."""
        candidates = [
            entry for entry in self.entries
            if instant is None or entry.started_at < instant
        ]
        return candidates[-1] if candidates else None

    def __len__(self) -> int:
        return len(self.entries)
