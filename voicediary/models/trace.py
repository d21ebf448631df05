"""Trace-related data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class TraceStepKind(Enum):
    """Pipeline stage a trace step belongs to."""
    CAPTURE = "capture"
    TRANSCRIBE = "transcribe"
    PARSE = "parse"
    PERSIST = "persist"
    ERROR = "error"


class TraceStatus(Enum):
    """Status of a trace step."""
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class TraceStep:
    """A single append-only entry in a session trace."""
    id: str
    step: TraceStepKind
    correlation_id: str
    timestamp_iso: str
    status: TraceStatus
    payload: Dict[str, Any] = field(default_factory=dict)
    duration_ms: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "step": self.step.value,
            "correlationId": self.correlation_id,
            "timestampISO": self.timestamp_iso,
            "status": self.status.value,
            "payload": dict(self.payload),
        }
        if self.duration_ms is not None:
            data["durationMs"] = self.duration_ms
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class TraceSummary:
    """Aggregate view over a session trace."""
    total_steps: int
    completed: int
    failed: int
    total_duration_ms: int
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "totalSteps": self.total_steps,
            "completed": self.completed,
            "failed": self.failed,
            "totalDurationMs": self.total_duration_ms,
        }
        if self.last_error is not None:
            data["lastError"] = self.last_error
        return data
