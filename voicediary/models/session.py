"""Capture session state models."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


class CaptureState(str, Enum):
    """Lifecycle state of a capture session."""
    IDLE = "idle"
    LISTENING = "listening"
    PAUSED_ON_SILENCE = "paused-on-silence"
    STOPPING = "stopping"
    ERROR_TERMINAL = "error-terminal"


@dataclass(frozen=True)
class CaptureSession:
    """Immutable snapshot of one capture session.

    ``restart_timestamps_ms`` holds the restarts that still fall inside the
    rolling window, so ``restart_count`` never exceeds the policy budget.
    ``total_restarts`` keeps counting for the whole session.
    """
    state: CaptureState = CaptureState.IDLE
    correlation_id: Optional[str] = None
    segments: List[str] = field(default_factory=list)
    last_speech_at_ms: Optional[int] = None
    started_at_ms: Optional[int] = None
    restart_timestamps_ms: List[int] = field(default_factory=list)
    total_restarts: int = 0
    restart_pending: bool = False
    pipeline_started: bool = False
    failure: Optional[str] = None

    @property
    def restart_count(self) -> int:
        return len(self.restart_timestamps_ms)

    @property
    def transcript(self) -> str:
        return " ".join(segment for segment in self.segments if segment).strip()

    @property
    def is_active(self) -> bool:
        return self.state in (CaptureState.LISTENING, CaptureState.PAUSED_ON_SILENCE)

    def evolve(self, **changes: Any) -> "CaptureSession":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "correlationId": self.correlation_id,
            "segments": list(self.segments),
            "lastSpeechAtMs": self.last_speech_at_ms,
            "startedAtMs": self.started_at_ms,
            "restartCount": self.restart_count,
            "totalRestarts": self.total_restarts,
            "restartPending": self.restart_pending,
            "pipelineStarted": self.pipeline_started,
            "failure": self.failure,
        }
