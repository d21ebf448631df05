"""Per-session trace recorder for the capture pipeline."""

import copy
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..models.trace import TraceStatus, TraceStep, TraceStepKind, TraceSummary

logger = logging.getLogger(__name__)


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class TraceRecorder:
    """Append-only log of pipeline steps under one correlation ID.

    One recorder belongs to exactly one capture session. Durations of
    completed and failed steps are measured from the recorder's creation.
    """

    def __init__(self, correlation_id: Optional[str] = None,
                 clock: Optional[Callable[[], int]] = None):
        """Initialize trace recorder.

        Args:
            correlation_id: Session correlation ID, minted when omitted
            clock: Monotonic millisecond clock used for durations
        """
        self.correlation_id = correlation_id or uuid.uuid4().hex
        self._clock = clock or _monotonic_ms
        self._started_ms = self._clock()
        self._steps: List[TraceStep] = []

    def record(self, step: TraceStepKind, status: TraceStatus,
               payload: Optional[Dict[str, Any]] = None, error: Optional[str] = None) -> str:
        """Append a step to the trace.

        Args:
            step: Pipeline stage
            status: Step status
            payload: Step details, copied on record
            error: Error message for failed steps

        Returns:
            ID of the recorded step
        """
        step_id = f"{self.correlation_id}-{len(self._steps) + 1:03d}"
        duration_ms = None
        if status is not TraceStatus.STARTED:
            duration_ms = max(0, self._clock() - self._started_ms)

        entry = TraceStep(
            id=step_id,
            step=step,
            correlation_id=self.correlation_id,
            timestamp_iso=datetime.now(timezone.utc).isoformat(),
            status=status,
            payload=copy.deepcopy(payload) if payload else {},
            duration_ms=duration_ms,
            error=error,
        )
        self._steps.append(entry)

        if status is TraceStatus.FAILED:
            logger.warning(f"[{self.correlation_id}] {step.value} failed: {error}")
        else:
            logger.debug(f"[{self.correlation_id}] {step.value} {status.value} {entry.payload}")
        return step_id

    def steps(self) -> Tuple[TraceStep, ...]:
        return tuple(self._steps)

    def summary(self) -> TraceSummary:
        completed = sum(1 for s in self._steps if s.status is TraceStatus.COMPLETED)
        failed = [s for s in self._steps if s.status is TraceStatus.FAILED]
        durations = [s.duration_ms for s in self._steps if s.duration_ms is not None]
        return TraceSummary(
            total_steps=len(self._steps),
            completed=completed,
            failed=len(failed),
            total_duration_ms=max(durations) if durations else 0,
            last_error=failed[-1].error if failed else None,
        )

    def to_list(self) -> List[Dict[str, Any]]:
        return [step.to_dict() for step in self._steps]
