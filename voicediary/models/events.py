"""Event payloads published on the pub/sub bus."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from .entry import ParseResult
from .trace import TraceStep, TraceSummary
from .transcription import TranscriptionResult

ENTRY_DRAFT_TOPIC = "entry_draft_ready"
CAPTURE_FAILED_TOPIC = "capture_failed"


@dataclass(frozen=True)
class EntryDraftEvent:
    """A parsed draft ready for persistence.

    ``trace`` and ``summary`` are taken while the hand-off is in progress, so
    the last step is always ``persist`` with status ``started``. Its outcome
    is recorded afterwards on the session trace.
    """
    draft_id: str  # equals the session correlation id
    transcription: TranscriptionResult
    result: ParseResult
    trace: Tuple[TraceStep, ...] = field(default_factory=tuple)
    summary: Optional[TraceSummary] = None


@dataclass(frozen=True)
class CaptureFailedEvent:
    """A capture session that ended without producing a draft."""
    correlation_id: Optional[str]
    reason: str
    recommended_mode: Optional[str] = None
    trace: Tuple[TraceStep, ...] = field(default_factory=tuple)
