"""Data models for the VoiceDiary pipeline."""

from .transcription import TranscriptionResult
from .trace import TraceStepKind, TraceStatus, TraceStep, TraceSummary
from .session import CaptureState, CaptureSession
from .entry import (
    EntryType,
    TimeKind,
    EvidenceSpan,
    PainIntensity,
    ParsedTime,
    MedicationMention,
    ParseResult,
)
from .events import (
    ENTRY_DRAFT_TOPIC,
    CAPTURE_FAILED_TOPIC,
    EntryDraftEvent,
    CaptureFailedEvent,
)

__all__ = [
    "TranscriptionResult",
    "TraceStepKind",
    "TraceStatus",
    "TraceStep",
    "TraceSummary",
    "CaptureState",
    "CaptureSession",
    # Draft models
    "EntryType",
    "TimeKind",
    "EvidenceSpan",
    "PainIntensity",
    "ParsedTime",
    "MedicationMention",
    "ParseResult",
    # Events
    "ENTRY_DRAFT_TOPIC",
    "CAPTURE_FAILED_TOPIC",
    "EntryDraftEvent",
    "CaptureFailedEvent",
]
