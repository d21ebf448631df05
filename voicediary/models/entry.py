"""Structured diary entry draft produced by the parser.

These models are the caller-facing contract of the pipeline. They are frozen
pydantic models with camelCase aliases so a draft can be dumped straight into
the JSON debug surface or handed to the persistence layer.
"""

import datetime as dt
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _DraftModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class EntryType(str, Enum):
    PAIN_EVENT = "pain-event"
    LIFESTYLE_NOTE = "lifestyle-note"
    VOICE_NOTE = "voice-note"


class TimeKind(str, Enum):
    RELATIVE = "relative"
    ABSOLUTE = "absolute"
    NOW = "now"


class EvidenceSpan(_DraftModel):
    """Literal slice of the raw transcript that justified a value."""

    text: str
    start: int = Field(ge=0)
    end: int = Field(ge=0)


class PainIntensity(_DraftModel):
    value: int = Field(ge=0, le=10)
    confidence: float = Field(ge=0.0, le=1.0)
    evidence: List[EvidenceSpan] = Field(default_factory=list)
    needs_review: bool = False
    from_descriptor: bool = False


class ParsedTime(_DraftModel):
    """When the described event happened.

    Exactly one payload shape is populated per ``kind``: ``relative_minutes``
    for relative times, ``date`` (and optionally ``time``) for absolute times,
    and only ``is_now`` for the implicit present.
    """

    kind: TimeKind
    relative_minutes: Optional[int] = Field(default=None, ge=0)
    date: Optional[str] = None
    time: Optional[str] = None
    is_now: bool = False
    display_text: str
    confidence: float = Field(ge=0.0, le=1.0)
    evidence: List[EvidenceSpan] = Field(default_factory=list)
    needs_review: bool = False

    @model_validator(mode="after")
    def _check_payload_shape(self) -> "ParsedTime":
        if self.kind is TimeKind.RELATIVE:
            ok = (self.relative_minutes is not None and self.date is None
                  and self.time is None and not self.is_now)
        elif self.kind is TimeKind.ABSOLUTE:
            ok = self.date is not None and self.relative_minutes is None and not self.is_now
        else:
            ok = (self.is_now and self.relative_minutes is None
                  and self.date is None and self.time is None)
        if not ok:
            raise ValueError(f"payload does not match time kind '{self.kind.value}'")
        return self

    def resolve(self, reference: dt.datetime) -> dt.datetime:
        """Turn the parsed time into a concrete timestamp relative to ``reference``."""
        if self.kind is TimeKind.NOW:
            return reference
        if self.kind is TimeKind.RELATIVE:
            return reference - dt.timedelta(minutes=self.relative_minutes)
        day = dt.date.fromisoformat(self.date)
        if self.time is not None:
            hours, minutes = (int(part) for part in self.time.split(":"))
            clock = dt.time(hours, minutes)
        else:
            clock = reference.time().replace(second=0, microsecond=0)
        return dt.datetime.combine(day, clock, tzinfo=reference.tzinfo)


class MedicationMention(_DraftModel):
    name: str
    confidence: float = Field(ge=0.0, le=1.0)
    needs_review: bool = False
    dose_quarters: Optional[int] = Field(default=None, gt=0)
    dose_text: Optional[str] = None
    strength: Optional[str] = None
    matched_user_medication_id: Optional[str] = None
    alternatives: List[str] = Field(default_factory=list)
    evidence: List[EvidenceSpan] = Field(default_factory=list)


class ParseResult(_DraftModel):
    """A typed, confidence-annotated diary entry draft."""

    entry_type: EntryType
    pain_intensity: PainIntensity
    time: ParsedTime
    medications: List[MedicationMention] = Field(default_factory=list)
    note: Optional[str] = None
    raw_text: str
    stt_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    confidence: float = Field(ge=0.0, le=1.0)
    needs_review: bool
    review_reasons: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_invariants(self) -> "ParseResult":
        expected = min(self.field_confidences())
        if abs(self.confidence - expected) > 1e-9:
            raise ValueError(
                f"overall confidence {self.confidence} must equal the field minimum {expected}"
            )
        if self.any_field_needs_review() and not self.needs_review:
            raise ValueError("needs_review must be set when any field needs review")
        return self

    def field_confidences(self) -> List[float]:
        confidences = [self.pain_intensity.confidence, self.time.confidence]
        if self.medications:
            confidences.extend(med.confidence for med in self.medications)
        else:
            confidences.append(1.0)
        return confidences

    def any_field_needs_review(self) -> bool:
        return (self.pain_intensity.needs_review
                or self.time.needs_review
                or any(med.needs_review for med in self.medications))

    def debug_snapshot(self) -> Dict[str, Any]:
        """JSON-serializable view with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
