"""Transcription-related data models."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TranscriptionResult:
    """Result of a transcription operation.

    Produced once per capture session and never mutated afterwards.
    """
    transcript: str
    confidence: float
    source: str = "fallback"  # "fallback" | "provider"
    provider: Optional[str] = None
    language: str = "de-DE"

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    @property
    def is_empty(self) -> bool:
        return not self.transcript.strip()
