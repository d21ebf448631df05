"""Transcription adapter and provider backends."""

from .adapter import SttProvider, SttConfig, transcribe, fallback_result
from .base import AbstractSttBackend
from .whisper_backend import WhisperBackend

__all__ = [
    "SttProvider",
    "SttConfig",
    "transcribe",
    "fallback_result",
    "AbstractSttBackend",
    "WhisperBackend",
]
