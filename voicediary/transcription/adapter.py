"""Transcription adapter: provider dispatch with a platform fallback."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..errors import ProviderUnavailable
from ..models.transcription import TranscriptionResult
from .whisper_backend import WhisperBackend

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.7


class SttProvider(str, Enum):
    """Closed set of supported transcription providers."""
    NONE = "none"
    WHISPER = "whisper"
    DEEPGRAM = "deepgram"
    ASSEMBLYAI = "assemblyai"


@dataclass(frozen=True)
class SttConfig:
    """Transcription adapter configuration."""
    provider: SttProvider = SttProvider.NONE
    api_key: Optional[str] = None
    language: str = "de-DE"
    model: str = "whisper-1"
    timeout_seconds: float = 30


def fallback_result(fallback_transcript: Optional[str], language: str = "de-DE") -> TranscriptionResult:
    """Wrap the platform recognizer's transcript, or an empty one."""
    transcript = (fallback_transcript or "").strip()
    return TranscriptionResult(
        transcript=transcript,
        confidence=FALLBACK_CONFIDENCE if transcript else 0.0,
        source="fallback",
        language=language,
    )


async def transcribe(audio: Optional[bytes], config: SttConfig,
                     fallback_transcript: Optional[str] = None) -> TranscriptionResult:
    """Turn captured audio into a transcript.

    Without a provider or API key, or without audio to send, the platform
    transcript is used and this never raises.

    Args:
        audio: Recorded audio bytes, may be empty
        config: Provider selection and credentials
        fallback_transcript: Transcript accumulated by the platform recognizer

    Returns:
        TranscriptionResult

    Raises:
        ProviderUnavailable: If a configured provider fails or is not implemented
    """
    provider = config.provider

    if provider is SttProvider.NONE or not config.api_key:
        logger.debug(f"No usable STT provider ({provider.value}), using platform transcript")
        return fallback_result(fallback_transcript, config.language)

    if not audio:
        logger.debug(f"No audio captured for provider {provider.value}, using platform transcript")
        return fallback_result(fallback_transcript, config.language)

    if provider is SttProvider.WHISPER:
        backend = WhisperBackend(
            api_key=config.api_key,
            language=config.language,
            model=config.model,
            timeout_seconds=config.timeout_seconds,
        )
        result = await backend.transcribe(audio)
        logger.info(f"Transcribed {len(audio)} bytes with whisper (confidence {result.confidence:.2f})")
        return result
    elif provider is SttProvider.DEEPGRAM:
        raise ProviderUnavailable(provider.value, "not implemented")
    elif provider is SttProvider.ASSEMBLYAI:
        raise ProviderUnavailable(provider.value, "not implemented")

    raise ProviderUnavailable(str(provider), "unknown provider")
