"""Abstract base class for speech-to-text provider backends."""

from abc import ABC, abstractmethod
import logging

from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)


class AbstractSttBackend(ABC):
    """Abstract base class for cloud transcription backends."""

    name = "abstract"

    def __init__(self, api_key: str, language: str = "de-DE"):
        """Initialize backend with credentials and language preference."""
        self.api_key = api_key
        self.language = language

    @abstractmethod
    async def transcribe(self, audio: bytes) -> TranscriptionResult:
        """Transcribe a complete recording.

        Args:
            audio: Encoded audio bytes (webm, wav, ...)

        Returns:
            TranscriptionResult with transcript and confidence

        Raises:
            ProviderUnavailable: If the provider cannot produce a transcript
        """
        pass
