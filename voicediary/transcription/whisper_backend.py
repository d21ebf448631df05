"""OpenAI Whisper transcription backend."""

import asyncio
import logging
import math
from typing import Any, Dict

import aiohttp

from ..errors import ProviderUnavailable
from ..models.transcription import TranscriptionResult
from .base import AbstractSttBackend

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.9


class WhisperBackend(AbstractSttBackend):
    """Sends a recording to the OpenAI transcription endpoint."""

    name = "whisper"

    def __init__(self, api_key: str, language: str = "de-DE", model: str = "whisper-1",
                 timeout_seconds: float = 30):
        """Initialize Whisper backend.

        Args:
            api_key: OpenAI API key
            language: BCP-47 language tag, only the primary subtag is sent
            model: Transcription model name
            timeout_seconds: Total request timeout
        """
        super().__init__(api_key, language)
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.base_url = "https://api.openai.com/v1/audio/transcriptions"

        logger.info(f"WhisperBackend initialized with model: {model}")

    async def transcribe(self, audio: bytes) -> TranscriptionResult:
        headers = {"Authorization": f"Bearer {self.api_key}"}

        form = aiohttp.FormData()
        form.add_field("file", audio, filename="recording.webm", content_type="audio/webm")
        form.add_field("model", self.model)
        form.add_field("language", self.language.split("-")[0])
        form.add_field("response_format", "verbose_json")

        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.base_url, headers=headers, data=form) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise ProviderUnavailable(
                            self.name, f"API error: {response.status} - {error_text[:200]}"
                        )
                    payload = await response.json()
        except aiohttp.ClientError as e:
            raise ProviderUnavailable(self.name, f"request failed: {e}", cause=e)
        except asyncio.TimeoutError as e:
            raise ProviderUnavailable(self.name, "request timed out", cause=e)

        return self._to_result(payload)

    def _to_result(self, payload: Dict[str, Any]) -> TranscriptionResult:
        transcript = (payload.get("text") or "").strip()
        confidence = self._confidence(payload) if transcript else 0.0
        logger.debug(f"Whisper transcript: '{transcript[:50]}...' (confidence {confidence:.2f})")
        return TranscriptionResult(
            transcript=transcript,
            confidence=confidence,
            source="provider",
            provider=self.name,
            language=self.language,
        )

    @staticmethod
    def _confidence(payload: Dict[str, Any]) -> float:
        """Mean per-segment probability derived from avg_logprob."""
        logprobs = [
            segment["avg_logprob"]
            for segment in payload.get("segments") or []
            if segment.get("avg_logprob") is not None
        ]
        if not logprobs:
            return DEFAULT_CONFIDENCE
        probabilities = [min(1.0, math.exp(value)) for value in logprobs]
        return sum(probabilities) / len(probabilities)
