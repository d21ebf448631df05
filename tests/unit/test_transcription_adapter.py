"""Unit tests for the transcription adapter and Whisper backend."""

import asyncio
import math
from unittest.mock import AsyncMock, patch

import pytest

from voicediary.errors import ProviderUnavailable
from voicediary.models.transcription import TranscriptionResult
from voicediary.transcription import SttConfig, SttProvider, WhisperBackend, transcribe


@pytest.mark.unit
class TestTranscribe:
    """Test cases for transcribe."""

    def test_no_provider_uses_fallback(self):
        result = asyncio.run(transcribe(b"audio", SttConfig(), fallback_transcript=" Kopfweh "))

        assert result.transcript == "Kopfweh"
        assert result.confidence == pytest.approx(0.7)
        assert result.source == "fallback"
        assert result.provider is None

    def test_empty_fallback_has_zero_confidence(self):
        result = asyncio.run(transcribe(None, SttConfig()))

        assert result.transcript == ""
        assert result.confidence == 0.0
        assert result.is_empty

    def test_provider_without_key_uses_fallback(self):
        config = SttConfig(provider=SttProvider.WHISPER)

        result = asyncio.run(transcribe(b"audio", config, fallback_transcript="Kopfweh"))

        assert result.source == "fallback"

    def test_provider_without_audio_uses_fallback(self):
        config = SttConfig(provider=SttProvider.WHISPER, api_key="key")

        with patch("voicediary.transcription.adapter.WhisperBackend") as backend_class:
            result = asyncio.run(transcribe(b"", config, fallback_transcript="Kopfweh"))

        backend_class.assert_not_called()
        assert result.source == "fallback"

    def test_whisper_provider(self):
        config = SttConfig(provider=SttProvider.WHISPER, api_key="key", model="whisper-1")
        provider_result = TranscriptionResult(
            transcript="Schmerzstärke 6", confidence=0.92, source="provider", provider="whisper"
        )

        with patch("voicediary.transcription.adapter.WhisperBackend") as backend_class:
            backend_class.return_value.transcribe = AsyncMock(return_value=provider_result)
            result = asyncio.run(transcribe(b"audio", config, fallback_transcript="ignored"))

        backend_class.assert_called_once_with(
            api_key="key", language="de-DE", model="whisper-1", timeout_seconds=30
        )
        backend_class.return_value.transcribe.assert_awaited_once_with(b"audio")
        assert result is provider_result

    @pytest.mark.parametrize("provider", [SttProvider.DEEPGRAM, SttProvider.ASSEMBLYAI])
    def test_unimplemented_provider_raises(self, provider):
        config = SttConfig(provider=provider, api_key="key")

        with pytest.raises(ProviderUnavailable) as exc_info:
            asyncio.run(transcribe(b"audio", config, fallback_transcript="Kopfweh"))

        assert exc_info.value.provider == provider.value

    def test_confidence_range_is_checked(self):
        with pytest.raises(ValueError):
            TranscriptionResult(transcript="x", confidence=1.5)


@pytest.mark.unit
class TestWhisperBackend:
    """Test cases for WhisperBackend response handling."""

    def test_confidence_from_segments(self):
        backend = WhisperBackend(api_key="key")
        payload = {
            "text": " Kopfweh seit heute ",
            "segments": [{"avg_logprob": 0.0}, {"avg_logprob": math.log(0.5)}],
        }

        result = backend._to_result(payload)

        assert result.transcript == "Kopfweh seit heute"
        assert result.confidence == pytest.approx(0.75)
        assert result.source == "provider"
        assert result.provider == "whisper"

    def test_default_confidence_without_segments(self):
        result = WhisperBackend(api_key="key")._to_result({"text": "Kopfweh"})

        assert result.confidence == pytest.approx(0.9)

    def test_empty_text(self):
        result = WhisperBackend(api_key="key")._to_result({"text": "  "})

        assert result.transcript == ""
        assert result.confidence == 0.0
