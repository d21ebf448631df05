"""Unit tests for the noise guard."""

import pytest

from voicediary.parsing.noise import is_noise, noise_reason


@pytest.mark.unit
class TestNoiseGuard:
    """Test cases for noise_reason."""

    @pytest.mark.parametrize("transcript,reason", [
        ("", "too-short"),
        (" a ", "too-short"),
        ("...", "too-short"),
        ("ähm", "filler-only"),
        ("Äh, okay.", "filler-only"),
        ("hallo", "filler-only"),
        ("Danke!", "ambiguous-word"),
        ("stopp", "ambiguous-word"),
    ])
    def test_noise(self, transcript, reason):
        assert noise_reason(transcript) == reason
        assert is_noise(transcript)

    @pytest.mark.parametrize("transcript", [
        "Kopfweh",
        "danke, Stärke 3",
        "Test mit Ibuprofen",
    ])
    def test_content(self, transcript):
        assert noise_reason(transcript) is None
