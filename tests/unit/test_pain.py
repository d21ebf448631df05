"""Unit tests for pain intensity extraction."""

import pytest

from voicediary.parsing.normalize import Residual
from voicediary.parsing.pain import extract_pain
from voicediary.parsing.review import ReviewPolicy


def _extract(text, default_pain=0):
    residual = Residual(text)
    return extract_pain(residual, default_pain, ReviewPolicy()), residual


@pytest.mark.unit
class TestPainExtraction:
    """Test cases for extract_pain."""

    @pytest.mark.parametrize("text,value", [
        ("7 von 10", 7),
        ("so etwa 7/10", 7),
        ("acht von zehn", 8),
        ("heute 3 auf 10", 3),
    ])
    def test_scale(self, text, value):
        """Test explicit scale expressions."""
        pain, _ = _extract(text)

        assert pain.value == value
        assert pain.confidence == pytest.approx(0.95)
        assert not pain.needs_review

    @pytest.mark.parametrize("text,value", [
        ("Schmerzstärke 7", 7),
        ("Schmerzlevel ist 4", 4),
        ("Schmerzlautstärke 5", 5),
    ])
    def test_intensity_trigger(self, text, value):
        """Test trigger words including speech recognition mishearings."""
        pain, _ = _extract(text)

        assert pain.value == value
        assert pain.confidence == pytest.approx(0.85)

    def test_generic_staerke(self):
        """Test a bare 'Stärke' followed by a number."""
        pain, _ = _extract("Stärke 6")

        assert pain.value == 6
        assert pain.confidence == pytest.approx(0.80)

    @pytest.mark.parametrize("text,value", [
        ("sehr starke Schmerzen", 9),
        ("starke Kopfschmerzen", 7),
        ("mittlere Kopfschmerzen", 5),
        ("leichte Kopfschmerzen", 2),
    ])
    def test_descriptor_ladder(self, text, value):
        """Test descriptors map to fixed values and need review."""
        pain, _ = _extract(text)

        assert pain.value == value
        assert pain.from_descriptor
        assert pain.needs_review
        assert pain.confidence == pytest.approx(0.60)

    def test_explicit_number_beats_descriptor(self):
        """Test a scale value wins over a descriptor in the same transcript."""
        pain, _ = _extract("starke Schmerzen, 6 von 10")

        assert pain.value == 6
        assert not pain.from_descriptor

    def test_protected_clock_number(self):
        """Test a clock time next to a trigger is not read as intensity."""
        pain, _ = _extract("um 8 Uhr Schmerzstärke")

        assert pain.confidence == 0.0
        assert pain.value == 0

    def test_protected_dose_number(self):
        """Test a tablet count next to a trigger is skipped."""
        pain, _ = _extract("2 Tabletten und Schmerzstärke 5")

        assert pain.value == 5

    def test_default_when_missing(self):
        """Test the default value is used with zero confidence."""
        pain, _ = _extract("Kopfweh", default_pain=3)

        assert pain.value == 3
        assert pain.confidence == 0.0
        assert pain.needs_review
        assert pain.evidence == []

    def test_evidence_is_consumed(self):
        """Test matched evidence is blanked in the residual."""
        pain, residual = _extract("7 von 10 seit heute")

        assert pain.evidence[0].text == "7 von 10"
        assert pain.evidence[0].start == 0
        assert "7 von 10" not in residual.text
        assert residual.text.strip() == "seit heute"
        assert len(residual.text) == len(residual.raw)
