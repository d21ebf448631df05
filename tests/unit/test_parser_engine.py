"""Unit tests for ParserEngine."""

import pytest

from voicediary.models.entry import EntryType, TimeKind
from voicediary.parsing import ParserEngine, ReviewPolicy


SAMPLE_TRANSCRIPTS = [
    "ich hatte heute 8 von 10",
    "eine halbe Tablette Sumatriptan",
    "gestern Abend um halb neun Schmerzstärke 6, zwei Tabletten Ibuprofen genommen",
    "starke Kopfschmerzen seit dem Aufstehen",
    "vor 2 Stunden Migräne mit Stärke 7",
    "Aspirin genommen",
    "schlecht geschlafen und viel Stress im Büro",
    "Ibu profen 400 mg genommen",
]


@pytest.mark.unit
class TestParserEngine:
    """Test cases for ParserEngine."""

    def test_scale_pain_with_bare_day(self, parser, reference_time):
        """Test explicit scale value wins and bare day is recognized."""
        result = parser.parse("ich hatte heute 8 von 10", reference_time)

        assert result.pain_intensity.value == 8
        assert not result.pain_intensity.from_descriptor
        assert result.pain_intensity.confidence > 0.6
        assert result.time.kind is TimeKind.ABSOLUTE
        assert result.time.date == "2024-03-15"
        assert result.entry_type is EntryType.PAIN_EVENT
        assert result.note is None

    def test_half_tablet_of_known_medication(self, parser, reference_time):
        """Test dose quarters and matching against the user's medications."""
        result = parser.parse("eine halbe Tablette Sumatriptan", reference_time)

        assert len(result.medications) == 1
        med = result.medications[0]
        assert med.name == "Sumatriptan"
        assert med.matched_user_medication_id == "med-suma"
        assert med.dose_quarters == 2
        assert med.dose_text == "eine halbe Tablette"
        assert not med.needs_review
        assert result.entry_type is EntryType.PAIN_EVENT
        assert "pain-missing" in result.review_reasons

    def test_full_entry(self, parser, reference_time):
        """Test a transcript carrying pain, time and medication."""
        result = parser.parse(
            "gestern Abend um halb neun Schmerzstärke 6, zwei Tabletten Ibuprofen genommen",
            reference_time,
        )

        assert result.pain_intensity.value == 6
        assert result.time.kind is TimeKind.ABSOLUTE
        assert result.time.date == "2024-03-14"
        assert result.time.time == "20:30"
        assert result.time.display_text == "gestern Abend um 20:30 Uhr"
        assert [med.name for med in result.medications] == ["Ibuprofen 400 mg"]
        assert result.medications[0].dose_quarters == 8
        assert result.medications[0].matched_user_medication_id == "med-ibu"
        assert result.confidence == pytest.approx(0.85)
        assert not result.needs_review
        assert result.review_reasons == []
        assert result.note is None

    def test_unmatched_medication_needs_review(self, parser, reference_time):
        """Test a medication outside the user's list keeps a null id."""
        result = parser.parse("Aspirin genommen", reference_time)

        assert len(result.medications) == 1
        med = result.medications[0]
        assert med.name == "Aspirin"
        assert med.matched_user_medication_id is None
        assert med.needs_review
        assert "medication-unmatched:Aspirin" in result.review_reasons
        assert result.needs_review

    def test_split_token_medication(self, parser, reference_time):
        """Test a medication name split in two by speech recognition."""
        result = parser.parse("Ibu profen 400 mg genommen", reference_time)

        assert len(result.medications) == 1
        med = result.medications[0]
        assert med.matched_user_medication_id == "med-ibu"
        assert med.strength == "400 mg"
        assert not med.needs_review

    def test_negated_medication_is_ignored(self, parser, reference_time):
        """Test that 'kein Ibuprofen' is not a medication intake."""
        result = parser.parse("heute kein Ibuprofen genommen", reference_time)

        assert result.medications == []

    def test_descriptor_pain(self, parser, reference_time):
        """Test descriptor fallback is flagged for review."""
        result = parser.parse("starke Kopfschmerzen seit dem Aufstehen", reference_time)

        assert result.pain_intensity.value == 7
        assert result.pain_intensity.from_descriptor
        assert result.pain_intensity.needs_review
        assert "pain-from-descriptor" in result.review_reasons
        assert result.time.kind is TimeKind.NOW
        assert "Aufstehen" in result.note

    def test_relative_time_and_staerke(self, parser, reference_time):
        """Test relative time together with a 'Stärke' value."""
        result = parser.parse("vor 2 Stunden Migräne mit Stärke 7", reference_time)

        assert result.pain_intensity.value == 7
        assert result.time.kind is TimeKind.RELATIVE
        assert result.time.relative_minutes == 120
        assert result.confidence == pytest.approx(0.8)

    def test_lifestyle_note(self, parser, reference_time):
        """Test classification of a context note without pain."""
        result = parser.parse("schlecht geschlafen und viel Stress im Büro", reference_time)

        assert result.entry_type is EntryType.LIFESTYLE_NOTE
        assert result.medications == []
        assert result.note == "schlecht geschlafen und viel Stress im Büro"
        assert result.review_reasons == ["pain-missing"]

    def test_drinking_note_has_no_medication(self, parser, reference_time):
        """Test 'Tasse' is not read as the short name ASS."""
        result = parser.parse("Eine Tasse Kaffee getrunken", reference_time)

        assert result.entry_type is EntryType.LIFESTYLE_NOTE
        assert result.medications == []
        assert result.review_reasons == ["pain-missing"]

    def test_relative_time_after_today(self, parser, reference_time):
        """Test 'heute vor 20 Minuten' keeps the offset out of the note."""
        result = parser.parse("Heute vor 20 Minuten Kopfschmerzen 6 von 10", reference_time)

        assert result.time.kind is TimeKind.RELATIVE
        assert result.time.relative_minutes == 20
        assert not result.time.needs_review
        assert "Minuten" not in (result.note or "")
        assert "Heute" not in (result.note or "")

    def test_low_stt_confidence_needs_review(self, parser, reference_time):
        result = parser.parse("Schmerzstärke 7", reference_time, stt_confidence=0.4)

        assert result.stt_confidence == pytest.approx(0.4)
        assert "stt-low-confidence" in result.review_reasons
        assert result.needs_review
        assert result.debug_snapshot()["sttConfidence"] == pytest.approx(0.4)

    def test_confident_stt_adds_no_reason(self, parser, reference_time):
        result = parser.parse("Schmerzstärke 7", reference_time, stt_confidence=0.95)

        assert "stt-low-confidence" not in result.review_reasons

    def test_default_pain_is_used(self, known_medications, reference_time):
        """Test configured default pain when none is spoken."""
        parser = ParserEngine(known_medications, default_pain=4)

        result = parser.parse("Sumatriptan genommen", reference_time)

        assert result.pain_intensity.value == 4
        assert result.pain_intensity.confidence == 0.0
        assert result.confidence == 0.0

    def test_invalid_default_pain(self):
        """Test default pain outside the scale is rejected."""
        with pytest.raises(ValueError):
            ParserEngine(default_pain=11)

    @pytest.mark.parametrize("transcript,reason", [
        ("äh", "filler-only"),
        ("ok ja", "filler-only"),
        ("Test", "ambiguous-word"),
        ("a", "too-short"),
    ])
    def test_noise_transcripts(self, parser, reference_time, transcript, reason):
        """Test noise transcripts become voice notes needing review."""
        result = parser.parse(transcript, reference_time)

        assert result.entry_type is EntryType.VOICE_NOTE
        assert result.needs_review
        assert result.review_reasons[0] == f"noise:{reason}"
        assert result.medications == []
        assert result.note == transcript

    def test_empty_transcript(self, parser, reference_time):
        """Test an empty transcript yields a note-less voice note."""
        result = parser.parse("", reference_time)

        assert result.entry_type is EntryType.VOICE_NOTE
        assert result.note is None
        assert result.raw_text == ""

    @pytest.mark.parametrize("transcript", SAMPLE_TRANSCRIPTS)
    def test_confidence_is_field_minimum(self, parser, reference_time, transcript):
        """Test overall confidence is the minimum field confidence."""
        result = parser.parse(transcript, reference_time)

        assert 0.0 <= result.confidence <= 1.0
        assert result.confidence == pytest.approx(min(result.field_confidences()))

    @pytest.mark.parametrize("transcript", SAMPLE_TRANSCRIPTS)
    def test_review_flag_follows_fields(self, parser, reference_time, transcript):
        """Test the entry needs review exactly when a field does."""
        result = parser.parse(transcript, reference_time)

        assert result.needs_review == result.any_field_needs_review()
        assert result.needs_review == bool(result.review_reasons)

    @pytest.mark.parametrize("transcript", SAMPLE_TRANSCRIPTS)
    def test_parse_is_deterministic(self, parser, reference_time, transcript):
        """Test parsing the same transcript twice gives equal drafts."""
        assert parser.parse(transcript, reference_time) == parser.parse(transcript, reference_time)

    def test_evidence_points_into_raw_text(self, parser, reference_time):
        """Test evidence spans are literal slices of the transcript."""
        text = "gestern Abend um halb neun Schmerzstärke 6, zwei Tabletten Ibuprofen genommen"
        result = parser.parse(text, reference_time)

        spans = list(result.pain_intensity.evidence) + list(result.time.evidence)
        for med in result.medications:
            spans.extend(med.evidence)
        assert spans
        for span in spans:
            assert text[span.start:span.end] == span.text

    def test_stricter_policy_flags_more(self, known_medications, reference_time):
        """Test raising the review threshold flags confident fields too."""
        strict = ParserEngine(known_medications, policy=ReviewPolicy(field_review_threshold=0.99))

        result = strict.parse("vor 2 Stunden Migräne mit Stärke 7", reference_time)

        assert result.pain_intensity.needs_review
        assert result.time.needs_review
        assert "time-low-confidence" in result.review_reasons

    def test_debug_snapshot_uses_camel_case(self, parser, reference_time):
        """Test the JSON snapshot of a draft."""
        snapshot = parser.parse("eine halbe Tablette Sumatriptan", reference_time).debug_snapshot()

        assert snapshot["entryType"] == "pain-event"
        assert snapshot["painIntensity"]["fromDescriptor"] is False
        assert snapshot["medications"][0]["doseQuarters"] == 2
        assert snapshot["time"]["displayText"] == "jetzt"
