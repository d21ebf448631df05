"""Parser engine: German transcript to structured diary entry draft."""

import datetime as dt
import logging
import re
from typing import Iterable, List, Optional

from ..models.entry import EntryType, MedicationMention, PainIntensity, ParsedTime, ParseResult
from .medications import KnownMedication, MedicationLexicon, extract_medications
from .noise import noise_reason
from .normalize import Residual, collapse_whitespace
from .pain import extract_pain
from .review import ReviewPolicy
from .timeexpr import default_time, extract_time

logger = logging.getLogger(__name__)

_PAIN_VOCABULARY_RE = re.compile(
    r"schmerz|kopfweh|migräne|migraene|attacke|\banfall|\baura\b|\b\d{1,2}\s*(?:von\s*10|/10)",
    re.IGNORECASE,
)
_MEDICATION_VOCABULARY_RE = re.compile(
    r"\b(?:genommen|eingenommen|nehme|tabletten?|kapseln?|tropfen|medikament\w*|schmerzmittel"
    r"|\w*triptan|ibuprofen|paracetamol|aspirin|ass|naproxen)\b",
    re.IGNORECASE,
)
_LIFESTYLE_CUES = [
    re.compile(pattern, re.IGNORECASE) for pattern in (
        r"\b(?:trigger|auslöser|ausloeser)\b",
        r"\b(?:notiz|kontext|bemerkung|anmerkung)\b",
        r"\b(?:geschlafen|schlaf\w*|müde|muede|erschöpft|erschoepft|kaputt)\b",
        r"\b(?:stress\w*|gestresst)\b",
        r"\b(?:wetter\w*|föhn|foehn|gewitter|hitze)\b",
        r"\b(?:periode|menstruation|regel|zyklus|eisprung)\b",
        r"\b(?:essen|gegessen|getrunken|kaffee|alkohol|wein|bier|wasser)\b",
        r"\b(?:sport|training|joggen|fitness|gelaufen)\b",
        r"\b(?:reise|gereist|unterwegs|flug|urlaub)\b",
        r"\b(?:gearbeitet|arbeit|überstunden|ueberstunden|bildschirm)\b",
    )
]

_FILLER_RE = re.compile(r"\b(?:genommen|eingenommen|tabletten?|mg|milligramm)\b", re.IGNORECASE)
_EDGE_PUNCTUATION = " ,.-:;!?"
_DANGLING_WORDS = {'ich', 'habe', 'hab', 'hatte', 'und', 'mit', 'eine', 'einen', 'ein', 'die', 'der', 'das'}


def classify(text: str, pain: PainIntensity, medications: List[MedicationMention]) -> EntryType:
    has_explicit_pain = pain.confidence > 0 and not pain.from_descriptor
    if (medications or has_explicit_pain
            or _PAIN_VOCABULARY_RE.search(text) or _MEDICATION_VOCABULARY_RE.search(text)):
        return EntryType.PAIN_EVENT
    if any(cue.search(text) for cue in _LIFESTYLE_CUES):
        return EntryType.LIFESTYLE_NOTE
    return EntryType.VOICE_NOTE


def residual_note(residual: Residual) -> Optional[str]:
    """Leftover text after extraction, without fillers."""
    text = collapse_whitespace(_FILLER_RE.sub(" ", residual.text))
    text = collapse_whitespace(re.sub(r"\s+([,.;:!?])", r"\1", text))
    text = text.strip(_EDGE_PUNCTUATION)
    if not text:
        return None
    words = [word.strip(_EDGE_PUNCTUATION).lower() for word in text.split()]
    if all(not word or word in _DANGLING_WORDS for word in words):
        return None
    return text


def review_reasons(pain: PainIntensity, time: ParsedTime,
                   medications: List[MedicationMention]) -> List[str]:
    reasons = []
    if pain.needs_review:
        if pain.confidence == 0.0:
            reasons.append("pain-missing")
        elif pain.from_descriptor:
            reasons.append("pain-from-descriptor")
        else:
            reasons.append("pain-low-confidence")
    if time.needs_review:
        reasons.append("time-low-confidence")
    for medication in medications:
        if not medication.needs_review:
            continue
        if medication.alternatives:
            reasons.append(f"medication-ambiguous:{medication.name}")
        elif medication.matched_user_medication_id is None:
            reasons.append(f"medication-unmatched:{medication.name}")
        else:
            reasons.append(f"medication-low-confidence:{medication.name}")
    return reasons


def overall_confidence(pain: PainIntensity, time: ParsedTime,
                       medications: List[MedicationMention]) -> float:
    confidences = [pain.confidence, time.confidence]
    if medications:
        confidences.extend(med.confidence for med in medications)
    else:
        confidences.append(1.0)
    return min(confidences)


class ParserEngine:
    """Runs the fixed extraction pipeline over a transcript.

    Stages consume what they match so later stages never see it: pain
    intensity, then time, then medications. Whatever is left becomes the note.
    """

    def __init__(self, known_medications: Iterable[KnownMedication] = (),
                 default_pain: int = 0, policy: Optional[ReviewPolicy] = None):
        """Initialize parser engine.

        Args:
            known_medications: The user's medications for matching
            default_pain: Pain value used when the transcript states none
            policy: Review thresholds, defaults when omitted
        """
        if not 0 <= default_pain <= 10:
            raise ValueError(f"default_pain must be between 0 and 10, got {default_pain}")
        self.default_pain = default_pain
        self.policy = policy or ReviewPolicy()
        self.lexicon = MedicationLexicon(known_medications)
        logger.info(f"ParserEngine initialized with {len(self.lexicon)} known medications")

    def parse(self, transcript: str, reference: Optional[dt.datetime] = None,
              stt_confidence: Optional[float] = None) -> ParseResult:
        """Parse a transcript into a draft entry. Never raises on content.

        Args:
            transcript: Raw transcript text
            reference: Moment the entry was spoken, defaults to now
            stt_confidence: Recognizer confidence for the transcript, if known

        Returns:
            ParseResult with per-field confidence and review flags
        """
        transcript = transcript or ""
        reference = reference or dt.datetime.now()

        reason = noise_reason(transcript)
        if reason is not None:
            logger.info(f"Transcript treated as noise ({reason}): '{transcript[:50]}'")
            return self._noise_result(transcript, reason, stt_confidence)

        residual = Residual(transcript)
        pain = extract_pain(residual, self.default_pain, self.policy)
        time = extract_time(residual, reference, self.policy)
        medications = extract_medications(residual, self.lexicon, self.policy)

        entry_type = classify(transcript, pain, medications)
        note = residual_note(residual)

        reasons = review_reasons(pain, time, medications)
        if self._stt_is_unreliable(stt_confidence):
            reasons.append("stt-low-confidence")
        result = ParseResult(
            entry_type=entry_type,
            pain_intensity=pain,
            time=time,
            medications=medications,
            note=note,
            raw_text=transcript,
            stt_confidence=stt_confidence,
            confidence=overall_confidence(pain, time, medications),
            needs_review=bool(reasons),
            review_reasons=reasons,
        )
        logger.info(f"Parsed '{transcript[:50]}...' as {entry_type.value} "
                    f"(confidence {result.confidence:.2f}, review {result.needs_review})")
        return result

    def _stt_is_unreliable(self, stt_confidence: Optional[float]) -> bool:
        return stt_confidence is not None and stt_confidence < self.policy.field_review_threshold

    def _noise_result(self, transcript: str, reason: str,
                      stt_confidence: Optional[float] = None) -> ParseResult:
        pain = PainIntensity(value=self.default_pain, confidence=0.0, needs_review=True)
        time = default_time(self.policy)
        reasons = [f"noise:{reason}", "pain-missing"]
        if self._stt_is_unreliable(stt_confidence):
            reasons.append("stt-low-confidence")
        return ParseResult(
            entry_type=EntryType.VOICE_NOTE,
            pain_intensity=pain,
            time=time,
            medications=[],
            note=transcript.strip() or None,
            raw_text=transcript,
            stt_confidence=stt_confidence,
            confidence=overall_confidence(pain, time, []),
            needs_review=True,
            review_reasons=reasons,
        )
