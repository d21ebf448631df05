"""Pain intensity extraction."""

import logging
import re
from typing import List, Optional, Tuple

from ..models.entry import EvidenceSpan, PainIntensity
from .normalize import NUMBER_PATTERN, SCALE_NUMBER_PATTERN, Residual, fold, to_number
from .review import ReviewPolicy

logger = logging.getLogger(__name__)

SCALE_CONFIDENCE = 0.95
TRIGGER_CONFIDENCE = 0.85
STAERKE_CONFIDENCE = 0.80
DESCRIPTOR_CONFIDENCE = 0.60

# Includes common speech recognition mishearings such as "Schmerzlautstärke".
INTENSITY_TRIGGERS = [
    'schmerzstaerke', 'schmerzlevel', 'schmerzwert', 'schmerzintensitaet', 'schmerzskala',
    'schmerzlautstaerke', 'schmerzlautsaerke', 'schmerzlaut',
    'schmerzstaerker', 'schmerzstarke',
    'kopfschmerzstaerke', 'migraenestaerke',
    'level', 'intensitaet', 'skala',
]

_SCALE_RE = re.compile(
    rf"\b(?P<value>{SCALE_NUMBER_PATTERN})\s*(?:von|auf|aus)\s*(?:10|zehn)\b"
    rf"|\b(?P<slash>\d{{1,2}})\s*/\s*10\b",
    re.IGNORECASE,
)

_STAERKE_RE = re.compile(
    rf"\b(?:nur\s+)?(?:stärke|staerke)\s*(?P<value>{SCALE_NUMBER_PATTERN})\b",
    re.IGNORECASE,
)

# Numbers that belong to doses, clock times, dates or durations.
_PROTECTED_RE = re.compile(
    rf"\b{NUMBER_PATTERN}\s*(?:mg|milligramm|ml|µg|mcg|mikrogramm|einheiten|tabletten?|kapseln?"
    rf"|tropfen|hub|minuten?|min|stunden?|std|h|uhr|tagen?)\b"
    r"|\b\d{1,2}[:.]\d{2}\b"
    r"|\b\d{1,2}\.\d{1,2}\.(?:\d{2,4})?"
    rf"|\b(?:um|gegen|halb|viertel\s+nach|viertel\s+vor|vor|seit)\s+{NUMBER_PATTERN}\b",
    re.IGNORECASE,
)

DESCRIPTOR_LADDER: List[Tuple["re.Pattern", int]] = [
    (re.compile(r"\b(?:sehr\s+stark\w*|unerträglich\w*|extrem\w*|heftig\w*|maximal\w*|höllisch\w*"
                r"|brutal\w*|kaum\s+auszuhalten)", re.IGNORECASE), 9),
    (re.compile(r"\b(?:stark|starke[nmrs]?|schwer|schwere[nmrs]?|massiv\w*|richtig\s+schlimm"
                r"|echt\s+schlimm)\b", re.IGNORECASE), 7),
    (re.compile(r"\b(?:mittel|mittlere[nmrs]?|mittelstark\w*|mäßig\w*|maessig\w*|mässig\w*"
                r"|moderat\w*)\b", re.IGNORECASE), 5),
    (re.compile(r"\b(?:sehr\s+leicht\w*|leicht|leichte[nmrs]?|schwach\w*|gering\w*|minimal\w*"
                r"|dezent\w*|kaum\s+spürbar)\b", re.IGNORECASE), 2),
]


def _overlaps(start: int, end: int, spans: List[Tuple[int, int]]) -> bool:
    return any(start < span_end and span_start < end for span_start, span_end in spans)


def _is_trigger(token: str) -> bool:
    folded = re.sub(r"[^a-z]", "", fold(token))
    if not folded:
        return False
    for trigger in INTENSITY_TRIGGERS:
        if folded == trigger or trigger in folded:
            return True
        if (len(folded) >= 8 and len(trigger) >= 8
                and abs(len(folded) - len(trigger)) <= 2
                and folded[:8] == trigger[:8]):
            return True
    return False


def _scale_value(text: str) -> Optional[int]:
    value = to_number(text)
    if value is None or not 0 <= value <= 10:
        return None
    return value


def _from_scale(residual: Residual, protected: List[Tuple[int, int]]) -> Optional[Tuple[int, int, int]]:
    for match in residual.finditer(_SCALE_RE):
        group = "value" if match.group("value") is not None else "slash"
        if _overlaps(match.start(group), match.end(group), protected):
            continue
        value = _scale_value(match.group(group))
        if value is not None:
            return value, match.start(), match.end()
    return None


def _from_trigger(residual: Residual, protected: List[Tuple[int, int]]) -> Optional[Tuple[int, List[Tuple[int, int]]]]:
    tokens = residual.tokens()
    for index, (token, start, end) in enumerate(tokens):
        if not _is_trigger(token):
            continue
        for other in range(max(0, index - 2), min(len(tokens), index + 5)):
            if other == index:
                continue
            number, n_start, n_end = tokens[other]
            if number.lower() in ('ein', 'eine', 'einer', 'einem'):
                continue
            value = _scale_value(number)
            if value is None or _overlaps(n_start, n_end, protected):
                continue
            return value, [(start, end), (n_start, n_end)]
    return None


def _from_staerke(residual: Residual, protected: List[Tuple[int, int]]) -> Optional[Tuple[int, int, int]]:
    for match in residual.finditer(_STAERKE_RE):
        if _overlaps(match.start("value"), match.end("value"), protected):
            continue
        value = _scale_value(match.group("value"))
        if value is not None:
            return value, match.start(), match.end()
    return None


def extract_pain(residual: Residual, default_pain: int, policy: ReviewPolicy) -> PainIntensity:
    """Find the pain intensity and consume its evidence from the residual.

    Explicit numbers win over descriptors. Without either, ``default_pain`` is
    returned with zero confidence and flagged for review.
    """
    protected = [(m.start(), m.end()) for m in residual.finditer(_PROTECTED_RE)]

    spans: List[Tuple[int, int]] = []
    value: Optional[int] = None
    confidence = 0.0
    from_descriptor = False

    scale = _from_scale(residual, protected)
    if scale:
        value, confidence, spans = scale[0], SCALE_CONFIDENCE, [(scale[1], scale[2])]
    else:
        trigger = _from_trigger(residual, protected)
        if trigger:
            value, confidence, spans = trigger[0], TRIGGER_CONFIDENCE, trigger[1]
        else:
            staerke = _from_staerke(residual, protected)
            if staerke:
                value, confidence, spans = staerke[0], STAERKE_CONFIDENCE, [(staerke[1], staerke[2])]

    if value is None:
        for pattern, rung in DESCRIPTOR_LADDER:
            match = residual.search(pattern)
            if match:
                value, confidence, from_descriptor = rung, DESCRIPTOR_CONFIDENCE, True
                spans = [(match.start(), match.end())]
                break

    if value is None:
        logger.debug(f"No pain intensity found, using default {default_pain}")
        return PainIntensity(value=default_pain, confidence=0.0, needs_review=True)

    evidence: List[EvidenceSpan] = []
    for start, end in spans:
        evidence.append(residual.evidence(start, end))
        residual.consume(start, end)

    return PainIntensity(
        value=value,
        confidence=confidence,
        evidence=evidence,
        needs_review=policy.needs_review(confidence, flagged=from_descriptor),
        from_descriptor=from_descriptor,
    )
