"""Medication extraction with speech-error tolerant fuzzy matching.

Mentions are matched against the user's own medication list first, then a
built-in vocabulary of common headache medications. Anything else next to a
dose unit is kept as an unmatched mention so the user can review it.
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from rapidfuzz.distance import JaroWinkler, Levenshtein

from ..models.entry import EvidenceSpan, MedicationMention
from .normalize import NUMBER_WORDS, Residual, fold
from .review import ReviewPolicy

logger = logging.getLogger(__name__)

EXACT_CONFIDENCE = 0.98
PREFIX_CONFIDENCE = 0.75
VOCABULARY_CONFIDENCE = 0.60
DOSE_CONTEXT_CONFIDENCE = 0.50

# Shorter names (ASS, MCP) are too close to ordinary words to score fuzzily.
MIN_FUZZY_LENGTH = 5

CONTEXT_WORDS = {
    'genommen', 'eingenommen', 'nehme', 'nehmen', 'nehm', 'geschluckt',
    'tablette', 'tabletten', 'pille', 'pillen', 'kapsel', 'kapseln',
    'mg', 'milligramm', 'ml', 'tropfen', 'hub', 'einheiten',
    'triptan', 'schmerzmittel', 'medikament', 'medikamente',
    'halbe', 'halben', 'ganze', 'viertel', 'dreiviertel', 'anderthalb', 'eineinhalb',
}

DOSE_FORMS = {
    'tablette', 'tabletten', 'kapsel', 'kapseln', 'tropfen', 'hub', 'hübe', 'huebe',
    'mg', 'ml', 'µg', 'mcg', 'einheiten',
}

SKIP_WORDS = {
    'vor', 'nach', 'mit', 'und', 'oder', 'bei', 'wegen', 'durch', 'von', 'für', 'auf',
    'ich', 'habe', 'hab', 'hatte', 'heute', 'gestern', 'vorgestern', 'jetzt', 'gerade',
    'dann', 'noch', 'schon', 'auch', 'aber', 'nur', 'sehr', 'etwas', 'mal',
    'eine', 'einen', 'einer', 'einem', 'das', 'die', 'der', 'den', 'dem', 'des',
    'schmerz', 'schmerzen', 'kopfschmerz', 'kopfschmerzen', 'kopfweh',
    'migräne', 'migraene', 'attacke', 'anfall', 'stark', 'stärke', 'staerke',
    'minuten', 'minute', 'stunden', 'stunde', 'uhr', 'halb',
    'büro', 'buero', 'stress', 'trigger', 'geschlafen', 'arbeit',
    'müde', 'muede', 'wenig', 'morgen', 'abend', 'mittag', 'nacht', 'schlaf', 'schlecht',
    'wetter', 'sport', 'training', 'essen', 'trinken', 'getrunken',
    'kaffee', 'alkohol', 'periode', 'regel', 'zyklus', 'reise',
    'lärm', 'laerm', 'erschöpft', 'erschoepft', 'verspannt',
    'bildschirm', 'termine', 'sitzen', 'autofahren', 'zugfahrt',
    'gearbeitet', 'ausgesetzt', 'angestrengt', 'überstunden', 'ueberstunden',
}

NEGATION_WORDS = {'kein', 'keine', 'keinen', 'keiner', 'keinem', 'nicht', 'ohne'}

COMMON_MEDICATIONS = [
    'Ibuprofen', 'Paracetamol', 'Aspirin', 'ASS', 'Naproxen', 'Diclofenac',
    'Metamizol', 'Novalgin', 'Thomapyrin', 'Dolormin',
    'Sumatriptan', 'Rizatriptan', 'Zolmitriptan', 'Naratriptan', 'Almotriptan',
    'Eletriptan', 'Frovatriptan', 'Maxalt', 'Imigran', 'AscoTop', 'Relpax', 'Formigran',
    'Metoclopramid', 'MCP', 'Domperidon', 'Vomex',
    'Topiramat', 'Amitriptylin', 'Propranolol', 'Metoprolol', 'Flunarizin',
    'Aimovig', 'Ajovy', 'Emgality',
]

_STRENGTH_IN_NAME_RE = re.compile(
    r"^(?P<base>.+?)\s*(?P<strength>\d+(?:[.,]\d+)?\s*(?:mg|ml|mcg|µg|g|mikrogramm|milligramm)).*$",
    re.IGNORECASE,
)
_STRENGTH_RE = re.compile(
    r"\b(?P<amount>\d+(?:[.,]\d+)?)\s*(?P<unit>mg|milligramm|ml|µg|mcg|mikrogramm|g)(?!\w)",
    re.IGNORECASE,
)
_STRENGTH_UNITS = {'milligramm': 'mg', 'mikrogramm': 'µg', 'mcg': 'µg'}

DOSE_PATTERNS: List[Tuple["re.Pattern", int]] = [
    (re.compile(r"\b(?:eine?\s+)?(?:drei\s*viertel|3/4|0[.,]75)(?:\s+tabletten?)?\b", re.IGNORECASE), 3),
    (re.compile(r"\b(?:anderthalb|eineinhalb|1[.,]5)(?:\s+tabletten?)?\b", re.IGNORECASE), 6),
    (re.compile(r"\b(?:zwei|2)\s+tabletten?\b", re.IGNORECASE), 8),
    (re.compile(r"\b(?:eine?\s+)?(?:viertel|1/4|0[.,]25)(?:\s+tabletten?)?\b", re.IGNORECASE), 1),
    (re.compile(r"\b(?:eine?\s+)?(?:halbe?n?|1/2|0[.,]5)(?:\s+tabletten?)?\b", re.IGNORECASE), 2),
    (re.compile(r"\b(?:eine\s+ganze|ganze|eine|1)\s+tablette\b", re.IGNORECASE), 4),
]


def normalize_for_match(text: str) -> str:
    """Lowercase, diacritic-folded and without whitespace or hyphens."""
    return re.sub(r"[\s\-]+", "", fold(text)).strip()


@dataclass(frozen=True)
class KnownMedication:
    """A medication from the user's own list."""
    name: str
    id: Optional[str] = None
    active_ingredient: Optional[str] = None


@dataclass(frozen=True)
class LexiconEntry:
    canonical: str
    medication_id: Optional[str]
    forms: Tuple[str, ...]
    base_name: str
    strength: Optional[str] = None


@dataclass(frozen=True)
class MedicationMatch:
    canonical: str
    medication_id: Optional[str]
    confidence: float
    match_type: str  # exact | fuzzy | prefix | split_token | vocabulary | dose_context
    uncertain: bool = False
    alternatives: Tuple[str, ...] = ()


def split_strength(name: str) -> Tuple[str, Optional[str]]:
    match = _STRENGTH_IN_NAME_RE.match(name)
    if match:
        return match.group("base").strip(), match.group("strength").strip()
    return name.strip(), None


def _name_forms(name: str) -> Set[str]:
    forms = set()
    lower = name.lower().strip()
    base, _ = split_strength(name)
    base_lower = base.lower()
    forms.update({normalize_for_match(lower), normalize_for_match(base_lower)})

    normalized_base = normalize_for_match(base_lower)
    if len(normalized_base) >= 9:
        forms.add(normalized_base[:6])

    # common speech recognition variants
    if 'triptan' in base_lower:
        forms.add(normalize_for_match(base_lower.replace('triptan', 'tryptan')))
        forms.add(normalize_for_match(base_lower.replace('triptan', 'triplan')))
    if base_lower.startswith('suma'):
        forms.add('soma' + normalized_base[4:])
        forms.add('zuma' + normalized_base[4:])
    if 'ibuprofen' in base_lower:
        forms.update({'iboprofen', 'ibuproffen'})
    if 'paracetamol' in base_lower:
        forms.update({'parazitamol', 'paracetamoll'})
    return {form for form in forms if form}


class MedicationLexicon:
    """Searchable medication names with fuzzy lookup."""

    def __init__(self, medications: Iterable[KnownMedication] = ()):
        self.entries: List[LexiconEntry] = []
        self.prefix_index: Dict[str, List[str]] = {}

        for medication in medications:
            if not medication.name or len(medication.name.strip()) < 2:
                continue
            base, strength = split_strength(medication.name)
            forms = _name_forms(medication.name)
            if medication.active_ingredient:
                forms |= _name_forms(medication.active_ingredient)
            entry = LexiconEntry(
                canonical=medication.name.strip(),
                medication_id=medication.id,
                forms=tuple(sorted(forms)),
                base_name=normalize_for_match(base),
                strength=strength,
            )
            self.entries.append(entry)

            if len(entry.base_name) >= MIN_FUZZY_LENGTH:
                prefix = entry.base_name[:3]
                names = self.prefix_index.setdefault(prefix, [])
                if entry.canonical not in names:
                    names.append(entry.canonical)

        logger.debug(f"Medication lexicon built with {len(self.entries)} entries")

    def __len__(self) -> int:
        return len(self.entries)

    def best_match(self, text: str, has_context: bool, policy: ReviewPolicy,
                   allow_fuzzy: bool = True) -> Optional[MedicationMatch]:
        """Find the closest lexicon entry for a spoken word or joined words.

        Args:
            text: Spoken token
            has_context: Whether medication context words are nearby
            policy: Review thresholds
            allow_fuzzy: Only accept exact form matches when False

        Returns:
            MedicationMatch or None if nothing is close enough
        """
        normalized = normalize_for_match(text)
        if len(normalized) < 3 or text.lower() in SKIP_WORDS:
            return None

        threshold = policy.medication_context_threshold if has_context else policy.medication_match_threshold
        candidates: List[Tuple[float, LexiconEntry]] = []

        for entry in self.entries:
            if normalized in entry.forms:
                return MedicationMatch(entry.canonical, entry.medication_id, EXACT_CONFIDENCE, "exact")
            if not allow_fuzzy:
                continue

            score = max((JaroWinkler.normalized_similarity(normalized, form)
                         for form in entry.forms if len(form) >= MIN_FUZZY_LENGTH), default=0.0)
            if len(normalized) >= 6 and len(entry.base_name) >= MIN_FUZZY_LENGTH:
                distance = Levenshtein.distance(normalized, entry.base_name)
                max_distance = 2 if len(normalized) >= 8 else 1
                if distance <= max_distance:
                    score = max(score, 1 - distance / max(len(normalized), len(entry.base_name)))
            if score >= threshold:
                candidates.append((score, entry))

        if not candidates:
            if allow_fuzzy and has_context and len(normalized) >= 4:
                names = self.prefix_index.get(normalized[:3], [])
                if len(names) == 1:
                    entry = next(e for e in self.entries if e.canonical == names[0])
                    return MedicationMatch(entry.canonical, entry.medication_id,
                                           PREFIX_CONFIDENCE, "prefix", uncertain=True)
            return None

        candidates.sort(key=lambda item: item[0], reverse=True)
        best_score, best = candidates[0]
        uncertain = len(candidates) >= 2 and best_score - candidates[1][0] < policy.ambiguity_delta
        alternatives = tuple(entry.canonical for _, entry in candidates[1:3]) if uncertain else ()
        return MedicationMatch(best.canonical, best.medication_id, min(best_score, 1.0), "fuzzy",
                               uncertain=uncertain, alternatives=alternatives)


BUILTIN_VOCABULARY = MedicationLexicon(KnownMedication(name) for name in COMMON_MEDICATIONS)

Token = Tuple[str, int, int]


def _is_candidate_word(token: str) -> bool:
    lower = token.lower()
    return (token[:1].isalpha()
            and len(lower) >= 3
            and lower not in SKIP_WORDS
            and lower not in CONTEXT_WORDS
            and lower not in DOSE_FORMS
            and lower not in NUMBER_WORDS
            and lower not in NEGATION_WORDS)


def _is_negated(tokens: Sequence[Token], index: int) -> bool:
    return any(tokens[j][0].lower() in NEGATION_WORDS for j in (index - 1, index - 2) if j >= 0)


def _has_context(tokens: Sequence[Token], index: int) -> bool:
    for j in range(max(0, index - 3), min(len(tokens), index + 4)):
        if j == index:
            continue
        word = tokens[j][0].lower()
        if word in CONTEXT_WORDS or _STRENGTH_RE.fullmatch(word):
            return True
    return False


def _is_dose_adjacent(tokens: Sequence[Token], first: int, last: int) -> bool:
    if first > 0 and tokens[first - 1][0].lower() in DOSE_FORMS:
        return True
    following = " ".join(token for token, _, _ in tokens[last + 1:last + 3])
    return bool(_STRENGTH_RE.match(following)) or bool(
        re.match(r"\d+\s*einheiten\b", following, re.IGNORECASE))


def _match_token(tokens: Sequence[Token], index: int, lexicon: MedicationLexicon,
                 policy: ReviewPolicy) -> Tuple[Optional[MedicationMatch], int]:
    """Match the token at ``index``, possibly joined with its neighbours."""
    token = tokens[index][0]
    has_context = _has_context(tokens, index)

    match = lexicon.best_match(token, has_context, policy) if len(lexicon) else None
    consumed = 1

    if len(lexicon) and (match is None or match.match_type != "exact"):
        for length in (2, 3):
            parts = tokens[index:index + length]
            if len(parts) < length or not all(_is_candidate_word(part[0]) for part in parts):
                break
            joined = lexicon.best_match("".join(part[0] for part in parts), True, policy)
            if (joined is not None and joined.confidence >= policy.split_token_threshold
                    and (match is None or joined.confidence > match.confidence)):
                match, consumed = replace(joined, match_type="split_token"), length
                break

    if match is not None:
        return match, consumed

    folded = normalize_for_match(token)
    hit = BUILTIN_VOCABULARY.best_match(token, has_context, policy, allow_fuzzy=len(folded) >= 5)
    if hit is not None:
        return MedicationMatch(hit.canonical, None, VOCABULARY_CONFIDENCE, "vocabulary", uncertain=True), 1
    if folded.endswith("triptan") or folded.endswith("tryptan"):
        return MedicationMatch(token.capitalize(), None, VOCABULARY_CONFIDENCE, "vocabulary", uncertain=True), 1
    if _is_dose_adjacent(tokens, index, index):
        return MedicationMatch(token.capitalize(), None, DOSE_CONTEXT_CONFIDENCE, "dose_context", uncertain=True), 1
    return None, 1


def _nearest_dose(residual: Residual, start: int, end: int,
                  name_span: Tuple[int, int]) -> Optional[Tuple[int, Tuple[int, int]]]:
    """Dose expression in the window closest to the medication name.

    Ties go to the earlier entry of DOSE_PATTERNS.
    """
    best: Optional[Tuple[int, int, int, Tuple[int, int]]] = None
    window = residual.text[start:end]
    for rank, (pattern, quarters) in enumerate(DOSE_PATTERNS):
        for match in pattern.finditer(window):
            found = (start + match.start(), start + match.end())
            if _overlaps(found, [name_span]):
                continue
            distance = max(name_span[0] - found[1], found[0] - name_span[1], 0)
            if best is None or (distance, rank) < best[:2]:
                best = (distance, rank, quarters, found)
    if best is None:
        return None
    return best[2], best[3]


def extract_medications(residual: Residual, lexicon: MedicationLexicon,
                        policy: ReviewPolicy) -> List[MedicationMention]:
    """Find medication mentions with dose and strength and consume them.

    Args:
        residual: Transcript residual after pain and time extraction
        lexicon: The user's medications
        policy: Review thresholds

    Returns:
        Mentions in transcript order, one per medication
    """
    tokens = residual.tokens()
    hits: List[Tuple[MedicationMatch, int, int]] = []
    seen: Set[str] = set()

    index = 0
    while index < len(tokens):
        token = tokens[index][0]
        if not _is_candidate_word(token):
            index += 1
            continue
        if _is_negated(tokens, index):
            logger.debug(f"Skipping negated medication candidate '{token}'")
            index += 1
            continue

        match, consumed = _match_token(tokens, index, lexicon, policy)
        if match is not None and match.canonical.lower() not in seen:
            seen.add(match.canonical.lower())
            hits.append((match, index, index + consumed - 1))
        index += consumed

    mentions = []
    for position, (match, first, last) in enumerate(hits):
        lower_bound = hits[position - 1][2] + 1 if position > 0 else 0
        upper_bound = hits[position + 1][1] - 1 if position + 1 < len(hits) else len(tokens) - 1
        window_first = max(lower_bound, first - 4)
        window_last = min(upper_bound, last + 4)
        window_start = tokens[window_first][1]
        window_end = tokens[window_last][2]

        spans: List[Tuple[int, int]] = [(tokens[first][1], tokens[last][2])]

        dose_quarters = None
        dose_text = None
        dose = _nearest_dose(residual, window_start, window_end, spans[0])
        if dose is not None:
            dose_quarters, found = dose
            dose_text = residual.raw[found[0]:found[1]]
            spans.append(found)

        strength = None
        strength_match = _STRENGTH_RE.search(residual.text[window_start:window_end])
        if strength_match:
            unit = strength_match.group("unit").lower()
            strength = f"{strength_match.group('amount')} {_STRENGTH_UNITS.get(unit, unit)}"
            spans.append((window_start + strength_match.start(), window_start + strength_match.end()))

        evidence: List[EvidenceSpan] = [residual.evidence(start, end) for start, end in sorted(spans)]
        for start, end in spans:
            residual.consume(start, end)

        matched = match.match_type not in ("vocabulary", "dose_context")
        mentions.append(MedicationMention(
            name=match.canonical,
            confidence=match.confidence,
            needs_review=policy.needs_review(match.confidence, flagged=match.uncertain or not matched),
            dose_quarters=dose_quarters,
            dose_text=dose_text,
            strength=strength,
            matched_user_medication_id=match.medication_id,
            alternatives=list(match.alternatives),
            evidence=evidence,
        ))
        logger.debug(f"Medication '{match.canonical}' ({match.match_type}, {match.confidence:.2f}), "
                     f"dose quarters {dose_quarters}")

    return mentions


def _overlaps(span: Tuple[int, int], spans: Sequence[Tuple[int, int]]) -> bool:
    return any(span[0] < end and start < span[1] for start, end in spans)
