"""Noise guard for transcripts that carry no usable content."""

from typing import Optional

from .normalize import fold

FILLER_WORDS = {
    # fillers
    'äh', 'ah', 'aeh', 'ähm', 'aehm', 'öhm', 'oehm', 'uhm', 'hm', 'hmm', 'äää',
    # confirmations
    'ok', 'okay', 'ja', 'jo', 'jap', 'jep', 'jup', 'nein', 'ne', 'nö', 'noe',
    # greetings
    'hallo', 'hi', 'hey', 'tschüss', 'tschuess', 'bye',
    # fragments
    'also', 'und', 'oder', 'aber', 'dann', 'so', 'eben', 'halt',
}
FOLDED_FILLER_WORDS = {fold(word) for word in FILLER_WORDS}

AMBIGUOUS_ALONE = {'test', 'bitte', 'danke', 'moment', 'warte', 'stop', 'stopp'}


def noise_reason(transcript: str) -> Optional[str]:
    """Return why a transcript counts as noise, or None for real content."""
    trimmed = transcript.strip().lower()
    if len(trimmed) < 2:
        return "too-short"

    tokens = [token.strip(".,;:!?-") for token in trimmed.split()]
    tokens = [token for token in tokens if token]
    if not tokens:
        return "too-short"
    if all(fold(token) in FOLDED_FILLER_WORDS for token in tokens):
        return "filler-only"
    if len(tokens) == 1 and fold(tokens[0]) in AMBIGUOUS_ALONE:
        return "ambiguous-word"
    return None


def is_noise(transcript: str) -> bool:
    return noise_reason(transcript) is not None
