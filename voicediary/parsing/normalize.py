"""Text helpers shared by the parser stages."""

import re
import unicodedata
from typing import Iterator, List, Optional, Tuple

from ..models.entry import EvidenceSpan

NUMBER_WORDS = {
    'null': 0,
    'eins': 1, 'ein': 1, 'eine': 1, 'einer': 1, 'einem': 1,
    'zwei': 2, 'zwo': 2,
    'drei': 3,
    'vier': 4,
    'fünf': 5, 'fuenf': 5,
    'sechs': 6,
    'sieben': 7,
    'acht': 8,
    'neun': 9,
    'zehn': 10,
    'elf': 11,
    'zwölf': 12, 'zwoelf': 12,
    'fünfzehn': 15, 'fuenfzehn': 15,
    'zwanzig': 20,
    'fünfundzwanzig': 25, 'fuenfundzwanzig': 25,
    'dreißig': 30, 'dreissig': 30,
    'vierzig': 40,
    'fünfundvierzig': 45, 'fuenfundvierzig': 45,
    'fünfzig': 50, 'fuenfzig': 50,
    'sechzig': 60,
    'neunzig': 90,
}

# Article-like number words only count where a quantity is expected.
_ARTICLE_WORDS = {'ein', 'eine', 'einer', 'einem'}

_word_alternatives = sorted(NUMBER_WORDS, key=len, reverse=True)
NUMBER_PATTERN = r'(?:\d{1,3}|' + '|'.join(_word_alternatives) + r')'
SCALE_NUMBER_PATTERN = r'(?:\d{1,2}|' + '|'.join(
    w for w in _word_alternatives if w not in _ARTICLE_WORDS and NUMBER_WORDS[w] <= 10
) + r')'

_TOKEN_RE = re.compile(r"\S+")


def to_number(text: str) -> Optional[int]:
    """Parse digits or a German number word."""
    value = text.strip().lower()
    if value.isdigit():
        return int(value)
    return NUMBER_WORDS.get(value)


def fold(text: str) -> str:
    """Lowercase, spell out umlauts and ß, and strip other diacritics."""
    text = (text.lower()
            .replace('ä', 'ae')
            .replace('ö', 'oe')
            .replace('ü', 'ue')
            .replace('ß', 'ss'))
    decomposed = unicodedata.normalize('NFKD', text)
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


class Residual:
    """Transcript with consumed spans blanked out.

    Consumed characters are replaced by spaces, so offsets into the residual
    always equal offsets into the raw transcript.
    """

    def __init__(self, raw: str):
        self.raw = raw
        self._chars = list(raw)

    @property
    def text(self) -> str:
        return "".join(self._chars)

    def consume(self, start: int, end: int) -> None:
        for index in range(max(0, start), min(end, len(self._chars))):
            self._chars[index] = " "

    def finditer(self, pattern: "re.Pattern") -> Iterator["re.Match"]:
        return pattern.finditer(self.text)

    def search(self, pattern: "re.Pattern") -> Optional["re.Match"]:
        return pattern.search(self.text)

    def evidence(self, start: int, end: int) -> EvidenceSpan:
        return EvidenceSpan(text=self.raw[start:end], start=start, end=end)

    def tokens(self) -> List[Tuple[str, int, int]]:
        """Whitespace-separated tokens of the residual, punctuation stripped."""
        result = []
        for match in _TOKEN_RE.finditer(self.text):
            token = match.group(0)
            stripped = token.strip(".,;:!?()\"'")
            if not stripped:
                continue
            offset = token.find(stripped)
            start = match.start() + offset
            result.append((stripped, start, start + len(stripped)))
        return result
