"""German transcript parsing into structured diary entries."""

from .engine import ParserEngine, classify
from .medications import KnownMedication, MedicationLexicon
from .noise import is_noise, noise_reason
from .review import ReviewPolicy

__all__ = [
    "ParserEngine",
    "classify",
    "KnownMedication",
    "MedicationLexicon",
    "is_noise",
    "noise_reason",
    "ReviewPolicy",
]
