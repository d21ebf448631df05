"""Review thresholds shared by the parser stages."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ReviewPolicy:
    """Confidence thresholds that decide when a field needs human review."""
    field_review_threshold: float = 0.7
    medication_match_threshold: float = 0.82
    medication_context_threshold: float = 0.78
    ambiguity_delta: float = 0.08
    split_token_threshold: float = 0.85

    def __post_init__(self):
        for name in ("field_review_threshold", "medication_match_threshold",
                     "medication_context_threshold", "split_token_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.ambiguity_delta < 0:
            raise ValueError("ambiguity_delta must not be negative")

    def needs_review(self, confidence: float, flagged: bool = False) -> bool:
        return flagged or confidence < self.field_review_threshold
