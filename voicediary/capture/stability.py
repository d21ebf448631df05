"""Platform stability policy for continuous speech capture.

iOS Safari and installed iOS web apps end the recognizer on their own every
few seconds. Those platforms get a tighter restart budget and a recommendation
to use hold-to-talk instead of continuous listening.
"""

import logging
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Optional, Set

logger = logging.getLogger(__name__)


class CaptureMode(str, Enum):
    STANDARD = "standard"
    HOLD_TO_TALK = "hold-to-talk"
    DICTATION_ONLY = "dictation-only"


@dataclass(frozen=True)
class PlatformFingerprint:
    """Runtime environment as reported by the embedding application."""
    os: str = "unknown"
    browser_family: str = "unknown"
    standalone: bool = False
    speech_supported: bool = True

    @property
    def is_ios(self) -> bool:
        return self.os.lower() in ("ios", "ipados")

    @property
    def is_safari(self) -> bool:
        return self.browser_family.lower() == "safari"


@dataclass(frozen=True)
class StabilityPolicy:
    """Restart budget and silence detection timing for one capture session."""
    name: str
    max_restarts: int
    restart_window_ms: int
    restart_delay_ms: int
    silence_threshold_ms: int
    silence_check_interval_ms: int

    def __post_init__(self):
        if self.max_restarts < 0:
            raise ValueError("max_restarts must not be negative")
        for field_name in ("restart_window_ms", "silence_threshold_ms", "silence_check_interval_ms"):
            if getattr(self, field_name) <= 0:
                raise ValueError(f"{field_name} must be positive")
        if self.restart_delay_ms < 0:
            raise ValueError("restart_delay_ms must not be negative")

    def with_overrides(self, **overrides: Any) -> "StabilityPolicy":
        if not overrides:
            return self
        logger.debug(f"Applying capture policy overrides to '{self.name}': {overrides}")
        return replace(self, **overrides)

    @classmethod
    def field_names(cls) -> Set[str]:
        return {f.name for f in fields(cls) if f.name != "name"}


UNSTABLE_PLATFORM_POLICY = StabilityPolicy(
    name="unstable-platform",
    max_restarts=3,
    restart_window_ms=20000,
    restart_delay_ms=400,
    silence_threshold_ms=1500,
    silence_check_interval_ms=500,
)

STANDARD_POLICY = StabilityPolicy(
    name="standard",
    max_restarts=2,
    restart_window_ms=20000,
    restart_delay_ms=250,
    silence_threshold_ms=3000,
    silence_check_interval_ms=500,
)


def is_known_unstable_platform(fingerprint: PlatformFingerprint) -> bool:
    """iOS Safari, or any installed web app on iOS."""
    if not fingerprint.is_ios:
        return False
    return fingerprint.is_safari or fingerprint.standalone


def recommended_capture_mode(fingerprint: PlatformFingerprint) -> CaptureMode:
    if not fingerprint.speech_supported:
        return CaptureMode.DICTATION_ONLY
    if is_known_unstable_platform(fingerprint):
        return CaptureMode.HOLD_TO_TALK
    return CaptureMode.STANDARD


def policy_for(fingerprint: Optional[PlatformFingerprint], **overrides: Any) -> StabilityPolicy:
    """Select the capture policy for a platform, with optional field overrides."""
    if fingerprint is not None and is_known_unstable_platform(fingerprint):
        policy = UNSTABLE_PLATFORM_POLICY
    else:
        policy = STANDARD_POLICY
    return policy.with_overrides(**overrides)


def platform_warning(fingerprint: PlatformFingerprint) -> Optional[str]:
    """User-facing hint for platforms with unreliable speech recognition."""
    if not is_known_unstable_platform(fingerprint):
        return None
    if fingerprint.standalone:
        return ("Safari PWA: Spracherkennung kann instabil sein. "
                "Nutze den Diktier-Modus für beste Ergebnisse.")
    return 'iOS Safari: Bei Problemen nutze "Gedrückt halten" oder den Diktier-Modus.'
