"""Speech capture: stability policy, state machine and controller."""

from .stability import (
    CaptureMode,
    PlatformFingerprint,
    StabilityPolicy,
    STANDARD_POLICY,
    UNSTABLE_PLATFORM_POLICY,
    is_known_unstable_platform,
    recommended_capture_mode,
    policy_for,
    platform_warning,
)
from .machine import reduce, Transition
from .scheduler import Scheduler, AsyncioScheduler, ManualScheduler
from .recognizer import SpeechRecognizer, ScriptedRecognizer
from .controller import CaptureController

__all__ = [
    "CaptureMode",
    "PlatformFingerprint",
    "StabilityPolicy",
    "STANDARD_POLICY",
    "UNSTABLE_PLATFORM_POLICY",
    "is_known_unstable_platform",
    "recommended_capture_mode",
    "policy_for",
    "platform_warning",
    "reduce",
    "Transition",
    "Scheduler",
    "AsyncioScheduler",
    "ManualScheduler",
    "SpeechRecognizer",
    "ScriptedRecognizer",
    "CaptureController",
]
