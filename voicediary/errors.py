"""Exception hierarchy for the voice entry pipeline."""

from typing import Optional


class VoiceDiaryError(Exception):
    """Base class for all voicediary errors."""


class ProviderUnavailable(VoiceDiaryError):
    """A configured transcription provider failed or is not implemented."""

    def __init__(self, provider: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(f"Transcription provider '{provider}' unavailable: {reason}")
        self.provider = provider
        self.reason = reason
        self.cause = cause


class CaptureStateError(VoiceDiaryError):
    """An operation was requested in a capture state that does not allow it."""


class RestartBudgetExceeded(VoiceDiaryError):
    """The recognizer ended more often than the stability policy allows."""

    def __init__(self, restarts: int, window_ms: int):
        super().__init__(
            f"Recognizer restart budget exhausted ({restarts} restarts within {window_ms} ms)"
        )
        self.restarts = restarts
        self.window_ms = window_ms


class RecognizerFailure(VoiceDiaryError):
    """The speech recognizer reported a non-transient error."""

    def __init__(self, code: str, message: str = ""):
        super().__init__(message or f"Speech recognizer error: {code}")
        self.code = code
