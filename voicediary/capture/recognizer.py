"""Speech recognizer interface driven by the capture controller."""

from abc import ABC, abstractmethod
from typing import Iterable, List


class SpeechRecognizer(ABC):
    """Platform speech recognizer.

    Implementations report back through the controller's ``on_result``,
    ``on_end`` and ``on_error`` callbacks, possibly synchronously from inside
    ``start``/``stop``/``abort``.
    """

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop gracefully, delivering any pending final result."""
        pass

    @abstractmethod
    def abort(self) -> None:
        """Stop immediately and drop pending results."""
        pass


class ScriptedRecognizer(SpeechRecognizer):
    """Replays fixed transcript segments instead of listening.

    Used for offline runs from the command line and in tests. With
    ``end_on_start`` the recognizer reports an end right after every start,
    like an unstable mobile browser does.
    """

    def __init__(self, segments: Iterable[str] = (), end_on_start: bool = False):
        self.segments: List[str] = list(segments)
        self.end_on_start = end_on_start
        self.controller = None
        self.start_calls = 0
        self.stop_calls = 0
        self.abort_calls = 0

    def start(self) -> None:
        self.start_calls += 1
        while self.segments:
            self.controller.on_result(self.segments.pop(0), 0.9)
        if self.end_on_start:
            self.controller.on_end()

    def stop(self) -> None:
        self.stop_calls += 1

    def abort(self) -> None:
        self.abort_calls += 1
