"""Unit tests for TraceRecorder."""

import pytest

from voicediary.models.trace import TraceStatus, TraceStepKind
from voicediary.services.trace_recorder import TraceRecorder


class FakeClock:
    def __init__(self, now=0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.mark.unit
class TestTraceRecorder:
    """Test cases for TraceRecorder."""

    def test_step_ids_and_correlation(self):
        recorder = TraceRecorder("abc", clock=FakeClock())

        first = recorder.record(TraceStepKind.CAPTURE, TraceStatus.STARTED)
        second = recorder.record(TraceStepKind.CAPTURE, TraceStatus.COMPLETED)

        assert (first, second) == ("abc-001", "abc-002")
        assert all(step.correlation_id == "abc" for step in recorder.steps())

    def test_minted_correlation_id(self):
        recorder = TraceRecorder()

        assert recorder.correlation_id
        assert recorder.correlation_id != TraceRecorder().correlation_id

    def test_durations(self):
        """Test only finished steps carry a duration since recorder creation."""
        clock = FakeClock(1000)
        recorder = TraceRecorder("abc", clock=clock)

        recorder.record(TraceStepKind.PARSE, TraceStatus.STARTED)
        clock.now = 1250
        recorder.record(TraceStepKind.PARSE, TraceStatus.COMPLETED)

        started, completed = recorder.steps()
        assert started.duration_ms is None
        assert completed.duration_ms == 250

    def test_payload_is_copied(self):
        recorder = TraceRecorder("abc", clock=FakeClock())
        payload = {"segments": [1, 2]}

        recorder.record(TraceStepKind.CAPTURE, TraceStatus.COMPLETED, payload)
        payload["segments"].append(3)

        assert recorder.steps()[0].payload == {"segments": [1, 2]}

    def test_summary(self):
        clock = FakeClock()
        recorder = TraceRecorder("abc", clock=clock)

        recorder.record(TraceStepKind.CAPTURE, TraceStatus.STARTED)
        clock.now = 40
        recorder.record(TraceStepKind.CAPTURE, TraceStatus.COMPLETED)
        clock.now = 90
        recorder.record(TraceStepKind.TRANSCRIBE, TraceStatus.FAILED, error="timeout")

        summary = recorder.summary()
        assert summary.total_steps == 3
        assert summary.completed == 1
        assert summary.failed == 1
        assert summary.total_duration_ms == 90
        assert summary.last_error == "timeout"

    def test_empty_summary(self):
        summary = TraceRecorder("abc").summary()

        assert summary.total_steps == 0
        assert summary.total_duration_ms == 0
        assert summary.last_error is None

    def test_to_list_uses_camel_case(self):
        recorder = TraceRecorder("abc", clock=FakeClock())
        recorder.record(TraceStepKind.PERSIST, TraceStatus.FAILED, {"topic": "x"}, error="boom")

        data = recorder.to_list()[0]
        assert data["correlationId"] == "abc"
        assert data["step"] == "persist"
        assert data["status"] == "failed"
        assert data["durationMs"] == 0
        assert data["error"] == "boom"
        assert "timestampISO" in data
