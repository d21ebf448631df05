"""Capture controller: runs the capture state machine against real collaborators."""

import logging
import uuid
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional, Tuple

from ..errors import CaptureStateError, ProviderUnavailable, RestartBudgetExceeded
from ..models.events import CaptureFailedEvent, EntryDraftEvent
from ..models.entry import ParseResult
from ..models.session import CaptureSession, CaptureState
from ..models.trace import TraceStatus, TraceStepKind
from ..parsing.engine import ParserEngine
from ..services.publisher import DraftPublisher
from ..services.trace_recorder import TraceRecorder
from ..transcription.adapter import SttConfig, transcribe
from . import machine
from .recognizer import SpeechRecognizer
from .scheduler import Scheduler, TimerHandle
from .stability import CaptureMode, PlatformFingerprint, StabilityPolicy, policy_for, recommended_capture_mode

logger = logging.getLogger(__name__)


class CaptureController:
    """Owns one capture session at a time.

    Recognizer callbacks and timer callbacks are turned into machine events
    and processed one at a time, so a recognizer that calls back
    synchronously from ``start`` or ``stop`` never re-enters the reducer.
    """

    def __init__(self, recognizer: SpeechRecognizer, scheduler: Scheduler,
                 parser: Optional[ParserEngine] = None,
                 publisher: Optional[DraftPublisher] = None,
                 stt_config: Optional[SttConfig] = None,
                 platform: Optional[PlatformFingerprint] = None,
                 policy: Optional[StabilityPolicy] = None,
                 id_factory: Optional[Callable[[], str]] = None):
        """Initialize capture controller.

        Args:
            recognizer: Platform speech recognizer
            scheduler: Clock and timers
            parser: Parser engine for finished transcripts
            publisher: Draft and failure publisher
            stt_config: Transcription adapter configuration
            platform: Runtime platform, selects the stability policy
            policy: Explicit stability policy, overrides the platform default
            id_factory: Correlation ID generator
        """
        self.recognizer = recognizer
        self.scheduler = scheduler
        self.parser = parser or ParserEngine()
        self.publisher = publisher or DraftPublisher()
        self.stt_config = stt_config or SttConfig()
        self.platform = platform
        self.policy = policy or policy_for(platform)
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)

        self._session = CaptureSession()
        self._trace: Optional[TraceRecorder] = None
        self._queue: Deque[machine.Event] = deque()
        self._draining = False
        self._timers: Dict[str, TimerHandle] = {}
        self._pending_pipeline: Optional[Tuple[str, str]] = None
        self._last_result: Optional[ParseResult] = None

        logger.info(f"CaptureController initialized with policy: {self.policy.name}")

    @property
    def session(self) -> CaptureSession:
        return self._session

    @property
    def state(self) -> CaptureState:
        return self._session.state

    @property
    def trace(self) -> Optional[TraceRecorder]:
        return self._trace

    def start(self) -> str:
        """Begin a new capture session.

        Returns:
            Correlation ID of the new session

        Raises:
            CaptureStateError: If a session is already active
        """
        if self._session.state not in (CaptureState.IDLE, CaptureState.ERROR_TERMINAL):
            raise CaptureStateError(f"Cannot start capture while {self._session.state.value}")

        correlation_id = self._id_factory()
        now = self.scheduler.now_ms()
        self._last_result = None

        self._trace = TraceRecorder(correlation_id, clock=self.scheduler.now_ms)
        self._trace.record(TraceStepKind.CAPTURE, TraceStatus.STARTED, {
            "policy": self.policy.name,
            "maxRestarts": self.policy.max_restarts,
        })
        logger.info(f"Starting capture session {correlation_id}")
        self._dispatch(machine.Start(correlation_id, now))
        return correlation_id

    def on_result(self, text: str, confidence: Optional[float] = None) -> None:
        if confidence is not None:
            logger.debug(f"Recognizer segment (confidence {confidence:.2f}): '{text[:50]}'")
        self._dispatch(machine.SpeechResult(self.scheduler.now_ms(), text))

    def on_end(self) -> None:
        self._dispatch(machine.RecognizerEnded(self.scheduler.now_ms()))

    def on_error(self, code: str) -> None:
        logger.debug(f"Recognizer error: {code}")
        self._dispatch(machine.RecognizerError(self.scheduler.now_ms(), code))

    async def stop(self, audio: Optional[bytes] = None) -> Optional[ParseResult]:
        """Stop capturing and run transcription, parsing and hand-off.

        Args:
            audio: Recorded audio for a configured transcription provider

        Returns:
            The parsed draft, or None when there was nothing to finalize

        Raises:
            ProviderUnavailable: If the configured provider fails
        """
        self._dispatch(machine.Stop(self.scheduler.now_ms()))
        job, self._pending_pipeline = self._pending_pipeline, None
        if job is None:
            logger.debug(f"Stop in state {self.state.value} without a pipeline to run")
            return None

        correlation_id, transcript = job
        return await self._run_pipeline(correlation_id, transcript, audio, self._trace)

    def close(self) -> None:
        """Tear down the current session and cancel all timers."""
        logger.info(f"Tearing down capture session {self._session.correlation_id}")
        self._pending_pipeline = None
        self._dispatch(machine.Teardown(self.scheduler.now_ms()))

    def debug_snapshot(self) -> Dict[str, Any]:
        """JSON-serializable view of session state and trace."""
        trace = self._trace
        return {
            "session": self._session.to_dict(),
            "policy": self.policy.name,
            "recommendedMode": self._recommended_mode().value,
            "trace": trace.to_list() if trace else [],
            "traceSummary": trace.summary().to_dict() if trace else None,
            "draft": self._last_result.debug_snapshot() if self._last_result else None,
        }

    async def _run_pipeline(self, correlation_id: str, transcript: str,
                            audio: Optional[bytes], trace: TraceRecorder) -> Optional[ParseResult]:
        trace.record(TraceStepKind.CAPTURE, TraceStatus.COMPLETED, {
            "segments": len(self._session.segments),
            "restarts": self._session.total_restarts,
            "transcriptLength": len(transcript),
        })

        trace.record(TraceStepKind.TRANSCRIBE, TraceStatus.STARTED, {
            "provider": self.stt_config.provider.value,
            "audioBytes": len(audio) if audio else 0,
        })
        try:
            transcription = await transcribe(audio, self.stt_config, fallback_transcript=transcript)
        except ProviderUnavailable as e:
            trace.record(TraceStepKind.TRANSCRIBE, TraceStatus.FAILED, error=str(e))
            self._dispatch(machine.PipelineFailed(self.scheduler.now_ms(), correlation_id, str(e)))
            raise

        if self._session.correlation_id != correlation_id:
            logger.info(f"Discarding stale transcription for session {correlation_id}")
            return None

        trace.record(TraceStepKind.TRANSCRIBE, TraceStatus.COMPLETED, {
            "source": transcription.source,
            "confidence": transcription.confidence,
        })

        trace.record(TraceStepKind.PARSE, TraceStatus.STARTED)
        result = self.parser.parse(transcription.transcript, stt_confidence=transcription.confidence)
        trace.record(TraceStepKind.PARSE, TraceStatus.COMPLETED, {
            "entryType": result.entry_type.value,
            "confidence": result.confidence,
            "needsReview": result.needs_review,
            "reviewReasons": list(result.review_reasons),
        })

        trace.record(TraceStepKind.PERSIST, TraceStatus.STARTED)
        event = EntryDraftEvent(
            draft_id=correlation_id,
            transcription=transcription,
            result=result,
            trace=trace.steps(),
            summary=trace.summary(),
        )
        try:
            self.publisher.publish_draft(event)
        except Exception as e:
            trace.record(TraceStepKind.PERSIST, TraceStatus.FAILED, error=str(e))
            self._dispatch(machine.PipelineFailed(self.scheduler.now_ms(), correlation_id, str(e)))
            raise
        trace.record(TraceStepKind.PERSIST, TraceStatus.COMPLETED)

        self._last_result = result
        self._dispatch(machine.PipelineFinished(self.scheduler.now_ms(), correlation_id))
        logger.info(f"Capture session {correlation_id} finished: {trace.summary().to_dict()}")
        return result

    def _dispatch(self, event: machine.Event) -> None:
        self._queue.append(event)
        if self._draining:
            return
        self._draining = True
        try:
            while self._queue:
                transition = machine.reduce(self._session, self._queue.popleft(), self.policy)
                self._session = transition.session
                for effect in transition.effects:
                    self._execute(effect)
        finally:
            self._queue.clear()
            self._draining = False

    def _execute(self, effect: machine.Effect) -> None:
        if isinstance(effect, machine.StartRecognizer):
            self.recognizer.start()
        elif isinstance(effect, machine.StopRecognizer):
            self.recognizer.stop()
        elif isinstance(effect, machine.AbortRecognizer):
            self.recognizer.abort()
        elif isinstance(effect, machine.ScheduleRestart):
            logger.info(f"Recognizer ended, restart {self._session.restart_count}/"
                        f"{self.policy.max_restarts} in {effect.delay_ms} ms")
            self._schedule("restart", effect.delay_ms, machine.RestartFired)
        elif isinstance(effect, machine.ScheduleSilenceCheck):
            self._schedule("silence", effect.interval_ms, machine.SilenceCheck)
        elif isinstance(effect, machine.CancelTimers):
            self._cancel_timers()
        elif isinstance(effect, machine.BeginPipeline):
            self._pending_pipeline = (effect.correlation_id, effect.transcript)
        elif isinstance(effect, machine.ReportFailure):
            self._report_failure(effect)
        else:
            raise TypeError(f"Unknown capture effect: {effect!r}")

    def _schedule(self, name: str, delay_ms: int, event_type: Callable[[int], machine.Event]) -> None:
        previous = self._timers.pop(name, None)
        if previous is not None:
            previous.cancel()
        correlation_id = self._session.correlation_id

        def fire() -> None:
            self._timers.pop(name, None)
            if self._session.correlation_id != correlation_id:
                logger.debug(f"Ignoring stale {name} timer for session {correlation_id}")
                return
            self._dispatch(event_type(self.scheduler.now_ms()))

        self._timers[name] = self.scheduler.call_later(delay_ms, fire)

    def _cancel_timers(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    def _recommended_mode(self) -> CaptureMode:
        mode = recommended_capture_mode(self.platform) if self.platform else CaptureMode.STANDARD
        failed = self._session.state is CaptureState.ERROR_TERMINAL
        if mode is CaptureMode.STANDARD and failed:
            return CaptureMode.HOLD_TO_TALK
        return mode

    def _report_failure(self, effect: machine.ReportFailure) -> None:
        trace = self._trace
        if trace is not None and effect.record_step:
            payload = {"restarts": self._session.restart_count}
            if isinstance(effect.error, RestartBudgetExceeded):
                payload["windowMs"] = effect.error.window_ms
            trace.record(TraceStepKind.ERROR, TraceStatus.FAILED, payload, error=effect.reason)

        logger.error(f"Capture session {self._session.correlation_id} failed: {effect.reason}")
        self.publisher.publish_failure(CaptureFailedEvent(
            correlation_id=self._session.correlation_id,
            reason=effect.reason,
            recommended_mode=self._recommended_mode().value,
            trace=trace.steps() if trace else (),
        ))
