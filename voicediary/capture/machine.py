"""Pure capture state machine.

``reduce`` maps the current session and one event onto the next session plus a
list of effects. It never touches timers, recognizers or the clock; the
controller executes the effects and feeds the resulting callbacks back in as
new events.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from ..errors import CaptureStateError, RecognizerFailure, RestartBudgetExceeded, VoiceDiaryError
from ..models.session import CaptureSession, CaptureState
from .stability import StabilityPolicy

TRANSIENT_ERRORS = frozenset({"no-speech", "aborted"})


# Events

@dataclass(frozen=True)
class Start:
    correlation_id: str
    now_ms: int


@dataclass(frozen=True)
class SpeechResult:
    now_ms: int
    text: str


@dataclass(frozen=True)
class SilenceCheck:
    now_ms: int


@dataclass(frozen=True)
class RecognizerEnded:
    now_ms: int


@dataclass(frozen=True)
class RecognizerError:
    now_ms: int
    code: str


@dataclass(frozen=True)
class RestartFired:
    now_ms: int


@dataclass(frozen=True)
class Stop:
    now_ms: int


@dataclass(frozen=True)
class PipelineFinished:
    now_ms: int
    correlation_id: str


@dataclass(frozen=True)
class PipelineFailed:
    now_ms: int
    correlation_id: str
    reason: str


@dataclass(frozen=True)
class Teardown:
    now_ms: int


Event = Union[Start, SpeechResult, SilenceCheck, RecognizerEnded, RecognizerError,
              RestartFired, Stop, PipelineFinished, PipelineFailed, Teardown]


# Effects

@dataclass(frozen=True)
class StartRecognizer:
    pass


@dataclass(frozen=True)
class StopRecognizer:
    pass


@dataclass(frozen=True)
class AbortRecognizer:
    pass


@dataclass(frozen=True)
class ScheduleRestart:
    delay_ms: int


@dataclass(frozen=True)
class ScheduleSilenceCheck:
    interval_ms: int


@dataclass(frozen=True)
class CancelTimers:
    pass


@dataclass(frozen=True)
class BeginPipeline:
    correlation_id: str
    transcript: str


@dataclass(frozen=True)
class ReportFailure:
    reason: str
    error: Optional[VoiceDiaryError] = None
    record_step: bool = True


Effect = Union[StartRecognizer, StopRecognizer, AbortRecognizer, ScheduleRestart,
               ScheduleSilenceCheck, CancelTimers, BeginPipeline, ReportFailure]


@dataclass(frozen=True)
class Transition:
    session: CaptureSession
    effects: Tuple[Effect, ...] = ()


def _unchanged(session: CaptureSession) -> Transition:
    return Transition(session)


def _fail(session: CaptureSession, error: VoiceDiaryError) -> Transition:
    failed = session.evolve(
        state=CaptureState.ERROR_TERMINAL,
        restart_pending=False,
        failure=str(error),
    )
    return Transition(failed, (CancelTimers(), AbortRecognizer(), ReportFailure(str(error), error)))


def _on_recognizer_end(session: CaptureSession, now_ms: int, policy: StabilityPolicy) -> Transition:
    if not session.is_active or session.restart_pending:
        return _unchanged(session)

    recent = [ts for ts in session.restart_timestamps_ms if now_ms - ts < policy.restart_window_ms]
    if len(recent) >= policy.max_restarts:
        return _fail(session.evolve(restart_timestamps_ms=recent),
                     RestartBudgetExceeded(len(recent), policy.restart_window_ms))

    restarted = session.evolve(
        restart_timestamps_ms=recent + [now_ms],
        total_restarts=session.total_restarts + 1,
        restart_pending=True,
    )
    return Transition(restarted, (ScheduleRestart(policy.restart_delay_ms),))


def reduce(session: CaptureSession, event: Event, policy: StabilityPolicy) -> Transition:
    """Compute the next session state and the effects to run.

    Raises:
        CaptureStateError: If a session is started while another one is active
    """
    state = session.state

    if isinstance(event, Start):
        if state not in (CaptureState.IDLE, CaptureState.ERROR_TERMINAL):
            raise CaptureStateError(f"Cannot start capture while {state.value}")
        fresh = CaptureSession(
            state=CaptureState.LISTENING,
            correlation_id=event.correlation_id,
            started_at_ms=event.now_ms,
            last_speech_at_ms=event.now_ms,
        )
        return Transition(fresh, (StartRecognizer(), ScheduleSilenceCheck(policy.silence_check_interval_ms)))

    if isinstance(event, SpeechResult):
        if not session.is_active:
            return _unchanged(session)
        segments = list(session.segments)
        if event.text.strip():
            segments.append(event.text.strip())
        return Transition(session.evolve(
            state=CaptureState.LISTENING,
            segments=segments,
            last_speech_at_ms=event.now_ms,
        ))

    if isinstance(event, SilenceCheck):
        if not session.is_active:
            return _unchanged(session)
        next_session = session
        last_speech = session.last_speech_at_ms
        silent_for = event.now_ms - last_speech if last_speech is not None else 0
        if state is CaptureState.LISTENING and silent_for >= policy.silence_threshold_ms:
            next_session = session.evolve(state=CaptureState.PAUSED_ON_SILENCE)
        return Transition(next_session, (ScheduleSilenceCheck(policy.silence_check_interval_ms),))

    if isinstance(event, RecognizerEnded):
        return _on_recognizer_end(session, event.now_ms, policy)

    if isinstance(event, RecognizerError):
        if not session.is_active:
            return _unchanged(session)
        if event.code in TRANSIENT_ERRORS:
            return _on_recognizer_end(session, event.now_ms, policy)
        return _fail(session, RecognizerFailure(event.code))

    if isinstance(event, RestartFired):
        if not session.is_active or not session.restart_pending:
            return _unchanged(session)
        return Transition(session.evolve(restart_pending=False), (StartRecognizer(),))

    if isinstance(event, Stop):
        if state is CaptureState.ERROR_TERMINAL:
            return Transition(session.evolve(state=CaptureState.IDLE), (CancelTimers(),))
        if not session.is_active:
            return _unchanged(session)
        stopping = session.evolve(
            state=CaptureState.STOPPING,
            restart_pending=False,
            pipeline_started=True,
        )
        return Transition(stopping, (
            CancelTimers(),
            StopRecognizer(),
            BeginPipeline(session.correlation_id, session.transcript),
        ))

    if isinstance(event, PipelineFinished):
        if state is not CaptureState.STOPPING or event.correlation_id != session.correlation_id:
            return _unchanged(session)
        return Transition(session.evolve(state=CaptureState.IDLE))

    if isinstance(event, PipelineFailed):
        if state is not CaptureState.STOPPING or event.correlation_id != session.correlation_id:
            return _unchanged(session)
        failed = session.evolve(state=CaptureState.ERROR_TERMINAL, failure=event.reason)
        return Transition(failed, (ReportFailure(event.reason, record_step=False),))

    if isinstance(event, Teardown):
        effects = [CancelTimers()]
        if session.is_active:
            effects.append(AbortRecognizer())
        return Transition(CaptureSession(), tuple(effects))

    raise TypeError(f"Unknown capture event: {event!r}")
