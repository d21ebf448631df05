"""Pipeline services: tracing and draft hand-off."""

from .trace_recorder import TraceRecorder
from .publisher import DraftPublisher

__all__ = ["TraceRecorder", "DraftPublisher"]
