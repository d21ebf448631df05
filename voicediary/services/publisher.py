"""Draft hand-off publisher for pub/sub event publishing."""

import logging
from pubsub import pub

from ..models.events import (
    CAPTURE_FAILED_TOPIC,
    ENTRY_DRAFT_TOPIC,
    CaptureFailedEvent,
    EntryDraftEvent,
)

logger = logging.getLogger(__name__)


class DraftPublisher:
    """Publishes entry drafts and capture failures using pubsub.pub."""

    def __init__(self, draft_topic: str = ENTRY_DRAFT_TOPIC,
                 failure_topic: str = CAPTURE_FAILED_TOPIC):
        """Initialize draft publisher.

        Args:
            draft_topic: Pub/sub topic for parsed drafts
            failure_topic: Pub/sub topic for failed capture sessions
        """
        self.draft_topic = draft_topic
        self.failure_topic = failure_topic
        logger.info(f"DraftPublisher initialized with topics: {draft_topic}, {failure_topic}")

    def publish_draft(self, event: EntryDraftEvent) -> None:
        """Publish a parsed draft. Listener exceptions propagate to the caller.

        Args:
            event: EntryDraftEvent to publish
        """
        pub.sendMessage(self.draft_topic, event=event)
        logger.debug(f"Published draft {event.draft_id} ({event.result.entry_type.value})")

    def publish_failure(self, event: CaptureFailedEvent) -> None:
        """Publish a failed capture session.

        Args:
            event: CaptureFailedEvent to publish
        """
        pub.sendMessage(self.failure_topic, event=event)
        logger.debug(f"Published capture failure for {event.correlation_id}: {event.reason}")
