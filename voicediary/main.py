"""Main application entry point for VoiceDiary."""

import sys
import json
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pubsub import pub

from voicediary.capture import CaptureController, ManualScheduler, ScriptedRecognizer, platform_warning, policy_for
from voicediary.errors import VoiceDiaryError
from voicediary.models.events import ENTRY_DRAFT_TOPIC, EntryDraftEvent
from voicediary.parsing import ParserEngine
from voicediary.services import DraftPublisher
from voicediary.ui import DebugView

from . import __version__
from .config import VoiceDiaryConfig

logger = logging.getLogger(__name__)


class Server:
    """Wires configuration, parser and capture controller for one offline run."""

    def __init__(self, config_path: str, log_level: Optional[str] = None):
        self.config = VoiceDiaryConfig(config_path)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.drafts = []

    def init(self) -> None:
        logger.info("Initializing services...")

        self.platform = self.config.get_platform()
        self.policy = policy_for(self.platform, **self.config.get_stability_overrides())
        self.parser = ParserEngine(
            known_medications=self.config.get_known_medications(),
            default_pain=self.config.get_default_pain(),
            policy=self.config.get_review_policy(),
        )
        self.publisher = DraftPublisher()
        pub.subscribe(self._on_draft, ENTRY_DRAFT_TOPIC)

        if self.platform is not None:
            warning = platform_warning(self.platform)
            if warning:
                logger.warning(warning)

    def _on_draft(self, event: EntryDraftEvent) -> None:
        logger.info(f"Draft ready: {event.draft_id}")
        self.drafts.append(event)

    async def run(self, text: str, audio: Optional[bytes] = None) -> Dict[str, Any]:
        """Replay a transcript through a full capture session."""
        recognizer = ScriptedRecognizer(segment.strip() for segment in text.split("|"))
        controller = CaptureController(
            recognizer=recognizer,
            scheduler=ManualScheduler(),
            parser=self.parser,
            publisher=self.publisher,
            stt_config=self.config.get_stt_config(),
            platform=self.platform,
            policy=self.policy,
        )
        recognizer.controller = controller
        try:
            controller.start()
            await controller.stop(audio)
            return controller.debug_snapshot()
        finally:
            controller.close()

    def cleanup(self) -> None:
        pub.unsubscribe(self._on_draft, ENTRY_DRAFT_TOPIC)


def setup_logging(config, level: str = "INFO") -> None:
    """Route log records to the configured file and, optionally, stderr.

    stdout is left alone so ``--json`` output can be piped.
    """
    log_path = Path(config.get('logging.file_path', 'logs/voicediary.log'))
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_path, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers = [file_handler]

    if config.get('logging.console_output', True):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter('%(levelname)s %(name)s: %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info(f"VoiceDiary {__version__} starting, level {level}, log file {log_path}")
    logger.info("=" * 50)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="voicediary",
        description="Replay a spoken diary note through capture, transcription and parsing",
        epilog="Recognizer segments are separated by '|', e.g. --text 'gestern Abend | 7 von 10'",
    )
    parser.add_argument("--config", default="voicediary.yaml",
                        help="settings file (default: voicediary.yaml)")
    parser.add_argument("--text", required=True,
                        help="what the platform recognizer heard")
    parser.add_argument("--audio",
                        help="recording to send to the configured STT provider")
    parser.add_argument("--json", action="store_true",
                        help="print the debug snapshot as JSON")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="override logging.level from the settings file")
    parser.add_argument("--version", action="version", version=f"VoiceDiary v{__version__}")
    return parser


def main() -> None:
    """Command line entry point."""
    args = build_arg_parser().parse_args()

    try:
        server = Server(args.config, args.log_level)
        server.init()
        audio = Path(args.audio).read_bytes() if args.audio else None
        try:
            snapshot = asyncio.run(server.run(args.text, audio))
        finally:
            server.cleanup()
    except KeyboardInterrupt:
        print("\nGoodbye!")
        return
    except (VoiceDiaryError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.error(f"Run failed: {e}")
        sys.exit(1)

    if args.json:
        print(json.dumps(snapshot, indent=2, ensure_ascii=False))
    else:
        DebugView().render(snapshot)


if __name__ == "__main__":
    main()
