"""Pytest configuration and fixtures for VoiceDiary tests."""

import pytest
import logging
import datetime as dt

from pubsub import pub

from voicediary.capture import ManualScheduler, ScriptedRecognizer, STANDARD_POLICY
from voicediary.parsing import KnownMedication, ParserEngine


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without I/O")
    config.addinivalue_line("markers", "integration: tests spanning several components")


@pytest.fixture(autouse=True)
def clean_pubsub():
    """Drop listeners registered by a test."""
    yield
    pub.unsubAll()


@pytest.fixture
def reference_time():
    """Fixed moment an entry is spoken: Friday 15 March 2024, 18:00."""
    return dt.datetime(2024, 3, 15, 18, 0)


@pytest.fixture
def known_medications():
    return [
        KnownMedication(name="Sumatriptan", id="med-suma"),
        KnownMedication(name="Ibuprofen 400 mg", id="med-ibu", active_ingredient="Ibuprofen"),
    ]


@pytest.fixture
def parser(known_medications):
    return ParserEngine(known_medications=known_medications)


@pytest.fixture
def scheduler():
    return ManualScheduler(start_ms=1000)


@pytest.fixture
def recognizer():
    return ScriptedRecognizer()


@pytest.fixture
def unstable_policy():
    """Tight restart budget used to exercise the unstable platform path."""
    return STANDARD_POLICY.with_overrides(max_restarts=3, restart_delay_ms=400)


@pytest.fixture
def collected_events():
    """Subscribe list collectors to the draft and failure topics."""
    from voicediary.models.events import CAPTURE_FAILED_TOPIC, ENTRY_DRAFT_TOPIC

    drafts = []
    failures = []

    def on_draft(event):
        drafts.append(event)

    def on_failure(event):
        failures.append(event)

    pub.subscribe(on_draft, ENTRY_DRAFT_TOPIC)
    pub.subscribe(on_failure, CAPTURE_FAILED_TOPIC)
    yield {"drafts": drafts, "failures": failures, "listeners": (on_draft, on_failure)}
