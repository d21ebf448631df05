"""Unit tests for the rich debug view."""

import asyncio

import pytest
from rich.console import Console

from voicediary.capture import CaptureController, ScriptedRecognizer
from voicediary.ui import DebugView


@pytest.fixture
def console():
    return Console(record=True, width=160)


@pytest.mark.unit
class TestDebugView:
    """Test cases for DebugView."""

    def test_render_draft(self, console, scheduler, parser):
        recognizer = ScriptedRecognizer(["eine halbe Tablette Sumatriptan, Stärke 6"])
        controller = CaptureController(recognizer, scheduler, parser=parser)
        recognizer.controller = controller
        controller.start()
        asyncio.run(controller.stop())

        DebugView(console).render(controller.debug_snapshot())

        output = console.export_text()
        assert "Entwurf" in output
        assert "Sumatriptan" in output
        assert "med-suma" in output
        assert "Trace" in output
        assert "persist" in output

    def test_render_without_draft(self, console):
        snapshot = {
            "session": {"correlationId": None, "state": "idle", "restartCount": 0},
            "policy": "standard",
            "recommendedMode": "standard",
            "trace": [],
            "traceSummary": None,
            "draft": None,
        }

        DebugView(console).render(snapshot)

        assert "No draft produced" in console.export_text()

    def test_trace_table_shows_errors(self, console):
        steps = [{
            "id": "abc-001", "step": "transcribe", "correlationId": "abc",
            "timestampISO": "2024-03-15T18:00:00+00:00", "status": "failed",
            "payload": {}, "durationMs": 12, "error": "request timed out",
        }]

        console.print(DebugView(console).trace_table(steps))

        output = console.export_text()
        assert "request timed out" in output
        assert "12" in output
