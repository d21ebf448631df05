"""Developer debug view of a capture session rendered with rich."""

import logging
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

logger = logging.getLogger(__name__)


def _yes_no(flag: bool) -> str:
    return "[bold red]ja[/bold red]" if flag else "[green]nein[/green]"


class DebugView:
    """Renders the JSON debug snapshot of a capture session."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def render(self, snapshot: Dict[str, Any]) -> None:
        draft = snapshot.get("draft")
        if draft:
            self.console.print(self.draft_panel(draft))
            if draft.get("medications"):
                self.console.print(self.medication_table(draft["medications"]))
        else:
            self.console.print(Panel("No draft produced", title="Draft", style="yellow"))

        session = snapshot.get("session", {})
        self.console.print(
            f"Session [bold]{session.get('correlationId')}[/bold]: state {session.get('state')}, "
            f"restarts {session.get('restartCount')}, policy {snapshot.get('policy')}, "
            f"mode {snapshot.get('recommendedMode')}"
        )
        self.console.print(self.trace_table(snapshot.get("trace", [])))

    def draft_panel(self, draft: Dict[str, Any]) -> Panel:
        pain = draft["painIntensity"]
        time = draft["time"]
        lines = [
            f"Typ: [bold]{draft['entryType']}[/bold]",
            f"Schmerz: {pain['value']}/10 (Konfidenz {pain['confidence']:.2f}"
            + (", Beschreibung" if pain["fromDescriptor"] else "") + ")",
            f"Zeit: {time['displayText']} (Konfidenz {time['confidence']:.2f})",
            f"Notiz: {draft['note'] or '-'}",
            f"Gesamtkonfidenz: {draft['confidence']:.2f}",
            f"Prüfen: {_yes_no(draft['needsReview'])}",
        ]
        if draft.get("reviewReasons"):
            lines.append(f"Gründe: {', '.join(draft['reviewReasons'])}")
        style = "yellow" if draft["needsReview"] else "green"
        return Panel("\n".join(lines), title=f"Entwurf: \"{draft['rawText']}\"", border_style=style)

    def medication_table(self, medications: List[Dict[str, Any]]) -> Table:
        table = Table(title="Medikamente")
        table.add_column("Name")
        table.add_column("ID")
        table.add_column("Dosis (Viertel)")
        table.add_column("Stärke")
        table.add_column("Konfidenz", justify="right")
        table.add_column("Prüfen")
        for med in medications:
            table.add_row(
                med["name"],
                med.get("matchedUserMedicationId") or "-",
                str(med["doseQuarters"]) if med.get("doseQuarters") else "-",
                med.get("strength") or "-",
                f"{med['confidence']:.2f}",
                _yes_no(med["needsReview"]),
            )
        return table

    def trace_table(self, steps: List[Dict[str, Any]]) -> Table:
        table = Table(title="Trace")
        table.add_column("Step")
        table.add_column("Status")
        table.add_column("Duration (ms)", justify="right")
        table.add_column("Details")
        for step in steps:
            status = step["status"]
            style = {"failed": "red", "completed": "green"}.get(status, "white")
            table.add_row(
                step["step"],
                f"[{style}]{status}[/{style}]",
                str(step.get("durationMs", "")),
                step.get("error") or ", ".join(f"{k}={v}" for k, v in step.get("payload", {}).items()),
            )
        return table
