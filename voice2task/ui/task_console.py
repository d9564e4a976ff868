"""Terminal task sink rendering created tasks with rich."""

import logging
from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..models.speech import TranscriptResult
from ..services.voice_task_pipeline import PipelineOutcome

logger = logging.getLogger(__name__)


class ConsoleTaskSink:
    """Task sink that prints each created task and keeps the list."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.tasks: List[str] = []

    def __call__(self, title: str) -> None:
        self.tasks.append(title)
        self.console.print(Text.assemble(("  + ", "green"), title))
        logger.debug(f"Task created: {title}")

    def show_transcript(self, result: TranscriptResult) -> None:
        if result.is_final:
            self.console.print(Text.assemble(("Heard: ", "bold"), result.transcript or "(nothing)"))
        else:
            self.console.print(Text(f"  ... {result.transcript}", style="dim"))

    def show_outcome(self, outcome: PipelineOutcome) -> None:
        """Print a summary table for one pipeline outcome."""
        if outcome.parse_result is None or not outcome.parse_result.tasks:
            self.console.print(f"[yellow]{outcome.message}[/yellow]")
            return

        table = Table(title=outcome.message)
        table.add_column("#", justify="right", style="cyan")
        table.add_column("Task", style="white")
        for index, task in enumerate(outcome.parse_result.tasks, start=1):
            table.add_row(str(index), task)
        self.console.print(table)
        self.console.print(
            f"Strategy: [bold]{outcome.parse_result.strategy.value}[/bold]  "
            f"Confidence: [bold]{outcome.parse_result.confidence:.2f}[/bold]"
        )

    def show_error(self, message: str) -> None:
        self.console.print(f"[red]{message}[/red]")
