"""Pipeline progress callbacks for monitoring and real-time reporting."""

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class PipelineCallback(Protocol):
    """Protocol for generation pipeline callbacks.

    Implement this protocol to hook into stage transitions.
    """

    def on_stage_enter(self, stage: str) -> None:
        """Called when a transient stage (scripting, rendering, baking) starts."""
        ...

    def on_stage_complete(self, stage: str) -> None:
        """Called when the pipeline settles on a stable stage after success."""
        ...

    def on_error(self, stage: str, error: str) -> None:
        """Called when a stage fails and the pipeline rolls back."""
        ...


class LoggingCallback:
    """Lightweight callback that logs progress to the standard logger."""

    def on_stage_enter(self, stage: str) -> None:
        logger.debug("→ stage: %s", stage)

    def on_stage_complete(self, stage: str) -> None:
        logger.info("Pipeline settled at '%s'", stage)

    def on_error(self, stage: str, error: str) -> None:
        logger.error("Pipeline error in '%s': %s", stage, error)


class RichProgressCallback:
    """Progress callback that renders a Rich spinner for the running stage."""

    _STAGE_LABELS: dict[str, str] = {
        "scripting": "Scripting...",
        "rendering": "Rendering...",
        "baking": "Baking clean copy...",
        "cover": "Rendering cover...",
    }

    _DONE_LABELS: dict[str, str] = {
        "scripted": "Script ready",
        "finished": "Master image ready",
        "exported": "Export image ready",
        "cover": "Cover ready",
    }

    def __init__(self, console=None):
        """
        Args:
            console: Rich Console instance. Creates one if not provided.
        """
        self._console = console
        self._progress = None
        self._task_id = None

    def start(self):
        """Start the progress display. Call before running the pipeline."""
        from rich.console import Console
        from rich.progress import Progress, SpinnerColumn, TextColumn

        console = self._console or Console()
        self._progress = Progress(
            SpinnerColumn("dots"),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        )
        self._progress.start()
        self._task_id = self._progress.add_task("[dim]Waiting...[/]", total=None)

    def stop(self):
        """Stop the progress display."""
        if self._progress:
            self._progress.stop()
            self._progress = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def on_stage_enter(self, stage: str) -> None:
        if not self._progress:
            return
        label = self._STAGE_LABELS.get(stage, stage)
        self._progress.update(self._task_id, description=f"[dim]{label}[/]")

    def on_stage_complete(self, stage: str) -> None:
        if not self._progress:
            return
        label = self._DONE_LABELS.get(stage, stage)
        self._progress.update(self._task_id, description=f"[green]{label}[/]")

    def on_error(self, stage: str, error: str) -> None:
        if not self._progress:
            return
        self._progress.update(
            self._task_id,
            description=f"[red]Error ({stage}): {error[:80]}[/]",
        )
