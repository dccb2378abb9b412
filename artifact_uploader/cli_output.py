"""Console rendering helpers for the artifact-upload CLI."""
from __future__ import annotations

from typing import Any, Dict, Optional, TextIO

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import Artifact, ArtifactState, BatchResult

console = Console()


def _human_size(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{max(num_bytes, 0)} B"
    size = float(num_bytes)
    for unit in ("KB", "MB", "GB"):
        size /= 1024
        if size < 1024:
            return f"{size:.1f} {unit}"
    return f"{size / 1024:.1f} TB"


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    console.print(Panel(
        table,
        title="[bold green]artifact-upload[/bold green]",
        border_style="blue",
    ))


class BatchProgressDisplay:
    """Prints one numbered line per finished artifact, in completion order."""

    def __init__(self):
        self._done = 0

    def on_artifact_done(self, artifact: Artifact) -> None:
        self._done += 1
        counter = f"[{self._done}]"
        if artifact.state == ArtifactState.UPLOADED:
            console.print(
                f"{counter} [green]DONE[/green] {artifact.display_path} "
                f"[dim]({_human_size(artifact.size)})[/dim]",
                highlight=False,
            )
        else:
            console.print(f"{counter} [red]FAIL[/red] {artifact.display_path}", highlight=False)


def render_batch_result(result: BatchResult, stream: Optional[TextIO] = None) -> None:
    """Summarize a finished batch; failed artifacts are listed individually."""
    out = Console(file=stream) if stream is not None else console
    total = len(result.artifacts)

    if result.success:
        out.print(f"[bold green]Uploaded {total} artifact(s)[/bold green]")
        return

    table = Table(title=f"{result.failed_count} of {total} artifact(s) failed", title_style="bold red")
    table.add_column("Path", style="white")
    table.add_column("Error", style="red")
    for failure in result.failures:
        table.add_row(failure.display_path, str(failure.error))
    out.print(table)
