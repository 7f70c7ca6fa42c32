"""
Rich progress displays for CLI operations.

All output goes to stderr to preserve stdout for machine-readable output.
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from stickermock import GenerationSession, SessionState

# Console for stderr output (preserves stdout for machine output)
console = Console(stderr=True)

_STATE_LABELS = {
    SessionState.ENCODING: "Reading image",
    SessionState.REQUESTING: "Generating mockup",
}


@contextmanager
def generation_progress(model: str | None = None) -> Iterator[Callable[[GenerationSession], None]]:
    """
    Display a spinner while a session runs.

    Yields:
        A session listener that relabels the spinner as the session moves
        from reading the image to waiting on the service
    """
    progress = Progress(
        SpinnerColumn(spinner_name="dots"),
        TextColumn("[green]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
    suffix = ""
    if model:
        model_display = model if len(model) <= 40 else f"{model[:37]}..."
        suffix = f" [dim]({model_display})[/dim]"

    with progress:
        task = progress.add_task("Starting" + suffix, total=None)

        def on_session(session: GenerationSession) -> None:
            label = _STATE_LABELS.get(session.state)
            if label:
                progress.update(task, description=label + suffix)

        yield on_session
        progress.update(task, completed=True)


def print_success_result(
    output_path: Path,
    generation_time: float,
    model_used: str,
    prompt_used: str,
    media_type: str,
) -> None:
    """Print a rich formatted success message with generation details."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="cyan", justify="right", vertical="top")
    table.add_column(style="white")

    table.add_row("Saved to", f"[bold green]{output_path}[/bold green]")
    table.add_row("Model", model_used)
    table.add_row("Format", media_type)
    table.add_row("Time", f"{generation_time:.1f}s")
    table.add_row("Prompt", f"[dim]{prompt_used}[/dim]")

    panel = Panel(
        table,
        title="[bold green]✓ Mockup Generated[/bold green]",
        border_style="green",
        padding=(1, 2),
    )

    console.print()
    console.print(panel)


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]✗[/red] {message}")


def print_success(message: str) -> None:
    """Print a success message in green."""
    console.print(f"[green]✓[/green] {message}")
