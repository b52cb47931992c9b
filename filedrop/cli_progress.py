"""Console rendering helpers for the filedrop CLI."""
from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .errors import BatchJoinFailure
from .models import BatchOutcome, ItemStatus, StagedItem

console = Console()

_STATUS_STYLES = {
    ItemStatus.PENDING: "dim",
    ItemStatus.UPLOADING: "cyan",
    ItemStatus.UPLOADED: "green",
    ItemStatus.FAILED: "red",
}


def _human_size(value: int) -> str:
    size = float(max(value, 0))
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_idx = 0
    while size >= 1024.0 and unit_idx < len(units) - 1:
        size /= 1024.0
        unit_idx += 1
    if unit_idx == 0:
        return f"{int(size)} {units[unit_idx]}"
    return f"{size:.2f} {units[unit_idx]}"


def render_configuration_summary(config: Dict[str, Any], out: Optional[Console] = None) -> None:
    """Render startup configuration summary."""
    out = out or console
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = Text("-" if value is None else str(value))
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]filedrop[/bold green]",
        subtitle="[dim]staged upload[/dim]",
        border_style="blue",
    )
    out.print(panel)


def build_queue_table(items: Iterable[StagedItem]) -> Table:
    table = Table(title="Staged files", show_lines=False)
    table.add_column("File", style="bold")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("Status")
    table.add_column("Error", style="red")

    for item in items:
        style = _STATUS_STYLES.get(item.status, "white")
        table.add_row(
            Text(item.name),
            Text(item.source.mime_type),
            _human_size(item.source.size),
            f"[{style}]{item.status.value}[/{style}]",
            Text(item.last_error or ""),
        )
    return table


class QueueStatusDisplay:
    """Prints item transitions and batch notifications as they happen."""

    def __init__(self, out: Optional[Console] = None):
        self._console = out or console

    def on_item_status(self, item: StagedItem) -> None:
        if item.status is ItemStatus.UPLOADING:
            self._console.print(f"[cyan]Uploading:[/cyan] {escape(item.name)}")
        elif item.status is ItemStatus.UPLOADED:
            self._console.print(f"[green]✓[/green] {escape(item.name)}")
        elif item.status is ItemStatus.FAILED:
            self._console.print(f"[red]✗[/red] {escape(item.name)}: {escape(item.last_error or '')}")

    def on_batch_complete(self, outcome: BatchOutcome) -> None:
        style = "green" if outcome.success else "yellow"
        self._console.print(f"[bold {style}]{outcome.message}[/bold {style}]")

    def on_batch_error(self, error: BatchJoinFailure) -> None:
        self._console.print("[bold red]An unexpected error occurred. Please try again.[/bold red]")
        self._console.print(f"[dim]{escape(str(error))}[/dim]")

    def on_retry(self, remaining: int, attempt: int, retries: int) -> None:
        self._console.print(f"[yellow]Retrying {remaining} failed file(s) ({attempt}/{retries})...[/yellow]")

    def render_queue(self, items: Iterable[StagedItem]) -> None:
        items = list(items)
        if not items:
            self._console.print("[dim]Queue is empty.[/dim]")
            return
        self._console.print(build_queue_table(items))
