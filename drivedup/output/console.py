# drivedup Console Output
# Rich-based console output for user-friendly display

from datetime import datetime
from typing import Optional

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.table import Table

from drivedup.jobs.audit import LogEntry, Severity
from drivedup.jobs.sheet import JobRow
from drivedup.sync.orchestrator import RunOutcome, RunReport
from drivedup.sync.state import JobState

SEVERITY_STYLES = {
    Severity.INFO: "blue",
    Severity.WARN: "yellow",
    Severity.ERROR: "red",
    Severity.CRITICAL: "bold red",
    Severity.MISSING: "magenta",
    Severity.MISSING_DIR: "magenta",
}


class Console:
    """
    Console output manager using Rich.

    Provides formatted output for job runs.
    """

    def __init__(self, *, verbose: bool = False, colored: bool = True, console: Optional[RichConsole] = None):
        """
        Initialize console.

        Args:
            verbose: Enable verbose output.
            colored: Enable colored output.
            console: Rich console to write to (created if not given).
        """
        self.verbose = verbose
        self._console = console or RichConsole(no_color=not colored, highlight=False)

    @property
    def rich(self) -> RichConsole:
        return self._console

    def print(self, *args, **kwargs) -> None:
        """Print to console."""
        self._console.print(*args, **kwargs)

    def print_error(self, message: str) -> None:
        self._console.print(f"[red]Error:[/red] {message}")

    def print_warning(self, message: str) -> None:
        self._console.print(f"[yellow]Warning:[/yellow] {message}")

    def print_success(self, message: str) -> None:
        self._console.print(f"[green]{message}[/green]")

    def print_info(self, message: str) -> None:
        self._console.print(f"[blue]{message}[/blue]")

    def print_report(self, report: RunReport) -> None:
        """Print the result of one orchestrator run."""
        if report.outcome == RunOutcome.NO_PENDING_JOBS:
            self.print_info("No pending jobs found. Add a source folder id with 'drivedup jobs add'.")
            return
        if report.outcome == RunOutcome.IDLE:
            self.print_info(f"Released finished job of row {report.job_row}. Nothing to resume.")
            return

        styles = {
            RunOutcome.COMPLETED: "green",
            RunOutcome.SUSPENDED: "yellow",
            RunOutcome.FAILED: "red",
        }
        style = styles.get(report.outcome, "white")
        kind = f"{report.kind.value.title()} job" if report.kind else "Job"

        lines = [f"[{style}]{report.status}[/{style}]", ""]
        for name, value in report.counters.items():
            lines.append(f"  • {name.replace('_', ' ')}: [cyan]{value}[/cyan]")
        if report.outcome == RunOutcome.SUSPENDED:
            lines.append(f"  • tasks queued: [cyan]{report.queue_length}[/cyan]")

        if report.stats and (self.verbose or report.outcome != RunOutcome.COMPLETED):
            stats = report.stats
            lines.append("")
            lines.append("[bold]This run:[/bold]")
            lines.append(f"  • copied: {stats.copied}, skipped: {stats.skipped}")
            lines.append(f"  • folders created: {stats.folders_created}, tasks completed: {stats.tasks_completed}")
            if stats.item_errors or stats.listing_failures:
                lines.append(
                    f"  • [red]item errors: {stats.item_errors}, incomplete listings: {stats.listing_failures}[/red]"
                )

        title = f"{kind}, row {report.job_row}" if report.job_row else kind
        self._console.print(Panel("\n".join(lines), title=title, border_style=style))

    def print_status(self, state: Optional[JobState], due_at: Optional[datetime]) -> None:
        """Print the checkpoint slot and the pending resume."""
        if state is None:
            self._console.print("[dim]No job in progress[/dim]")
        else:
            table = Table(title="Job in progress", show_header=False)
            table.add_column("Field", style="bold")
            table.add_column("Value")
            table.add_row("Kind", state.kind.value)
            table.add_row("Job row", str(state.job_row))
            for name, value in state.counters.to_dict().items():
                table.add_row(name.replace("_", " ").capitalize(), str(value))
            table.add_row("Tasks queued", str(len(state.queue)))
            head = state.queue.head
            if head is not None:
                position = head.stage.value
                if head.cursor is not None or head.offset:
                    position += f" (item {head.offset} of the current page)"
                table.add_row("Active folder", head.source_id)
                table.add_row("Position", position)
            self._console.print(table)

        if due_at is not None:
            self._console.print(f"Resume scheduled for [cyan]{due_at.isoformat(timespec='seconds')}[/cyan]")
        elif state is not None:
            self._console.print("[dim]No resume scheduled[/dim]")

    def print_jobs(self, rows: list[JobRow]) -> None:
        """Print the job sheet."""
        if not rows:
            self._console.print("[dim]No jobs defined[/dim]")
            return

        table = Table(title="Jobs", show_header=True, header_style="bold")
        table.add_column("Row", justify="right")
        table.add_column("Source", style="cyan")
        table.add_column("Status")
        table.add_column("Destination", style="dim")
        table.add_column("Verification")

        for row in rows:
            table.add_row(str(row.row), row.source_id, row.status, row.destination_url, row.verification)

        self._console.print(table)

    def print_log(self, entries: list[LogEntry]) -> None:
        """Print audit log rows."""
        if not entries:
            self._console.print("[dim]Audit log is empty[/dim]")
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("Timestamp", style="dim")
        table.add_column("Row", justify="right")
        table.add_column("Type")
        table.add_column("File/Folder", style="cyan")
        table.add_column("Message")

        for entry in entries:
            style = SEVERITY_STYLES.get(entry.severity, "white")
            table.add_row(
                entry.timestamp.isoformat(timespec="seconds"),
                "" if entry.job_row is None else str(entry.job_row),
                f"[{style}]{entry.severity.value}[/{style}]",
                entry.subject,
                entry.message,
            )

        self._console.print(table)
