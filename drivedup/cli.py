"""Click-based CLI for drivedup - resumable folder tree duplication."""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

import click
import yaml
from pydantic import ValidationError
from rich.logging import RichHandler
from rich.prompt import Confirm

from drivedup import __version__
from drivedup.config import (
    DrivedupConfig,
    ensure_config_exists,
    get_config_path,
    load_config,
    validate_config_file,
)
from drivedup.exceptions import DrivedupError
from drivedup.jobs import AuditLog, FileScheduler, JobSheet
from drivedup.output import Console
from drivedup.remote import create_remote
from drivedup.sync import CheckpointManager, JobKind, JobOrchestrator, RunOutcome, RunReport, reset_job

console = Console()


@dataclass
class Runtime:
    """Components wired from the configuration."""

    config: DrivedupConfig
    orchestrator: JobOrchestrator
    scheduler: FileScheduler
    checkpoints: CheckpointManager
    sheet: JobSheet
    audit: AuditLog


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console.rich, show_path=False)],
        force=True,
    )


def _fail(message: str) -> None:
    console.print_error(message)
    sys.exit(1)


def _load_config() -> DrivedupConfig:
    try:
        config = load_config()
        console.verbose = config.output.verbose
        console.rich.no_color = not config.output.colored
        return config
    except FileNotFoundError as e:
        _fail(str(e))
    except (ValidationError, yaml.YAMLError) as e:
        _fail(f"Invalid configuration: {e}")
    raise AssertionError("unreachable")


def _stores(config: DrivedupConfig) -> tuple[JobSheet, CheckpointManager, FileScheduler, AuditLog]:
    storage = config.storage
    return (
        JobSheet(storage.jobs_path),
        CheckpointManager(storage.checkpoint_path),
        FileScheduler(storage.schedule_path),
        AuditLog(storage.log_path),
    )


def _build_runtime(verbose: bool = False) -> Runtime:
    config = _load_config()
    console.verbose = verbose or config.output.verbose
    _setup_logging(console.verbose)
    sheet, checkpoints, scheduler, audit = _stores(config)
    try:
        remote = create_remote(config.backend)
    except (DrivedupError, OSError) as e:
        _fail(f"Cannot open {config.backend.type.value} backend: {e}")
    orchestrator = JobOrchestrator(config.runtime, remote, sheet, checkpoints, scheduler, audit)
    return Runtime(config, orchestrator, scheduler, checkpoints, sheet, audit)


def _drive(runtime: Runtime, first: Callable[[], RunReport], follow: bool) -> RunReport:
    """Run once, then keep honoring scheduled resumes while following."""
    report = first()
    console.print_report(report)

    while follow:
        if report.outcome == RunOutcome.SUSPENDED:
            wait = runtime.scheduler.seconds_until_due() or 0.0
            console.print_info(f"Resuming in {wait:.0f}s (Ctrl+C to stop; progress is saved)")
            time.sleep(wait)
        elif not (report.outcome == RunOutcome.COMPLETED and report.kind == JobKind.COPY):
            break

        report = runtime.orchestrator.start_or_resume()
        console.print_report(report)
        if report.outcome == RunOutcome.NO_PENDING_JOBS:
            break

    return report


def _exit_for(report: RunReport) -> None:
    if report.outcome == RunOutcome.FAILED:
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="drivedup")
def cli() -> None:
    """drivedup - duplicate and verify folder trees in resumable, time-boxed runs.

    \b
    Workflow:
      drivedup config init         create ~/.config/drivedup/config.yaml
      drivedup jobs add <id>       queue a source folder
      drivedup copy --follow       copy it, pausing and resuming as needed
      drivedup verify <row>        compare the copy against its source
    """
    pass


@cli.command()
@click.option("--follow", "-f", is_flag=True, help="Keep running: wait for scheduled resumes and continue")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
def copy(follow: bool, verbose: bool) -> None:
    """Start the next pending copy job, or resume the job in progress.

    Each run works until the time budget is spent, saves its position and
    schedules a resume.
    """
    runtime = _build_runtime(verbose)
    try:
        report = _drive(runtime, runtime.orchestrator.start_or_resume, follow)
    except DrivedupError as e:
        _fail(str(e))
    _exit_for(report)


@cli.command()
@click.argument("row", type=click.IntRange(min=1))
@click.option("--follow", "-f", is_flag=True, help="Keep running until the verification finishes")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
def verify(row: int, follow: bool, verbose: bool) -> None:
    """Verify the copy recorded in job ROW against its source.

    Checks that every file and folder exists by name in the destination.
    Refused while another job is in progress.
    """
    runtime = _build_runtime(verbose)
    try:
        report = _drive(runtime, lambda: runtime.orchestrator.verify(row), follow)
    except DrivedupError as e:
        _fail(str(e))
    _exit_for(report)


@cli.command()
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
def resume(verbose: bool) -> None:
    """Run the scheduled resume if it is due (for cron)."""
    runtime = _build_runtime(verbose)
    due_at = runtime.scheduler.pending()
    if due_at is None:
        console.print_info("No resume scheduled")
        return
    if not runtime.scheduler.is_due():
        console.print_info(f"Next resume due at {due_at.isoformat(timespec='seconds')}")
        return

    try:
        report = runtime.orchestrator.start_or_resume()
    except DrivedupError as e:
        _fail(str(e))
    console.print_report(report)
    _exit_for(report)


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
def reset(yes: bool) -> None:
    """Abandon the job in progress and cancel its scheduled resume.

    Files already copied stay in the destination.
    """
    config = _load_config()
    sheet, checkpoints, scheduler, audit = _stores(config)

    if not yes and checkpoints.exists() and not Confirm.ask("Abandon the job in progress?", default=False):
        console.print_warning("Reset cancelled")
        return

    if reset_job(checkpoints, scheduler, audit):
        console.print_success("Memory cleared and scheduled resume removed.")
    else:
        console.print_info("No job in progress.")


@cli.command()
def status() -> None:
    """Show the job in progress and the pending resume."""
    config = _load_config()
    _, checkpoints, scheduler, _ = _stores(config)
    console.print_status(checkpoints.load(), scheduler.pending())


@cli.command()
@click.option("--lines", "-n", default=50, help="Number of rows to show")
def log(lines: int) -> None:
    """Show recent audit log rows."""
    config = _load_config()
    _, _, _, audit = _stores(config)
    console.print_log(audit.tail(lines))


# -- jobs -------------------------------------------------------------------


@cli.group()
def jobs() -> None:
    """Manage the job sheet."""
    pass


@jobs.command("list")
def jobs_list() -> None:
    """List all jobs with their status."""
    config = _load_config()
    sheet, _, _, _ = _stores(config)
    try:
        console.print_jobs(sheet.rows())
    except DrivedupError as e:
        _fail(str(e))


@jobs.command("add")
@click.argument("source_id")
def jobs_add(source_id: str) -> None:
    """Queue SOURCE_ID (a folder id) for copying."""
    config = _load_config()
    sheet, _, _, _ = _stores(config)
    try:
        job = sheet.add(source_id)
    except DrivedupError as e:
        _fail(str(e))
    console.print_success(f"Added job row {job.row}: {job.source_id}")


# -- config -----------------------------------------------------------------


@cli.group()
def config() -> None:
    """Manage the drivedup configuration."""
    pass


@config.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration")
def config_init(force: bool) -> None:
    """Create a configuration file with default values."""
    path, created = ensure_config_exists(force=force)
    if created:
        console.print_success(f"Created configuration: {path}")
    else:
        console.print_info(f"Configuration already exists: {path}")


@config.command("show")
def config_show() -> None:
    """Show the effective configuration."""
    loaded = _load_config()
    console.print(f"[dim]# {get_config_path()}[/dim]")
    console.print(
        yaml.dump(loaded.model_dump(mode="json"), default_flow_style=False, sort_keys=False),
        markup=False,
    )


@config.command("validate")
def config_validate() -> None:
    """Validate the configuration file."""
    valid, errors = validate_config_file()
    if valid:
        console.print_success(f"Configuration is valid: {get_config_path()}")
        return
    for error in errors:
        console.print_error(error)
    sys.exit(1)


def main(argv: Optional[list[str]] = None) -> None:
    cli(args=argv)
