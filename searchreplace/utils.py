"""
Utility functions for searchreplace.

Includes logging setup and console formatting.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from searchreplace.report import ExecutionReport, RunState


# Global console for pretty output
console = Console()


def setup_logging(
    log_file: Optional[Path] = None,
    log_level: str = "INFO",
    log_format: str = "pretty",
    console_output: bool = True,
) -> logging.Logger:
    """
    Set up logging for searchreplace runs.

    Args:
        log_file: Optional path to log file
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "structured" (JSON) or "pretty" (human-readable)
        console_output: Also log to console

    Returns:
        Configured "searchreplace" logger
    """
    logger = logging.getLogger("searchreplace")
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.handlers = []  # Clear existing handlers

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        if log_format == "structured":
            file_handler.setFormatter(StructuredFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
        logger.addHandler(file_handler)

    if console_output:
        if log_format == "pretty":
            console_handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_time=False)
        else:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(StructuredFormatter())
        logger.addHandler(console_handler)

    return logger


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        if hasattr(record, "table"):
            log_data["table"] = record.table

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def format_duration(seconds: float) -> str:
    """
    Format duration in seconds to human-readable string.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string (e.g., "1m 23s", "45s")
    """
    if seconds < 60:
        return f"{int(seconds)}s"

    minutes = int(seconds // 60)
    remaining_seconds = int(seconds % 60)

    if minutes < 60:
        return f"{minutes}m {remaining_seconds}s"

    hours = minutes // 60
    remaining_minutes = minutes % 60
    return f"{hours}h {remaining_minutes}m {remaining_seconds}s"


def render_report(report: ExecutionReport) -> Table:
    """Build a rich table of per-table counts."""
    title = "Search/replace report"
    if report.dry_run:
        title += " (dry run)"
    table = Table(title=title)
    table.add_column("Table")
    table.add_column("Scanned", justify="right")
    table.add_column("Changed", justify="right")
    table.add_column("Failed", justify="right")

    for t in report.tables:
        table.add_row(t.table, str(t.rows_scanned), str(t.rows_changed), str(t.rows_failed))
    table.add_row(
        "[bold]total[/bold]",
        str(report.rows_scanned),
        str(report.rows_changed),
        str(report.rows_failed),
    )
    return table


def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    console.print(f"[red]✗[/red] {message}")


def print_report(report: ExecutionReport) -> None:
    """Print a report table and a status line."""
    console.print(render_report(report))
    if report.duration_ms is not None:
        duration = format_duration(report.duration_ms / 1000)
    else:
        duration = "0s"
    if report.status == RunState.COMPLETED:
        print_success(f"Completed in {duration}")
    else:
        print_error(f"Failed after {duration}: {report.error}")
