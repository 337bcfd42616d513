"""Logging and summary output for the DocGraph command line."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler
from rich.rule import Rule
from rich.text import Text

if TYPE_CHECKING:
	from collections.abc import Sequence

	from docgraph.processor.models import DiagnosticRecord

logger = logging.getLogger(__name__)

# Results go to stdout, logs to stderr
console = Console()

FILE_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s"


def setup_logging(is_verbose: bool = False, log_file_path: Path | str | None = None) -> None:
	"""
	Route log records to stderr and, optionally, to a file.

	Args:
	    is_verbose: Log DEBUG records instead of only warnings and errors
	    log_file_path: File that receives every DEBUG record, created if missing

	"""
	log_level = logging.DEBUG if is_verbose else logging.WARNING

	root_logger = logging.getLogger()
	root_logger.setLevel(log_level)
	for handler in root_logger.handlers[:]:
		root_logger.removeHandler(handler)

	root_logger.addHandler(
		RichHandler(level=log_level, console=Console(stderr=True), rich_tracebacks=True, show_path=is_verbose)
	)

	if log_file_path is None:
		return
	path = Path(log_file_path)
	try:
		path.parent.mkdir(parents=True, exist_ok=True)
		file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
	except OSError as e:
		logger.error("Cannot write log file %s: %s", path, e)
		return
	file_handler.setLevel(logging.DEBUG)
	file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
	root_logger.setLevel(logging.DEBUG)
	root_logger.addHandler(file_handler)
	logger.debug("Logging to file: %s", path)


def _print_summary(title: str, style: str, body: str) -> None:
	console.print()
	console.print(Rule(Text(title, style=f"bold {style}"), style=style))
	console.print(f"\n{body}\n", markup=False)
	console.print(Rule(style=style))
	console.print()


def display_error_summary(error_message: str) -> None:
	"""Print ``error_message`` between red rules."""
	_print_summary("Error Summary", "red", error_message)


def display_diagnostics(diagnostics: Sequence[DiagnosticRecord]) -> None:
	"""
	Print diagnostics between yellow rules, one record per line.

	Nothing is printed when there are no diagnostics.

	"""
	if not diagnostics:
		return
	count = len(diagnostics)
	title = f"{count} diagnostic{'s' if count != 1 else ''}"
	_print_summary(title, "yellow", "\n".join(str(diagnostic) for diagnostic in diagnostics))
