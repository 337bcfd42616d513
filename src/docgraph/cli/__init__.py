"""Command-line interface package for DocGraph."""

from __future__ import annotations

import datetime
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

from docgraph import __version__
from docgraph.config.config_loader import ConfigError, ConfigLoader
from docgraph.utils.log_setup import display_error_summary, setup_logging

from .doc_cmd import register_command as register_doc_command
from .graph_cmd import register_command as register_graph_command

logger = logging.getLogger(__name__)

app = typer.Typer(
	help=f"DocGraph - Module graphs and API documentation for TypeScript and JavaScript\n\nVersion: {__version__}",
	no_args_is_help=True,
	context_settings={"help_option_names": ["-h", "--help"]},
)

# --- Global Options Callback ---


def _version_callback(value: bool) -> None:
	"""Callback for --version option."""
	if value:
		typer.echo(f"DocGraph version: {__version__}")
		raise typer.Exit


@app.callback(invoke_without_command=True)
def global_options(
	ctx: typer.Context,
	is_verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging.")] = False,
	is_output_log: Annotated[
		bool,
		typer.Option("--save-log", help="Enable logging to a file. Logs to logs/docgraph_{datetime}.log."),
	] = False,
	config_file: Annotated[
		Path | None,
		typer.Option("--config", "-c", help="Path to a configuration file.", dir_okay=False),
	] = None,
	_version: Annotated[
		bool | None,
		typer.Option("--version", help="Show version and exit.", callback=_version_callback, is_eager=True),
	] = None,
) -> None:
	"""Global CLI options, logging and configuration setup."""
	ctx.meta["is_verbose"] = is_verbose

	log_file_path_to_use: Path | None = None
	if is_output_log:
		current_time = datetime.datetime.now(tz=datetime.UTC).strftime("%Y-%m-%d_%H-%M-%S")
		log_file_path_to_use = Path("logs") / f"docgraph_{current_time}.log"

	setup_logging(is_verbose=is_verbose, log_file_path=log_file_path_to_use)

	try:
		config_loader = ConfigLoader.get_instance(config_file, reload=True)
	except ConfigError as e:
		display_error_summary(str(e))
		raise typer.Exit(1) from e
	ctx.meta["config"] = config_loader.get
	logger.debug("Using configuration file: %s", config_loader.config_file)


# --- Register commands ---

register_doc_command(app)
register_graph_command(app)


# --- Main Entry Point ---
def main() -> int:
	"""Run the CLI application."""
	return app()


if __name__ == "__main__":
	sys.exit(main())
