"""CLI command for printing the documentation entries of a module."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Annotated

import asyncer
import typer

if TYPE_CHECKING:
	from docgraph.processor.models import DocEntry
	from docgraph.processor.pipeline import PipelineResult

logger = logging.getLogger(__name__)

# --- Command Argument Annotations ---

EntryArg = Annotated[str, typer.Argument(help="Entry module: a file path or URL.")]

JsonFlag = Annotated[bool, typer.Option("--json", help="Print entries and diagnostics as JSON.")]

AllFlag = Annotated[
	bool | None,
	typer.Option("--all/--entry-only", help="Document every resolved module, not only the entry. Overrides config."),
]

PrivateFlag = Annotated[
	bool | None,
	typer.Option("--private/--no-private", help="Include declarations that are not exported. Overrides config."),
]

MaxBlankLinesOpt = Annotated[
	int | None,
	typer.Option("--max-blank-lines", min=0, help="Blank lines tolerated between a comment and its symbol."),
]


# --- Registration Function ---


def register_command(app: typer.Typer) -> None:
	"""Register the doc command with the CLI app."""

	@app.command(name="doc")
	@asyncer.runnify
	async def doc_command(
		entry: EntryArg,
		as_json: JsonFlag = False,
		full_graph: AllFlag = None,
		include_private: PrivateFlag = None,
		max_blank_lines: MaxBlankLinesOpt = None,
	) -> None:
		"""Print the documentation entries exported by a module."""
		await _doc_command_impl(
			entry=entry,
			as_json=as_json,
			full_graph=full_graph,
			include_private=include_private,
			max_blank_lines=max_blank_lines,
		)


# --- Implementation Function ---


async def _doc_command_impl(
	entry: str,
	as_json: bool = False,
	full_graph: bool | None = None,
	include_private: bool | None = None,
	max_blank_lines: int | None = None,
) -> None:
	"""Build the graph for ``entry``, aggregate and print its entries."""
	from docgraph.config.config_loader import ConfigLoader
	from docgraph.processor.pipeline import DocumentationPipeline
	from docgraph.utils.log_setup import display_diagnostics, display_error_summary

	config = ConfigLoader.get_instance().get
	overrides = {
		key: value
		for key, value in (("include_private", include_private), ("max_blank_lines", max_blank_lines))
		if value is not None
	}
	if overrides:
		config = config.model_copy(update={"docs": config.docs.model_copy(update=overrides)})

	pipeline = DocumentationPipeline(config)
	result = await pipeline.run(entry, full_graph=full_graph)

	if as_json:
		typer.echo(json.dumps(_to_json(result), indent=2))
	else:
		_print_entries(result.docs.entries, show_module=bool(full_graph or config.docs.full_graph))

	if not result.graph.ok:
		error = result.graph.entry_error
		message = str(error) if error is not None else f"Timed out before {result.graph.entry_specifier} was loaded"
		if not as_json:
			display_error_summary(message)
		raise typer.Exit(1)

	if not as_json:
		display_diagnostics(result.docs.diagnostics)
	if result.graph.timed_out:
		logger.warning("Graph construction timed out; documentation may be incomplete")


def _to_json(result: PipelineResult) -> dict:
	return {
		"entry": result.graph.entry_specifier,
		"ok": result.graph.ok,
		"timed_out": result.graph.timed_out,
		"entries": [entry.model_dump(mode="json") for entry in result.docs.entries],
		"diagnostics": [diagnostic.model_dump(mode="json") for diagnostic in result.docs.diagnostics],
	}


def _print_entries(entries: list[DocEntry], show_module: bool = False) -> None:
	"""Render entries as a rich table."""
	from rich.table import Table
	from rich.text import Text

	from docgraph.utils.log_setup import console

	table = Table(title="Documentation", show_lines=False)
	if show_module:
		table.add_column("Module", style="dim")
	table.add_column("Symbol", style="bold cyan")
	table.add_column("Kind", style="magenta")
	table.add_column("Signature")
	table.add_column("Comment", style="green")

	for entry in entries:
		effective = entry.effective
		signature = effective.signature_text
		if entry.is_re_export:
			target = f"{entry.target_specifier}#{entry.target_name}"
			signature = f"{signature}\n(from {target})" if entry.error is None else f"[error] {entry.error}"
		comment = (effective.attached_comment or "").split("\n", 1)[0]
		row = [entry.symbol_name, entry.kind.value, signature, comment]
		if show_module:
			row.insert(0, entry.defining_specifier)
		table.add_row(*(Text(cell) for cell in row))

	if not entries:
		console.print("No documented symbols found.")
		return
	console.print(table)
