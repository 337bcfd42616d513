"""CLI command for printing the module graph of an entry point."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Annotated

import asyncer
import typer

if TYPE_CHECKING:
	from rich.tree import Tree

	from docgraph.processor.graph.models import GraphResult

logger = logging.getLogger(__name__)

EntryArg = Annotated[str, typer.Argument(help="Entry module: a file path or URL.")]

JsonFlag = Annotated[bool, typer.Option("--json", help="Print nodes, edges and cycles as JSON.")]

_STATE_STYLES = {
	"RESOLVED": "green",
	"FAILED": "red",
	"VISITING": "yellow",
	"PENDING": "dim",
}


def register_command(app: typer.Typer) -> None:
	"""Register the graph command with the CLI app."""

	@app.command(name="graph")
	@asyncer.runnify
	async def graph_command(entry: EntryArg, as_json: JsonFlag = False) -> None:
		"""Print the module graph reachable from an entry module."""
		await _graph_command_impl(entry=entry, as_json=as_json)


async def _graph_command_impl(entry: str, as_json: bool = False) -> None:
	"""Build the graph for ``entry`` and print it."""
	from docgraph.config.config_loader import ConfigLoader
	from docgraph.processor.pipeline import DocumentationPipeline
	from docgraph.utils.log_setup import console, display_error_summary

	pipeline = DocumentationPipeline(ConfigLoader.get_instance().get)
	graph = await pipeline.build_graph(entry)

	if as_json:
		typer.echo(json.dumps(graph_to_json(graph), indent=2))
	else:
		console.print(render_tree(graph))
		for notice in graph.cycles:
			console.print(f"cycle: {notice.from_specifier} -> {notice.to_specifier}", style="yellow", markup=False)

	if not graph.ok:
		error = graph.entry_error
		if not as_json:
			display_error_summary(str(error) if error is not None else f"Timed out loading {graph.entry_specifier}")
		raise typer.Exit(1)


def graph_to_json(graph: GraphResult) -> dict:
	"""Plain data view of a graph."""
	nodes = []
	for specifier in graph.discovery_order:
		node = graph.nodes[specifier]
		nodes.append(
			{
				"specifier": specifier,
				"state": node.state.name.lower(),
				"referrer": node.referrer,
				"error": node.error.message if node.error is not None else None,
				"imports": [
					{"specifier": edge.to_specifier, "raw": edge.raw_specifier, "kind": edge.kind.name.lower()}
					for edge in node.outgoing
				],
			}
		)
	return {
		"entry": graph.entry_specifier,
		"ok": graph.ok,
		"timed_out": graph.timed_out,
		"nodes": nodes,
		"cycles": [{"from": notice.from_specifier, "to": notice.to_specifier} for notice in graph.cycles],
	}


def render_tree(graph: GraphResult) -> Tree:
	"""
	Render the graph as a tree rooted at the entry.

	Each module is expanded once; later references are marked as already shown.

	"""
	from rich.text import Text
	from rich.tree import Tree

	expanded: set[str] = set()

	def label(specifier: str, suffix: str = "") -> Text:
		node = graph.node(specifier)
		state = node.state.name if node is not None else "PENDING"
		text = Text(f"{state.lower():<9}", style=_STATE_STYLES.get(state, ""))
		text.append(f" {specifier}{suffix}")
		if node is not None and node.error is not None:
			text.append(f"  {node.error.message}", style="red")
		return text

	root = Tree(label(graph.entry_specifier))
	stack: list[tuple[str, Tree]] = [(graph.entry_specifier, root)]
	expanded.add(graph.entry_specifier)
	while stack:
		specifier, branch = stack.pop()
		node = graph.node(specifier)
		if node is None:
			continue
		seen_targets: set[str] = set()
		children = []
		for edge in node.outgoing:
			if edge.to_specifier in seen_targets:
				continue
			seen_targets.add(edge.to_specifier)
			if edge.to_specifier in expanded:
				branch.add(label(edge.to_specifier, " (shown above)"))
				continue
			expanded.add(edge.to_specifier)
			children.append((edge.to_specifier, branch.add(label(edge.to_specifier))))
		stack.extend(reversed(children))
	return root
