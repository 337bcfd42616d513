"""Builds the module graph by loading and parsing every reachable module once."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING

from docgraph.processor.diagnostics import LineIndex
from docgraph.processor.errors import DocGraphError, LoadError, ParseError, ResolutionError
from docgraph.processor.graph.models import (
	CycleNotice,
	GraphNode,
	GraphResult,
	ImportEdge,
	ParsedUnit,
)
from docgraph.processor.models import DiagnosticRecord

if TYPE_CHECKING:
	from docgraph.processor.interfaces import ModuleParser, SourceLoader
	from docgraph.processor.syntax import ImportRequest, ParseOutput

logger = logging.getLogger(__name__)


class ModuleGraphBuilder:
	"""
	Traverses imports from an entry module.

	Each newly discovered specifier gets its own task. The node table is only
	touched between ``await`` points, so the first discoverer of a specifier is
	the only one to insert it and start its visit. Later discoverers wait for
	the node to settle.

	"""

	def __init__(self, loader: SourceLoader, parser: ModuleParser) -> None:
		"""
		Initialize the builder with its collaborators.

		Args:
		    loader: Resolves specifiers and loads source text
		    parser: Parses source text into syntax trees

		"""
		self.loader = loader
		self.parser = parser

	async def build(self, entry_specifier: str, timeout: float | None = None) -> GraphResult:
		"""
		Build the graph reachable from ``entry_specifier``.

		Args:
		    entry_specifier: Normalized specifier of the entry module
		    timeout: Seconds after which in-flight visits are abandoned

		Returns:
		    GraphResult: The node table. ``ok`` is False when the entry failed.

		"""
		result = GraphResult(entry_specifier=entry_specifier)
		entry = GraphNode(specifier=entry_specifier)
		result.nodes[entry_specifier] = entry

		try:
			async with asyncio.timeout(timeout):
				async with asyncio.TaskGroup() as group:
					group.create_task(self._visit(result, group, entry))
		except TimeoutError:
			result.timed_out = True
			dropped = [specifier for specifier, node in result.nodes.items() if not node.state.is_terminal]
			for specifier in dropped:
				del result.nodes[specifier]
			logger.warning("Graph build timed out after %ss; dropped %d unsettled modules", timeout, len(dropped))

		result.cycles = self._find_cycles(result)

		if result.entry_error is not None:
			logger.warning("Entry module %s failed: %s", entry_specifier, result.entry_error)
		logger.debug(
			"Built graph from %s: %d modules, %d cycle notices", entry_specifier, len(result.nodes), len(result.cycles)
		)
		return result

	async def _visit(self, result: GraphResult, group: asyncio.TaskGroup, node: GraphNode) -> None:
		"""Load, parse and expand one node."""
		node.begin_visit()
		logger.debug("Visiting %s", node.specifier)

		try:
			unit = await self._load_and_parse(node.specifier)
		except DocGraphError as e:
			node.fail(e)
			logger.warning("Failed to process %s: %s", node.specifier, e)
			return

		node.resolve(unit)

		waits = []
		for request in unit.tree.import_requests():
			edge, target = await self._discover(result, group, node, request)
			node.outgoing.append(edge)
			if target is not None and not target.state.is_terminal:
				waits.append(target)

		for target in waits:
			logger.debug("%s waits for in-flight module %s", node.specifier, target.specifier)
			await target.wait_settled()

	async def _discover(
		self,
		result: GraphResult,
		group: asyncio.TaskGroup,
		node: GraphNode,
		request: ImportRequest,
	) -> tuple[ImportEdge, GraphNode | None]:
		"""
		Resolve an import request, link it and start a visit when the target is new.

		The node table is checked and updated without an ``await`` in between.

		Returns:
		    The new edge and the node it points at if that node already existed

		"""
		try:
			target_specifier = self.loader.resolve(request.raw_specifier, node.specifier)
			if inspect.isawaitable(target_specifier):
				target_specifier = await target_specifier
		except ResolutionError as e:
			e.referrer = e.referrer or node.specifier
			return self._link_unresolved(result, node, request, e), None
		except Exception as e:
			logger.exception("Resolver failed for %r from %s", request.raw_specifier, node.specifier)
			error = ResolutionError(request.raw_specifier, str(e), referrer=node.specifier)
			return self._link_unresolved(result, node, request, error), None

		edge = ImportEdge(
			from_specifier=node.specifier,
			to_specifier=target_specifier,
			kind=request.kind,
			raw_specifier=request.raw_specifier,
			span=request.span,
			name=request.name,
			alias=request.alias,
		)

		existing = result.nodes.get(target_specifier)
		if existing is not None:
			return edge, existing

		target = GraphNode(specifier=target_specifier, referrer=node.specifier)
		result.nodes[target_specifier] = target
		group.create_task(self._visit(result, group, target))
		return edge, None

	@staticmethod
	def _find_cycles(result: GraphResult) -> list[CycleNotice]:
		"""
		Collect the back-edges of a depth-first walk from the entry.

		Edges are followed in source order, so the notices do not depend on how
		the visits were scheduled. An edge closes a cycle when its target is on
		the current walk, which also catches cycles between sibling modules.

		"""
		entry = result.entry
		if entry is None:
			return []

		notices: list[CycleNotice] = []
		finished: set[str] = set()
		on_path = {entry.specifier}
		stack = [(entry.specifier, iter(entry.outgoing))]
		while stack:
			specifier, edges = stack[-1]
			edge = next(edges, None)
			if edge is None:
				stack.pop()
				on_path.discard(specifier)
				finished.add(specifier)
				continue

			target = result.nodes.get(edge.to_specifier)
			if target is None or target.specifier in finished:
				continue
			if target.specifier in on_path:
				notice = CycleNotice(specifier, target.specifier)
				if notice not in notices:
					notices.append(notice)
					logger.debug("Import cycle: %s -> %s", specifier, target.specifier)
				continue
			on_path.add(target.specifier)
			stack.append((target.specifier, iter(target.outgoing)))
		return notices

	def _link_unresolved(
		self, result: GraphResult, node: GraphNode, request: ImportRequest, error: ResolutionError
	) -> ImportEdge:
		"""Record a failed node keyed by the raw specifier."""
		if request.raw_specifier not in result.nodes:
			failed = GraphNode(specifier=request.raw_specifier, referrer=node.specifier)
			failed.begin_visit()
			failed.fail(error)
			result.nodes[request.raw_specifier] = failed
			logger.warning("Cannot resolve %r from %s: %s", request.raw_specifier, node.specifier, error)
		return ImportEdge(
			from_specifier=node.specifier,
			to_specifier=request.raw_specifier,
			kind=request.kind,
			raw_specifier=request.raw_specifier,
			span=request.span,
			name=request.name,
			alias=request.alias,
		)

	async def _load_and_parse(self, specifier: str) -> ParsedUnit:
		"""Run the loader and the parser for one specifier."""
		try:
			syntax, source_text = await self.loader.load(specifier)
		except DocGraphError:
			raise
		except Exception as e:
			logger.exception("Loader failed for %s", specifier)
			msg = f"Failed to load {specifier}: {e}"
			raise LoadError(specifier, msg) from e

		try:
			output = self.parser.parse(specifier, source_text, syntax)
			if inspect.isawaitable(output):
				output = await output
			return self._to_unit(specifier, source_text, output)
		except DocGraphError:
			raise
		except Exception as e:
			logger.exception("Parser failed for %s", specifier)
			raise ParseError(specifier, [DiagnosticRecord(specifier=specifier, message=str(e))]) from e

	@staticmethod
	def _to_unit(specifier: str, source_text: str, output: ParseOutput) -> ParsedUnit:
		"""Drain the parse diagnostics and freeze the unit."""
		if output.collector.specifier != specifier:
			msg = f"Parser returned diagnostics bound to {output.collector.specifier}"
			raise ParseError(specifier, [DiagnosticRecord(specifier=specifier, message=msg)])
		line_index = LineIndex(source_text.encode("utf-8"))
		return ParsedUnit(
			specifier=specifier,
			tree=output.tree,
			comments=output.comments,
			line_index=line_index,
			diagnostics=tuple(output.collector.drain(line_index)),
		)


async def build(
	entry_specifier: str, loader: SourceLoader, parser: ModuleParser, timeout: float | None = None
) -> GraphResult:
	"""
	Build the module graph reachable from ``entry_specifier``.

	Args:
	    entry_specifier: Normalized specifier of the entry module
	    loader: Resolves specifiers and loads source text
	    parser: Parses source text
	    timeout: Optional limit in seconds for the whole traversal

	Returns:
	    GraphResult: A fresh node table owned by this call

	"""
	return await ModuleGraphBuilder(loader, parser).build(entry_specifier, timeout=timeout)
