"""Data models for the module graph."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
	from docgraph.processor.diagnostics import LineIndex
	from docgraph.processor.errors import DocGraphError
	from docgraph.processor.models import DiagnosticRecord
	from docgraph.processor.syntax import CommentStream, ImportKind, Span, SyntaxTree


class NodeState(Enum):
	"""Lifecycle of a graph node. Transitions only move forward."""

	PENDING = auto()
	VISITING = auto()
	RESOLVED = auto()
	FAILED = auto()

	@property
	def is_terminal(self) -> bool:
		"""Whether the node has settled."""
		return self in (NodeState.RESOLVED, NodeState.FAILED)


class InvalidTransitionError(RuntimeError):
	"""Raised when a node would move backwards in its lifecycle."""


@dataclass(frozen=True)
class ParsedUnit:
	"""A successfully parsed module."""

	specifier: str
	tree: SyntaxTree
	comments: CommentStream
	line_index: LineIndex
	diagnostics: tuple[DiagnosticRecord, ...] = ()


@dataclass(frozen=True)
class ImportEdge:
	"""A resolved import or re-export between two modules."""

	from_specifier: str
	to_specifier: str
	kind: ImportKind
	raw_specifier: str
	span: Span
	name: str | None = None
	alias: str | None = None


@dataclass(frozen=True)
class CycleNotice:
	"""An import edge that closes a cycle. Informational only."""

	from_specifier: str
	to_specifier: str


_TRANSITIONS = {
	NodeState.PENDING: {NodeState.VISITING},
	NodeState.VISITING: {NodeState.RESOLVED, NodeState.FAILED},
	NodeState.RESOLVED: set(),
	NodeState.FAILED: set(),
}


@dataclass
class GraphNode:
	"""One module in the graph, keyed by its specifier."""

	specifier: str
	referrer: str | None = None
	state: NodeState = NodeState.PENDING
	unit: ParsedUnit | None = None
	error: DocGraphError | None = None
	outgoing: list[ImportEdge] = field(default_factory=list)
	_settled: asyncio.Event = field(default_factory=asyncio.Event, repr=False, compare=False)

	def _transition(self, new_state: NodeState) -> None:
		if new_state not in _TRANSITIONS[self.state]:
			msg = f"Cannot move {self.specifier} from {self.state.name} to {new_state.name}"
			raise InvalidTransitionError(msg)
		self.state = new_state

	def begin_visit(self) -> None:
		"""Mark the node as being loaded and parsed."""
		self._transition(NodeState.VISITING)

	def resolve(self, unit: ParsedUnit) -> None:
		"""Store the parsed unit."""
		self._transition(NodeState.RESOLVED)
		self.unit = unit
		self._settled.set()

	def fail(self, error: DocGraphError) -> None:
		"""Record the error that stopped this node."""
		self._transition(NodeState.FAILED)
		self.error = error
		self._settled.set()

	async def wait_settled(self) -> NodeState:
		"""Wait until the node is resolved or failed."""
		await self._settled.wait()
		return self.state

	def diagnostics(self) -> list[DiagnosticRecord]:
		"""Diagnostics owned by this node."""
		if self.unit is not None:
			return list(self.unit.diagnostics)
		if self.error is not None:
			return self.error.to_diagnostics()
		return []


@dataclass
class GraphResult:
	"""The completed node table of one ``build`` call."""

	entry_specifier: str
	nodes: dict[str, GraphNode] = field(default_factory=dict)
	cycles: list[CycleNotice] = field(default_factory=list)
	timed_out: bool = False

	@property
	def entry(self) -> GraphNode | None:
		"""The entry node, absent only when the build timed out before it settled."""
		return self.nodes.get(self.entry_specifier)

	@property
	def entry_error(self) -> DocGraphError | None:
		"""The entry's terminal error, if it failed."""
		entry = self.entry
		return entry.error if entry is not None else None

	@property
	def ok(self) -> bool:
		"""Whether the entry module resolved."""
		entry = self.entry
		return entry is not None and entry.state is NodeState.RESOLVED

	def node(self, specifier: str) -> GraphNode | None:
		"""Look up a node."""
		return self.nodes.get(specifier)

	def incoming(self, specifier: str) -> list[ImportEdge]:
		"""All edges pointing at ``specifier``."""
		return [edge for node in self.nodes.values() for edge in node.outgoing if edge.to_specifier == specifier]

	@property
	def discovery_order(self) -> list[str]:
		"""
		Specifiers in breadth-first order of first discovery from the entry.

		The order follows each node's outgoing edges in source order, so it does
		not depend on how concurrent visits were scheduled.

		"""
		if self.entry_specifier not in self.nodes:
			return []
		order = [self.entry_specifier]
		seen = {self.entry_specifier}
		queue = deque(order)
		while queue:
			node = self.nodes[queue.popleft()]
			for edge in node.outgoing:
				if edge.to_specifier in seen or edge.to_specifier not in self.nodes:
					continue
				seen.add(edge.to_specifier)
				order.append(edge.to_specifier)
				queue.append(edge.to_specifier)
		return order

	def resolved_units(self) -> list[ParsedUnit]:
		"""Parsed units in discovery order."""
		units = []
		for specifier in self.discovery_order:
			unit = self.nodes[specifier].unit
			if unit is not None:
				units.append(unit)
		return units

	def failed_nodes(self) -> list[GraphNode]:
		"""Failed nodes in discovery order."""
		return [self.nodes[specifier] for specifier in self.discovery_order if self.nodes[specifier].state is NodeState.FAILED]

	def diagnostics(self) -> list[DiagnosticRecord]:
		"""Diagnostics of every node, in discovery order."""
		records: list[DiagnosticRecord] = []
		for specifier in self.discovery_order:
			records.extend(self.nodes[specifier].diagnostics())
		return records
