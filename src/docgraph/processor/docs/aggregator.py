"""
Aggregates documentation entries across a built module graph.

Entries are produced per module in source order. Re-exports are not copied:
a re-export entry references the original declaration's entry, which is looked
up through the target module's export surface on demand and memoized per
(specifier, name).

"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from docgraph.processor.comments import CommentAssociator
from docgraph.processor.errors import DocGraphError, ReExportCycleError, UnresolvedExportError
from docgraph.processor.graph.models import NodeState
from docgraph.processor.models import DiagnosticRecord, DocEntry, DocKind, SourceSpan
from docgraph.processor.syntax import (
	Declaration,
	ImportDeclaration,
	ImportKind,
	LocalExport,
	ReExportDeclaration,
)

if TYPE_CHECKING:
	from docgraph.processor.graph.models import GraphResult, ParsedUnit
	from docgraph.processor.syntax import Span

logger = logging.getLogger(__name__)


class ModuleOrder(str, Enum):
	"""Order in which modules contribute entries."""

	DISCOVERY = "discovery"
	SPECIFIER = "specifier"


@dataclass
class AggregateResult:
	"""Documentation entries plus every diagnostic gathered on the way."""

	entries: list[DocEntry] = field(default_factory=list)
	diagnostics: list[DiagnosticRecord] = field(default_factory=list)

	def for_module(self, specifier: str) -> list[DocEntry]:
		"""Entries defined by ``specifier``."""
		return [entry for entry in self.entries if entry.defining_specifier == specifier]

	def get(self, symbol_name: str, specifier: str | None = None) -> DocEntry | None:
		"""First entry named ``symbol_name``, optionally limited to one module."""
		for entry in self.entries:
			if entry.symbol_name == symbol_name and specifier in (None, entry.defining_specifier):
				return entry
		return None


@dataclass(frozen=True)
class _Binding:
	"""What an exported name refers to inside its module."""

	declaration: Declaration | None = None
	source: str | None = None
	"""Raw specifier of the module the name comes from, for imported bindings."""
	imported_name: str | None = None
	"""Name in the source module; ``*`` for namespace bindings."""
	span: Span | None = None


@dataclass
class _ExportSurface:
	named: dict[str, _Binding] = field(default_factory=dict)
	star_sources: list[str] = field(default_factory=list)


class DocAggregator:
	"""Builds DocEntries for the modules of a GraphResult."""

	def __init__(
		self,
		graph: GraphResult,
		associator: CommentAssociator | None = None,
		include_private: bool = False,
		module_order: ModuleOrder = ModuleOrder.DISCOVERY,
	) -> None:
		"""
		Initialize the aggregator.

		Args:
		    graph: A completed graph
		    associator: Comment associator, defaults to one without blank-line tolerance
		    include_private: Also document declarations that are not exported
		    module_order: Order in which modules contribute entries

		"""
		self.graph = graph
		self.associator = associator or CommentAssociator()
		self.include_private = include_private
		self.module_order = ModuleOrder(module_order)

		self._module_entries: dict[str, list[DocEntry]] = {}
		self._declaration_entries: dict[tuple[str, str, Declaration], DocEntry] = {}
		self._namespace_entries: dict[tuple[str, str], DocEntry] = {}
		self._surfaces: dict[str, _ExportSurface] = {}
		self._export_names: dict[str, list[str]] = {}
		self._resolved: dict[tuple[str, str], DocEntry] = {}
		self._failed: dict[tuple[str, str], DocGraphError] = {}
		self._resolving: list[tuple[str, str]] = []
		self._diagnostics: list[DiagnosticRecord] = []

	def aggregate(self, entry_specifier: str | None = None, full_graph: bool = False) -> AggregateResult:
		"""
		Collect entries for the entry module, or for every resolved module.

		Args:
		    entry_specifier: Defaults to the graph's entry
		    full_graph: Document every resolved module, not only the entry

		Returns:
		    AggregateResult: Never raises; failures show up as diagnostics and error markers

		"""
		entry_specifier = entry_specifier or self.graph.entry_specifier
		if full_graph:
			specifiers = self.graph.discovery_order
			if self.module_order is ModuleOrder.SPECIFIER:
				specifiers = sorted(specifiers)
		else:
			specifiers = [entry_specifier]

		entries: list[DocEntry] = []
		for specifier in specifiers:
			node = self.graph.node(specifier)
			if node is None or node.state is not NodeState.RESOLVED:
				continue
			entries.extend(self.entries_for(specifier))

		logger.debug("Aggregated %d entries from %d modules", len(entries), len(specifiers))
		return AggregateResult(entries=entries, diagnostics=[*self.graph.diagnostics(), *self._diagnostics])

	def entries_for(self, specifier: str) -> list[DocEntry]:
		"""Entries of one resolved module in source order. Memoized."""
		if specifier in self._module_entries:
			return self._module_entries[specifier]

		unit = self._unit(specifier)
		surface = self._surface(specifier)
		entries: list[DocEntry] = []
		for item in unit.tree.items:
			if isinstance(item, Declaration):
				if item.exported:
					entries.append(self._declaration_entry(unit, item, item.exported_as, exported=True))
				elif self.include_private:
					entries.append(self._declaration_entry(unit, item, item.name, exported=False))
			elif isinstance(item, LocalExport):
				entries.extend(self._local_export_entries(unit, item, surface))
			elif isinstance(item, ReExportDeclaration):
				entries.extend(self._re_export_entries(unit, item, surface))

		self._module_entries[specifier] = entries
		return entries

	def resolve_export(self, specifier: str, name: str) -> DocEntry:
		"""
		Find the entry that originally declares ``name`` as exported by ``specifier``.

		Follows re-exports and star exports transitively.

		Raises:
		    ReExportCycleError: If the lookup leads back to itself
		    UnresolvedExportError: If the module or the name is not available

		"""
		key = (specifier, name)
		if key in self._resolved:
			logger.debug("Reusing resolution of %s#%s", specifier, name)
			return self._resolved[key]
		if key in self._failed:
			raise self._failed[key]
		if key in self._resolving:
			chain = [*self._resolving[self._resolving.index(key) :], key]
			raise ReExportCycleError(specifier, chain)

		self._resolving.append(key)
		try:
			entry = self._lookup_export(specifier, name)
		except DocGraphError as e:
			self._failed[key] = e
			raise
		finally:
			self._resolving.pop()

		self._resolved[key] = entry
		return entry

	def export_names(self, specifier: str) -> list[str]:
		"""Names exported by ``specifier``, including star re-exports. Memoized."""
		if specifier not in self._export_names:
			self._export_names[specifier] = self._collect_export_names(specifier, set())
		return self._export_names[specifier]

	def _collect_export_names(self, specifier: str, seen: set[str]) -> list[str]:
		seen.add(specifier)
		surface = self._surface(specifier)
		names = list(surface.named)
		for source in surface.star_sources:
			try:
				target = self._target(specifier, source)
			except DocGraphError:
				continue
			if target in seen:
				continue
			names.extend(
				name
				for name in self._collect_export_names(target, seen)
				if name != "default" and name not in names
			)
		return names

	def _lookup_export(self, specifier: str, name: str) -> DocEntry:
		unit = self._unit(specifier)
		surface = self._surface(specifier)

		binding = surface.named.get(name)
		if binding is not None:
			if binding.declaration is not None:
				return self._declaration_entry(unit, binding.declaration, name, exported=True)
			if binding.imported_name == "*":
				return self._namespace_entry(unit, name, binding)
			target = self._target(specifier, binding.source)
			return self.resolve_export(target, binding.imported_name)

		if name != "default":
			for source in surface.star_sources:
				target = self._target(specifier, source)
				if name in self.export_names(target):
					return self.resolve_export(target, name)

		msg = f"Module {specifier} has no export named {name!r}"
		raise UnresolvedExportError(specifier, msg)

	def _surface(self, specifier: str) -> _ExportSurface:
		"""Exported names of a module mapped to what they refer to."""
		if specifier in self._surfaces:
			return self._surfaces[specifier]

		unit = self._unit(specifier)
		declarations: dict[str, Declaration] = {}
		imports: dict[str, _Binding] = {}
		surface = _ExportSurface()

		for item in unit.tree.items:
			if isinstance(item, Declaration):
				declarations.setdefault(item.name, item)
				if item.exported:
					surface.named.setdefault(item.exported_as, _Binding(declaration=item))
			elif isinstance(item, ImportDeclaration):
				for binding in item.bindings:
					local = binding.alias or binding.name
					if local is None:
						continue
					if binding.kind is ImportKind.NAMESPACE:
						imported = "*"
					elif binding.kind is ImportKind.DEFAULT:
						imported = "default"
					else:
						imported = binding.name
					imports[local] = _Binding(source=item.source, imported_name=imported, span=item.span)
			elif isinstance(item, ReExportDeclaration):
				if item.names is None and item.namespace is None:
					surface.star_sources.append(item.source)
				elif item.names is None:
					surface.named.setdefault(
						item.namespace, _Binding(source=item.source, imported_name="*", span=item.span)
					)
				else:
					for export in item.names:
						surface.named.setdefault(
							export.exported_as, _Binding(source=item.source, imported_name=export.name, span=item.span)
						)

		# Local export clauses may precede the declarations they name.
		for item in unit.tree.items:
			if not isinstance(item, LocalExport):
				continue
			for export in item.names:
				if export.name in declarations:
					surface.named.setdefault(export.exported_as, _Binding(declaration=declarations[export.name]))
				elif export.name in imports:
					surface.named.setdefault(export.exported_as, imports[export.name])

		self._surfaces[specifier] = surface
		return surface

	def _local_export_entries(self, unit: ParsedUnit, item: LocalExport, surface: _ExportSurface) -> list[DocEntry]:
		entries = []
		for export in item.names:
			binding = surface.named.get(export.exported_as)
			if binding is None:
				error = UnresolvedExportError(unit.specifier, f"No declaration named {export.name!r} to export")
				self._report(unit, item.span, error)
				continue
			if binding.declaration is not None:
				entries.append(self._declaration_entry(unit, binding.declaration, export.exported_as, exported=True))
			elif binding.imported_name == "*":
				entries.append(self._namespace_entry(unit, export.exported_as, binding))
			else:
				entries.append(
					self._re_export_entry(
						unit, item.span, binding.source, binding.imported_name, export.exported_as, item.text
					)
				)
		return entries

	def _re_export_entries(
		self, unit: ParsedUnit, item: ReExportDeclaration, surface: _ExportSurface
	) -> list[DocEntry]:
		if item.names is not None:
			return [
				self._re_export_entry(unit, item.span, item.source, export.name, export.exported_as, item.text)
				for export in item.names
			]
		if item.namespace is not None:
			binding = _Binding(source=item.source, imported_name="*", span=item.span)
			return [self._namespace_entry(unit, item.namespace, binding)]

		try:
			target = self._target(unit.specifier, item.source)
			names = self.export_names(target)
		except DocGraphError as e:
			self._report(unit, item.span, e)
			return [self._error_entry(unit, item.span, item.source, "*", str(e.message), item.text)]

		return [
			self._re_export_entry(unit, item.span, item.source, name, name, item.text)
			for name in names
			if name != "default" and name not in surface.named
		]

	def _re_export_entry(
		self, unit: ParsedUnit, span: Span, source: str, name: str, exported_as: str, text: str = ""
	) -> DocEntry:
		"""A ReExport entry pointing at the declaration behind ``source``#``name``."""
		try:
			target = self._target(unit.specifier, source)
			resolved = self.resolve_export(target, name)
		except DocGraphError as e:
			self._report(unit, span, e)
			return self._error_entry(unit, span, source, name, e.message, text, exported_as)

		return DocEntry(
			defining_specifier=unit.specifier,
			symbol_name=exported_as,
			kind=DocKind.RE_EXPORT,
			signature_text=text or self._re_export_text(name, exported_as, source),
			attached_comment=self.associator.attach(span.start, unit.comments),
			source_span=self._source_span(unit, span),
			target_specifier=target,
			target_name=name,
			resolved=resolved,
		)

	def _error_entry(
		self,
		unit: ParsedUnit,
		span: Span,
		source: str,
		name: str,
		message: str,
		text: str = "",
		exported_as: str | None = None,
	) -> DocEntry:
		exported_as = exported_as or name
		return DocEntry(
			defining_specifier=unit.specifier,
			symbol_name=exported_as,
			kind=DocKind.RE_EXPORT,
			signature_text=text or self._re_export_text(name, exported_as, source),
			attached_comment=self.associator.attach(span.start, unit.comments),
			source_span=self._source_span(unit, span),
			target_specifier=self._edge_target(unit.specifier, source) or source,
			target_name=name,
			error=message,
		)

	def _namespace_entry(self, unit: ParsedUnit, name: str, binding: _Binding) -> DocEntry:
		key = (unit.specifier, name)
		if key not in self._namespace_entries:
			span = binding.span
			self._namespace_entries[key] = DocEntry(
				defining_specifier=unit.specifier,
				symbol_name=name,
				kind=DocKind.RE_EXPORT,
				signature_text=f'export * as {name} from "{binding.source}"',
				attached_comment=self.associator.attach(span.start, unit.comments),
				source_span=self._source_span(unit, span),
				target_specifier=self._edge_target(unit.specifier, binding.source) or binding.source,
				target_name="*",
			)
		return self._namespace_entries[key]

	def _declaration_entry(self, unit: ParsedUnit, declaration: Declaration, name: str, exported: bool) -> DocEntry:
		key = (unit.specifier, name, declaration)
		if key not in self._declaration_entries:
			self._declaration_entries[key] = DocEntry(
				defining_specifier=unit.specifier,
				symbol_name=name,
				kind=declaration.kind,
				signature_text=declaration.signature,
				attached_comment=self.associator.attach(declaration.statement_start, unit.comments),
				source_span=self._source_span(unit, declaration.span),
				exported=exported,
			)
		return self._declaration_entries[key]

	def _unit(self, specifier: str) -> ParsedUnit:
		node = self.graph.node(specifier)
		if node is None:
			msg = f"Module {specifier} is not part of the graph"
			raise UnresolvedExportError(specifier, msg)
		if node.unit is None:
			reason = node.error.message if node.error is not None else node.state.name.lower()
			msg = f"Module {specifier} is not available: {reason}"
			raise UnresolvedExportError(specifier, msg)
		return node.unit

	def _edge_target(self, specifier: str, raw_specifier: str) -> str | None:
		node = self.graph.node(specifier)
		if node is None:
			return None
		for edge in node.outgoing:
			if edge.raw_specifier == raw_specifier:
				return edge.to_specifier
		return None

	def _target(self, specifier: str, raw_specifier: str | None) -> str:
		"""Resolved specifier of a module referenced from ``specifier``, checked to be usable."""
		target = self._edge_target(specifier, raw_specifier) if raw_specifier else None
		if target is None:
			msg = f"Module {specifier} has no import edge for {raw_specifier!r}"
			raise UnresolvedExportError(specifier, msg)
		self._unit(target)
		return target

	@staticmethod
	def _re_export_text(name: str, exported_as: str, source: str) -> str:
		clause = name if name == exported_as else f"{name} as {exported_as}"
		return f'export {{ {clause} }} from "{source}"'

	@staticmethod
	def _source_span(unit: ParsedUnit, span: Span) -> SourceSpan:
		line, column = unit.line_index(span.start)
		return SourceSpan(start=span.start, end=span.end, line=line, column=column)

	def _report(self, unit: ParsedUnit, span: Span, error: DocGraphError) -> None:
		"""Record a diagnostic for ``unit`` at ``span``, once per position and message."""
		line, column = unit.line_index(span.start)
		record = DiagnosticRecord(specifier=unit.specifier, message=error.message, line=line, column=column)
		if record not in self._diagnostics:
			self._diagnostics.append(record)
			logger.debug("Re-export problem in %s: %s", unit.specifier, error.message)


def aggregate(
	graph: GraphResult,
	entry_specifier: str | None = None,
	full_graph: bool = False,
	include_private: bool = False,
	max_blank_lines: int = 0,
	module_order: ModuleOrder | str = ModuleOrder.DISCOVERY,
) -> AggregateResult:
	"""
	Collect documentation entries from a built graph.

	Args:
	    graph: Result of ``build``
	    entry_specifier: Module to document, defaults to the graph's entry
	    full_graph: Document every resolved module in ``module_order``
	    include_private: Also document declarations that are not exported
	    max_blank_lines: Blank lines tolerated inside a leading comment run
	    module_order: ``discovery`` or ``specifier``

	Returns:
	    AggregateResult: Entries and diagnostics

	"""
	aggregator = DocAggregator(
		graph,
		associator=CommentAssociator(max_blank_lines=max_blank_lines),
		include_private=include_private,
		module_order=ModuleOrder(module_order),
	)
	return aggregator.aggregate(entry_specifier, full_graph=full_graph)
