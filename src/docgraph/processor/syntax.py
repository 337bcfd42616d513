"""
Language-neutral view of a parsed module.

The module parser converts its concrete syntax tree into the structures defined
here. The graph builder reads import requests from them and the doc aggregator
reads declarations, local exports and re-exports. The concrete tree is kept as
an opaque ``root`` handle and is never inspected by the core.

"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict

from docgraph.processor.models import DocKind

if TYPE_CHECKING:
	from collections.abc import Iterator

	from docgraph.processor.diagnostics import DiagnosticCollector

Language = Literal["typescript", "tsx", "javascript"]


class SyntaxConfig(BaseModel):
	"""Syntax options the loader chooses for a module."""

	model_config = ConfigDict(frozen=True)

	language: Language = "typescript"
	decorators: bool = True
	dynamic_import: bool = True


class ImportKind(Enum):
	"""How an import edge binds the target module."""

	NAMESPACE = auto()
	NAMED = auto()
	DEFAULT = auto()
	SIDE_EFFECT_ONLY = auto()
	RE_EXPORT_ALL = auto()
	RE_EXPORT_NAMED = auto()


class CommentKind(Enum):
	"""Comment flavours."""

	LINE = auto()
	BLOCK = auto()


@dataclass(frozen=True)
class Span:
	"""Half-open byte range into the module source."""

	start: int
	end: int


@dataclass(frozen=True)
class Comment:
	"""A raw comment, including its delimiters."""

	kind: CommentKind
	text: str
	span: Span

	@property
	def body(self) -> str:
		"""Comment text without delimiters and JSDoc gutters."""
		if self.kind is CommentKind.LINE:
			return self.text.removeprefix("//").strip()

		inner = self.text.removeprefix("/*").removesuffix("*/")
		inner = inner.removeprefix("*")
		lines = []
		for line in inner.splitlines():
			stripped = line.strip()
			if stripped.startswith("*"):
				stripped = stripped[1:].strip()
			lines.append(stripped)
		while lines and not lines[0]:
			lines.pop(0)
		while lines and not lines[-1]:
			lines.pop()
		return "\n".join(lines)


@dataclass(frozen=True)
class CommentStream:
	"""
	All comments of a module, ordered by start offset.

	The stream keeps the module source so gaps between comments and code can
	be inspected.

	"""

	source: bytes
	comments: tuple[Comment, ...] = ()

	def __post_init__(self) -> None:
		"""Keep comments sorted by offset."""
		ordered = tuple(sorted(self.comments, key=lambda comment: comment.span.start))
		object.__setattr__(self, "comments", ordered)

	def __len__(self) -> int:
		"""Number of comments in the stream."""
		return len(self.comments)

	def __iter__(self) -> Iterator[Comment]:
		"""Iterate comments in source order."""
		return iter(self.comments)


@dataclass(frozen=True)
class ImportBinding:
	"""One binding introduced by an import statement."""

	kind: ImportKind
	name: str | None = None
	alias: str | None = None


@dataclass(frozen=True)
class ExportName:
	"""``name as alias`` inside an export clause."""

	name: str
	alias: str | None = None

	@property
	def exported_as(self) -> str:
		"""The name visible to importers."""
		return self.alias or self.name


@dataclass(frozen=True)
class Declaration:
	"""A top-level declaration."""

	name: str
	kind: DocKind
	signature: str
	span: Span
	statement_start: int
	"""Offset of the enclosing statement, where leading comments end."""
	exported: bool = False
	default: bool = False

	def __post_init__(self) -> None:
		"""Reject the re-export kind, which only the aggregator produces."""
		if self.kind is DocKind.RE_EXPORT:
			msg = "Declarations cannot have the re-export kind"
			raise ValueError(msg)

	@property
	def exported_as(self) -> str:
		"""The name visible to importers."""
		return "default" if self.default else self.name


@dataclass(frozen=True)
class ImportDeclaration:
	"""``import ... from "source"`` or ``import "source"``."""

	source: str
	bindings: tuple[ImportBinding, ...]
	span: Span


@dataclass(frozen=True)
class LocalExport:
	"""
	``export { a, b as c }`` without a ``from`` clause.

	``export default name`` is recorded as ``export { name as default }``.

	"""

	names: tuple[ExportName, ...]
	span: Span
	text: str = ""


@dataclass(frozen=True)
class ReExportDeclaration:
	"""
	``export { a } from "source"``, ``export * from "source"`` or ``export * as ns from "source"``.

	``names`` is None for the star forms.

	"""

	source: str
	names: tuple[ExportName, ...] | None
	span: Span
	namespace: str | None = None
	text: str = ""


ModuleItem = Declaration | ImportDeclaration | LocalExport | ReExportDeclaration


@dataclass(frozen=True)
class ImportRequest:
	"""An import edge before its specifier has been resolved."""

	raw_specifier: str
	kind: ImportKind
	span: Span
	name: str | None = None
	alias: str | None = None


@dataclass(frozen=True)
class SyntaxTree:
	"""Top-level items of a module in source order."""

	items: tuple[ModuleItem, ...] = ()
	root: Any = field(default=None, compare=False, repr=False)

	def import_requests(self) -> Iterator[ImportRequest]:
		"""Yield one request per binding of every import and re-export statement."""
		for item in self.items:
			if isinstance(item, ImportDeclaration):
				if not item.bindings:
					yield ImportRequest(item.source, ImportKind.SIDE_EFFECT_ONLY, item.span)
				for binding in item.bindings:
					yield ImportRequest(item.source, binding.kind, item.span, binding.name, binding.alias)
			elif isinstance(item, ReExportDeclaration):
				if item.names is None:
					yield ImportRequest(item.source, ImportKind.RE_EXPORT_ALL, item.span, alias=item.namespace)
					continue
				for export in item.names:
					yield ImportRequest(item.source, ImportKind.RE_EXPORT_NAMED, item.span, export.name, export.alias)

	def declarations(self) -> Iterator[Declaration]:
		"""Yield every top-level declaration."""
		for item in self.items:
			if isinstance(item, Declaration):
				yield item


@dataclass(frozen=True)
class ParseOutput:
	"""What a module parser returns on success."""

	tree: SyntaxTree
	comments: CommentStream
	collector: DiagnosticCollector
