"""Output records produced by the graph builder and the doc aggregator."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DocKind(str, Enum):
	"""Closed set of documented symbol kinds."""

	FUNCTION = "function"
	CLASS = "class"
	INTERFACE = "interface"
	TYPE_ALIAS = "type_alias"
	ENUM = "enum"
	VARIABLE = "variable"
	RE_EXPORT = "re_export"


class SourceSpan(BaseModel):
	"""Byte span of a declaration plus the 1-based position of its start."""

	model_config = ConfigDict(frozen=True)

	start: int
	end: int
	line: int
	column: int


class DiagnosticRecord(BaseModel):
	"""A diagnostic tied to exactly one module."""

	model_config = ConfigDict(frozen=True)

	specifier: str
	message: str
	line: int | None = None
	column: int | None = None

	def __str__(self) -> str:
		"""Render as ``<message> at <specifier>:<line>:<column>``."""
		if self.line is None:
			return f"{self.message} at {self.specifier}"
		return f"{self.message} at {self.specifier}:{self.line}:{self.column}"


class DocEntry(BaseModel):
	"""
	Documentation for one symbol of one module.

	ReExport entries do not copy the documentation of the symbol they point
	at. ``resolved`` references the original declaration's entry, and ``error``
	is set instead when the target could not be resolved.

	"""

	model_config = ConfigDict(frozen=True)

	defining_specifier: str
	symbol_name: str
	kind: DocKind
	signature_text: str
	attached_comment: str | None = None
	source_span: SourceSpan
	exported: bool = True
	target_specifier: str | None = None
	target_name: str | None = None
	resolved: DocEntry | None = Field(default=None, repr=False)
	error: str | None = None

	@property
	def is_re_export(self) -> bool:
		"""Whether the entry points at a symbol of another module."""
		return self.kind is DocKind.RE_EXPORT

	@property
	def effective(self) -> DocEntry:
		"""The entry whose signature and comment describe this symbol."""
		return self.resolved if self.resolved is not None else self


DocEntry.model_rebuild()
