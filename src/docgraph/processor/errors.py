"""Error taxonomy for module graph construction and documentation aggregation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from docgraph.processor.models import DiagnosticRecord

if TYPE_CHECKING:
	from collections.abc import Sequence


class DocGraphError(Exception):
	"""Base class for errors attached to a single module."""

	def __init__(self, specifier: str, message: str) -> None:
		"""
		Initialize the error.

		Args:
		    specifier: The module the error belongs to
		    message: Human readable description

		"""
		super().__init__(message)
		self.specifier = specifier
		self.message = message

	def to_diagnostics(self) -> list[DiagnosticRecord]:
		"""Convert the error into diagnostic records for its own module."""
		return [DiagnosticRecord(specifier=self.specifier, message=self.message)]


class ResolutionError(DocGraphError):
	"""Raised when a raw specifier cannot be normalized or is not allowed."""

	def __init__(self, specifier: str, message: str, referrer: str | None = None) -> None:
		"""
		Initialize the error.

		Args:
		    specifier: The raw specifier that failed to resolve
		    message: Human readable description
		    referrer: The module that contains the import

		"""
		super().__init__(specifier, message)
		self.referrer = referrer


class LoadError(DocGraphError):
	"""Raised when source text for a specifier cannot be obtained."""


class ParseError(DocGraphError):
	"""Raised when a module has syntax diagnostics."""

	def __init__(self, specifier: str, diagnostics: Sequence[DiagnosticRecord]) -> None:
		"""
		Initialize the error.

		Args:
		    specifier: The module that failed to parse
		    diagnostics: Diagnostics collected before the parse was abandoned

		"""
		message = ",".join(str(diagnostic) for diagnostic in diagnostics) or f"Failed to parse {specifier}"
		super().__init__(specifier, message)
		self.diagnostics = tuple(diagnostics)

	def to_diagnostics(self) -> list[DiagnosticRecord]:
		"""Return the diagnostics carried by the error."""
		if not self.diagnostics:
			return super().to_diagnostics()
		return list(self.diagnostics)


class ReExportCycleError(DocGraphError):
	"""Raised when a chain of re-exports leads back to itself."""

	def __init__(self, specifier: str, chain: Sequence[tuple[str, str]]) -> None:
		"""
		Initialize the error.

		Args:
		    specifier: The module where the cycle was detected
		    chain: The (specifier, name) pairs forming the cycle

		"""
		rendered = " -> ".join(f"{specifier}#{name}" for specifier, name in chain)
		super().__init__(specifier, f"Re-export cycle detected: {rendered}")
		self.chain = tuple(chain)


class UnresolvedExportError(DocGraphError):
	"""Raised when a re-exported name cannot be found in its target module."""
