"""Capabilities the graph builder consumes from its collaborators."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
	from collections.abc import Awaitable

	from docgraph.processor.syntax import ParseOutput, SyntaxConfig


@runtime_checkable
class SourceLoader(Protocol):
	"""Resolves specifiers and supplies module source text."""

	def resolve(self, raw_specifier: str, referrer: str) -> str | Awaitable[str]:
		"""
		Normalize ``raw_specifier`` as written in ``referrer``. May return an awaitable.

		Raises:
		    ResolutionError: If the specifier cannot be normalized or is not allowed

		"""
		...

	async def load(self, specifier: str) -> tuple[SyntaxConfig, str]:
		"""
		Fetch the source of a normalized specifier.

		Raises:
		    LoadError: If the source cannot be read

		"""
		...


@runtime_checkable
class ModuleParser(Protocol):
	"""Turns source text into a syntax tree, a comment stream and diagnostics."""

	def parse(
		self, specifier: str, source_text: str, syntax: SyntaxConfig
	) -> ParseOutput | Awaitable[ParseOutput]:
		"""
		Parse one module. May return an awaitable.

		Raises:
		    ParseError: Carrying the diagnostics collected so far

		"""
		...
