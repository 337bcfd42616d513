"""
Per-module diagnostic collection.

A DiagnosticCollector belongs to exactly one parse attempt of one module. The
parser records raw diagnostics carrying byte spans; draining the collector maps
those spans to line/column positions and yields DiagnosticRecords in recording
order.

"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from docgraph.processor.models import DiagnosticRecord

if TYPE_CHECKING:
	from docgraph.processor.syntax import Span

logger = logging.getLogger(__name__)


class PositionResolver(Protocol):
	"""Maps a byte offset to a 1-based (line, column) pair."""

	def __call__(self, offset: int) -> tuple[int, int]:
		"""Resolve ``offset``."""
		...


class CollectorClosedError(RuntimeError):
	"""Raised when a drained collector receives another diagnostic."""


@dataclass(frozen=True)
class RawDiagnostic:
	"""A diagnostic as reported by the parser."""

	message: str
	span: Span


class LineIndex:
	"""Position resolver over UTF-8 encoded source."""

	def __init__(self, source: bytes) -> None:
		"""
		Index the line starts of ``source``.

		Args:
		    source: The module source as bytes

		"""
		self.source = source
		self.line_starts = [0]
		self.line_starts.extend(index + 1 for index, byte in enumerate(source) if byte == ord("\n"))

	def __call__(self, offset: int) -> tuple[int, int]:
		"""
		Resolve a byte offset.

		Columns count decoded characters, so multi-byte characters advance the
		column by one. Offsets outside the source are clamped.

		"""
		offset = max(0, min(offset, len(self.source)))
		line = bisect.bisect_right(self.line_starts, offset) - 1
		line_start = self.line_starts[line]
		prefix = self.source[line_start:offset].decode("utf-8", errors="replace")
		return line + 1, len(prefix) + 1


class DiagnosticCollector:
	"""Accumulates the diagnostics of a single parse attempt."""

	def __init__(self, specifier: str) -> None:
		"""
		Bind the collector to a module.

		Args:
		    specifier: The module being parsed

		"""
		self.specifier = specifier
		self._pending: list[RawDiagnostic] = []
		self._closed = False

	def __len__(self) -> int:
		"""Number of diagnostics waiting to be drained."""
		return len(self._pending)

	@property
	def closed(self) -> bool:
		"""Whether the collector has been drained."""
		return self._closed

	def record(self, diagnostic: RawDiagnostic) -> None:
		"""
		Append a raw diagnostic.

		Raises:
		    CollectorClosedError: If the collector was already drained

		"""
		if self._closed:
			msg = f"Diagnostic collector for {self.specifier} was already drained"
			raise CollectorClosedError(msg)
		self._pending.append(diagnostic)

	def drain(self, resolve_position: PositionResolver) -> list[DiagnosticRecord]:
		"""
		Consume all recorded diagnostics.

		Args:
		    resolve_position: Maps a byte offset to (line, column)

		Returns:
		    Records in recording order, all attributed to this collector's module

		"""
		records = []
		for diagnostic in self._pending:
			line, column = resolve_position(diagnostic.span.start)
			records.append(
				DiagnosticRecord(specifier=self.specifier, message=diagnostic.message, line=line, column=column)
			)
		self._pending = []
		self._closed = True
		if records:
			logger.debug("Drained %d diagnostics for %s", len(records), self.specifier)
		return records
