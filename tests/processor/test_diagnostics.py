"""Tests for diagnostic collection and position mapping."""

import pytest

from docgraph.processor.diagnostics import CollectorClosedError, DiagnosticCollector, LineIndex, RawDiagnostic
from docgraph.processor.errors import ParseError, ReExportCycleError
from docgraph.processor.models import DiagnosticRecord
from docgraph.processor.syntax import Span

pytestmark = [pytest.mark.unit, pytest.mark.processor]


def test_line_index_positions():
	"""Offsets map to 1-based lines and character columns."""
	source = "ab\ncd\n\nef".encode()
	index = LineIndex(source)

	assert index(0) == (1, 1)
	assert index(1) == (1, 2)
	assert index(3) == (2, 1)
	assert index(6) == (3, 1)
	assert index(7) == (4, 1)
	assert index(9) == (4, 3)


def test_line_index_counts_characters_not_bytes():
	"""Multi-byte characters advance the column by one."""
	source = "const é = 1;".encode()
	index = LineIndex(source)

	assert index(len("const é ".encode())) == (1, 9)


def test_line_index_clamps_offsets():
	"""Offsets outside the source are clamped."""
	index = LineIndex(b"ab\ncd")

	assert index(-5) == (1, 1)
	assert index(100) == (2, 3)


def test_collector_drains_in_recording_order():
	"""Records come out in the order they were recorded, bound to the collector's module."""
	source = b"one\ntwo\nthree"
	collector = DiagnosticCollector("/mod.ts")
	collector.record(RawDiagnostic("second line", Span(4, 7)))
	collector.record(RawDiagnostic("first line", Span(0, 3)))
	assert len(collector) == 2

	records = collector.drain(LineIndex(source))

	assert records == [
		DiagnosticRecord(specifier="/mod.ts", message="second line", line=2, column=1),
		DiagnosticRecord(specifier="/mod.ts", message="first line", line=1, column=1),
	]
	assert collector.closed
	assert len(collector) == 0


def test_collector_rejects_records_after_drain():
	"""A drained collector cannot receive more diagnostics."""
	collector = DiagnosticCollector("/mod.ts")
	collector.drain(LineIndex(b""))

	with pytest.raises(CollectorClosedError):
		collector.record(RawDiagnostic("late", Span(0, 0)))


def test_diagnostic_record_rendering():
	"""Records render as ``message at specifier:line:column``."""
	assert str(DiagnosticRecord(specifier="/a.ts", message="Unexpected token", line=3, column=7)) == (
		"Unexpected token at /a.ts:3:7"
	)
	assert str(DiagnosticRecord(specifier="/a.ts", message="Module not found")) == "Module not found at /a.ts"


def test_parse_error_message_joins_diagnostics():
	"""ParseError carries all diagnostics and joins them in its message."""
	records = [
		DiagnosticRecord(specifier="/a.ts", message="Unexpected token", line=1, column=2),
		DiagnosticRecord(specifier="/a.ts", message="Expected `;`", line=2, column=1),
	]
	error = ParseError("/a.ts", records)

	assert error.message == "Unexpected token at /a.ts:1:2,Expected `;` at /a.ts:2:1"
	assert error.to_diagnostics() == records


def test_re_export_cycle_error_message():
	"""The cycle chain is rendered in order."""
	error = ReExportCycleError("/a.ts", [("/a.ts", "x"), ("/b.ts", "x"), ("/a.ts", "x")])

	assert error.message == "Re-export cycle detected: /a.ts#x -> /b.ts#x -> /a.ts#x"
	assert error.to_diagnostics() == [DiagnosticRecord(specifier="/a.ts", message=error.message)]
