"""Global test fixtures and configuration."""

from __future__ import annotations

import asyncio
import posixpath
from collections import Counter

import pytest

from docgraph.config.config_loader import ConfigLoader
from docgraph.processor.diagnostics import DiagnosticCollector
from docgraph.processor.errors import LoadError, ParseError, ResolutionError
from docgraph.processor.models import DiagnosticRecord
from docgraph.processor.syntax import (
	CommentStream,
	ImportBinding,
	ImportDeclaration,
	ImportKind,
	ParseOutput,
	Span,
	SyntaxConfig,
	SyntaxTree,
)
from docgraph.processor.tree_sitter.parser import TreeSitterModuleParser


class InMemoryLoader:
	"""
	Loader over a dict of ``specifier -> source``.

	Specifiers are absolute POSIX paths. ``gates`` holds events a load waits
	for, ``delays`` seconds a load sleeps before returning.
	"""

	def __init__(self, modules: dict[str, str]) -> None:
		self.modules = dict(modules)
		self.loads: Counter[str] = Counter()
		self.gates: dict[str, asyncio.Event] = {}
		self.delays: dict[str, float] = {}
		self.in_flight = 0
		self.max_in_flight = 0

	def resolve(self, raw_specifier: str, referrer: str) -> str:
		if not raw_specifier.startswith(("./", "../", "/")):
			msg = f"Bare specifier {raw_specifier!r}"
			raise ResolutionError(raw_specifier, msg, referrer=referrer)
		return posixpath.normpath(posixpath.join(posixpath.dirname(referrer), raw_specifier))

	async def load(self, specifier: str) -> tuple[SyntaxConfig, str]:
		self.loads[specifier] += 1
		self.in_flight += 1
		self.max_in_flight = max(self.max_in_flight, self.in_flight)
		try:
			if specifier in self.gates:
				await self.gates[specifier].wait()
			if specifier in self.delays:
				await asyncio.sleep(self.delays[specifier])
			else:
				await asyncio.sleep(0)
			if specifier not in self.modules:
				msg = f"Module not found: {specifier}"
				raise LoadError(specifier, msg)
			return SyntaxConfig(), self.modules[specifier]
		finally:
			self.in_flight -= 1


class ImportListParser:
	"""
	Parser for a tiny test syntax: every non-empty line is a side-effect import.

	A module whose source is ``!error`` fails with a ParseError.
	"""

	def __init__(self) -> None:
		self.parses: Counter[str] = Counter()

	def parse(self, specifier: str, source_text: str, syntax: SyntaxConfig) -> ParseOutput:
		self.parses[specifier] += 1
		if source_text.strip() == "!error":
			raise ParseError(specifier, [DiagnosticRecord(specifier=specifier, message="Unexpected token", line=1, column=1)])

		items = []
		offset = 0
		for line in source_text.splitlines(keepends=True):
			target = line.strip()
			if target:
				items.append(
					ImportDeclaration(
						source=target,
						bindings=(ImportBinding(ImportKind.NAMESPACE, alias="ns"),),
						span=Span(offset, offset + len(line)),
					)
				)
			offset += len(line.encode())
		return ParseOutput(
			tree=SyntaxTree(items=tuple(items)),
			comments=CommentStream(source=source_text.encode()),
			collector=DiagnosticCollector(specifier),
		)


# --- Fixtures ---


@pytest.fixture
def memory_loader():
	"""Factory for in-memory loaders."""
	return InMemoryLoader


@pytest.fixture
def import_parser() -> ImportListParser:
	"""Parser reading one import per line."""
	return ImportListParser()


@pytest.fixture
def ts_parser() -> TreeSitterModuleParser:
	"""The tree-sitter parser."""
	return TreeSitterModuleParser()


@pytest.fixture(autouse=True)
def reset_config_loader():
	"""Drop the shared ConfigLoader between tests."""
	ConfigLoader._instance = None
	yield
	ConfigLoader._instance = None
