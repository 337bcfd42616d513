"""Module parser backed by tree-sitter grammars."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tree_sitter_language_pack import get_parser

from docgraph.processor.diagnostics import DiagnosticCollector, LineIndex, RawDiagnostic
from docgraph.processor.errors import ParseError
from docgraph.processor.syntax import Comment, CommentKind, CommentStream, ParseOutput, Span, SyntaxTree
from docgraph.processor.tree_sitter.languages.typescript import TypeScriptSyntaxHandler

if TYPE_CHECKING:
	from tree_sitter import Node, Parser

	from docgraph.processor.syntax import Language, SyntaxConfig

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 20


class TreeSitterModuleParser:
	"""
	Parses TypeScript, TSX and JavaScript modules.

	Syntax errors, missing tokens and disabled syntax features are recorded as
	diagnostics. Unless ``tolerate_syntax_errors`` is set, any diagnostic makes
	the parse fail with a ParseError carrying all of them.

	"""

	def __init__(self, tolerate_syntax_errors: bool = False, handler: TypeScriptSyntaxHandler | None = None) -> None:
		"""
		Initialize the parser.

		Args:
		    tolerate_syntax_errors: Return a partial tree instead of failing
		    handler: Converts top-level statements into module items

		"""
		self.tolerate_syntax_errors = tolerate_syntax_errors
		self.handler = handler or TypeScriptSyntaxHandler()
		self._parsers: dict[Language, Parser] = {}

	def get_parser(self, language: Language) -> Parser:
		"""Get a cached parser for ``language``."""
		if language not in self._parsers:
			self._parsers[language] = get_parser(language)
		return self._parsers[language]

	def parse(self, specifier: str, source_text: str, syntax: SyntaxConfig) -> ParseOutput:
		"""
		Parse one module.

		Args:
		    specifier: The module being parsed
		    source_text: Module source
		    syntax: Language and enabled syntax features

		Returns:
		    The module items, its comments and an undrained diagnostic collector

		Raises:
		    ParseError: If diagnostics were recorded and errors are not tolerated

		"""
		content_bytes = source_text.encode("utf-8")
		tree = self.get_parser(syntax.language).parse(content_bytes)
		collector = DiagnosticCollector(specifier)

		comments = self._walk(tree.root_node, content_bytes, syntax, collector)

		if len(collector) and not self.tolerate_syntax_errors:
			diagnostics = collector.drain(LineIndex(content_bytes))
			raise ParseError(specifier, diagnostics)
		if len(collector):
			logger.debug("Tolerating %d syntax diagnostics in %s", len(collector), specifier)

		items = self.handler.extract_items(tree.root_node, content_bytes)
		return ParseOutput(
			tree=SyntaxTree(items=items, root=tree),
			comments=CommentStream(source=content_bytes, comments=tuple(comments)),
			collector=collector,
		)

	def _walk(
		self, root: Node, content_bytes: bytes, syntax: SyntaxConfig, collector: DiagnosticCollector
	) -> list[Comment]:
		"""Collect comments and record diagnostics in source order."""
		comments: list[Comment] = []
		stack = [root]
		while stack:
			node = stack.pop()
			span = Span(node.start_byte, node.end_byte)

			if node.type in self.handler.config.comment:
				text = content_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")
				kind = CommentKind.LINE if text.startswith("//") else CommentKind.BLOCK
				comments.append(Comment(kind=kind, text=text, span=span))
				continue

			if node.is_error:
				collector.record(RawDiagnostic(f"Unexpected token `{self._snippet(node, content_bytes)}`", span))
				continue
			if node.is_missing:
				collector.record(RawDiagnostic(f"Expected `{node.type}`", span))
				continue
			if node.type == "decorator" and not syntax.decorators:
				collector.record(RawDiagnostic("Decorators are not enabled", span))
			elif node.type == "call_expression" and not syntax.dynamic_import:
				function = node.child_by_field_name("function")
				if function is not None and function.type == "import":
					collector.record(RawDiagnostic("Dynamic import is not enabled", span))

			stack.extend(reversed(node.children))
		return comments

	@staticmethod
	def _snippet(node: Node, content_bytes: bytes) -> str:
		text = content_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="replace")
		lines = text.strip().splitlines()
		first = lines[0] if lines else ""
		return first[:SNIPPET_LENGTH]
