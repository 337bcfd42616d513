"""TypeScript/JavaScript node handling for module item extraction."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar

from docgraph.processor.models import DocKind
from docgraph.processor.syntax import (
	Declaration,
	ExportName,
	ImportBinding,
	ImportDeclaration,
	ImportKind,
	LocalExport,
	ModuleItem,
	ReExportDeclaration,
	Span,
)

if TYPE_CHECKING:
	from tree_sitter import Node

logger = logging.getLogger(__name__)


class TypeScriptConfig:
	"""Node types of the tree-sitter TypeScript, TSX and JavaScript grammars."""

	# Module structure
	import_: ClassVar[list[str]] = ["import_statement"]
	export: ClassVar[list[str]] = ["export_statement"]
	ambient: ClassVar[list[str]] = ["ambient_declaration"]

	# Declarations
	function: ClassVar[list[str]] = [
		"function_declaration",
		"generator_function_declaration",
		"function_signature",
	]
	class_: ClassVar[list[str]] = ["class_declaration", "abstract_class_declaration"]
	interface: ClassVar[list[str]] = ["interface_declaration"]
	type_alias: ClassVar[list[str]] = ["type_alias_declaration"]
	enum: ClassVar[list[str]] = ["enum_declaration"]
	variable: ClassVar[list[str]] = ["lexical_declaration", "variable_declaration"]

	# Default export values
	function_value: ClassVar[list[str]] = [
		"function_expression",
		"function",
		"arrow_function",
		"generator_function",
	]
	class_value: ClassVar[list[str]] = ["class"]
	identifier: ClassVar[list[str]] = ["identifier"]

	# Documentation
	comment: ClassVar[list[str]] = ["comment"]

	file_extensions: ClassVar[list[str]] = [".ts", ".mts", ".cts", ".tsx", ".js", ".mjs", ".cjs", ".jsx"]


TYPESCRIPT_CONFIG = TypeScriptConfig()


class TypeScriptSyntaxHandler:
	"""Converts top-level statements into module items."""

	def __init__(self, config: TypeScriptConfig = TYPESCRIPT_CONFIG) -> None:
		"""Initialize with the node type configuration."""
		self.config = config
		self._kinds: dict[str, DocKind] = {}
		for node_types, kind in (
			(config.function, DocKind.FUNCTION),
			(config.class_, DocKind.CLASS),
			(config.interface, DocKind.INTERFACE),
			(config.type_alias, DocKind.TYPE_ALIAS),
			(config.enum, DocKind.ENUM),
			(config.variable, DocKind.VARIABLE),
		):
			for node_type in node_types:
				self._kinds[node_type] = kind

	def extract_items(self, root: Node, content_bytes: bytes) -> tuple[ModuleItem, ...]:
		"""
		Extract module items from the children of the program node.

		Args:
		    root: The program node
		    content_bytes: Source code content as bytes

		Returns:
		    Items in source order

		"""
		items: list[ModuleItem] = []
		for child in root.named_children:
			if child.type in self.config.import_:
				item = self._import(child, content_bytes)
				if item is not None:
					items.append(item)
			elif child.type in self.config.export:
				items.extend(self._export(child, content_bytes))
			else:
				items.extend(self._declarations(child, content_bytes, statement_start=child.start_byte))
		return tuple(items)

	def _import(self, node: Node, content_bytes: bytes) -> ImportDeclaration | None:
		source_node = node.child_by_field_name("source")
		bindings: list[ImportBinding] = []

		for child in node.named_children:
			if child.type == "import_clause":
				bindings.extend(self._import_clause(child, content_bytes))
			elif child.type == "import_require_clause":
				# import x = require("y")
				source_node = child.child_by_field_name("source") or source_node
				name_node = child.named_children[0] if child.named_children else None
				if name_node is not None and name_node.type == "identifier":
					bindings.append(ImportBinding(ImportKind.NAMESPACE, alias=self._text(name_node, content_bytes)))

		if source_node is None:
			logger.debug("Skipping import without a source at byte %d", node.start_byte)
			return None
		return ImportDeclaration(
			source=self._string_value(source_node, content_bytes),
			bindings=tuple(bindings),
			span=Span(node.start_byte, node.end_byte),
		)

	def _import_clause(self, clause: Node, content_bytes: bytes) -> list[ImportBinding]:
		bindings = []
		for child in clause.named_children:
			if child.type == "identifier":
				bindings.append(ImportBinding(ImportKind.DEFAULT, name="default", alias=self._text(child, content_bytes)))
			elif child.type == "namespace_import":
				alias = child.named_children[-1] if child.named_children else None
				bindings.append(
					ImportBinding(ImportKind.NAMESPACE, alias=self._text(alias, content_bytes) if alias else None)
				)
			elif child.type == "named_imports":
				for specifier in child.named_children:
					if specifier.type != "import_specifier":
						continue
					name_node = specifier.child_by_field_name("name")
					alias_node = specifier.child_by_field_name("alias")
					if name_node is None:
						continue
					bindings.append(
						ImportBinding(
							ImportKind.NAMED,
							name=self._name_value(name_node, content_bytes),
							alias=self._text(alias_node, content_bytes) if alias_node else None,
						)
					)
		return bindings

	def _export(self, node: Node, content_bytes: bytes) -> list[ModuleItem]:
		span = Span(node.start_byte, node.end_byte)
		source_node = node.child_by_field_name("source")
		clause = next((child for child in node.named_children if child.type == "export_clause"), None)
		text = self._collapse(self._text(node, content_bytes)).rstrip(";")

		if source_node is not None:
			source = self._string_value(source_node, content_bytes)
			if clause is not None:
				names = self._export_names(clause, content_bytes)
				return [ReExportDeclaration(source=source, names=names, span=span, text=text)]
			namespace = next((child for child in node.named_children if child.type == "namespace_export"), None)
			if namespace is not None and namespace.named_children:
				name = self._name_value(namespace.named_children[-1], content_bytes)
				return [ReExportDeclaration(source=source, names=None, span=span, namespace=name, text=text)]
			return [ReExportDeclaration(source=source, names=None, span=span, text=text)]

		if clause is not None:
			return [LocalExport(names=self._export_names(clause, content_bytes), span=span, text=text)]

		is_default = any(child.type == "default" for child in node.children)
		declaration = node.child_by_field_name("declaration")
		if declaration is not None:
			return self._declarations(
				declaration, content_bytes, statement_start=node.start_byte, exported=True, default=is_default
			)

		value = node.child_by_field_name("value")
		if value is not None and is_default and value.type in self.config.identifier:
			name = ExportName(name=self._text(value, content_bytes), alias="default")
			return [LocalExport(names=(name,), span=span, text=text)]
		if value is not None and is_default:
			return [self._default_value(node, value, content_bytes)]
		return []

	def _export_names(self, clause: Node, content_bytes: bytes) -> tuple[ExportName, ...]:
		names = []
		for specifier in clause.named_children:
			if specifier.type != "export_specifier":
				continue
			name_node = specifier.child_by_field_name("name")
			alias_node = specifier.child_by_field_name("alias")
			if name_node is None:
				continue
			names.append(
				ExportName(
					name=self._name_value(name_node, content_bytes),
					alias=self._name_value(alias_node, content_bytes) if alias_node else None,
				)
			)
		return tuple(names)

	def _declarations(
		self,
		node: Node,
		content_bytes: bytes,
		statement_start: int,
		exported: bool = False,
		default: bool = False,
	) -> list[Declaration]:
		"""Declarations introduced by ``node``; several for ``const a = 1, b = 2``."""
		if node.type in self.config.ambient:
			inner = next((child for child in node.named_children if child.type in self._kinds), None)
			if inner is None:
				return []
			return self._declarations(inner, content_bytes, statement_start, exported, default)

		kind = self._kinds.get(node.type)
		if kind is None:
			return []
		span = Span(node.start_byte, node.end_byte)

		if kind is DocKind.VARIABLE:
			keyword = node.children[0].type if node.children else "var"
			declarations = []
			for declarator in node.named_children:
				if declarator.type != "variable_declarator":
					continue
				name_node = declarator.child_by_field_name("name")
				if name_node is None:
					continue
				name = self._text(name_node, content_bytes)
				type_node = declarator.child_by_field_name("type")
				type_text = self._text(type_node, content_bytes) if type_node else ""
				declarations.append(
					Declaration(
						name=name,
						kind=kind,
						signature=self._collapse(f"{keyword} {name}{type_text}"),
						span=span,
						statement_start=statement_start,
						exported=exported,
						default=default,
					)
				)
			return declarations

		name_node = node.child_by_field_name("name")
		if name_node is None and not default:
			return []
		name = self._text(name_node, content_bytes) if name_node else "default"
		return [
			Declaration(
				name=name,
				kind=kind,
				signature=self._signature(node, content_bytes),
				span=span,
				statement_start=statement_start,
				exported=exported,
				default=default,
			)
		]

	def _default_value(self, statement: Node, value: Node, content_bytes: bytes) -> Declaration:
		"""``export default <expression>``, named after the expression when it has a name."""
		if value.type in self.config.function_value:
			kind = DocKind.FUNCTION
		elif value.type in self.config.class_value:
			kind = DocKind.CLASS
		else:
			kind = DocKind.VARIABLE

		if kind is DocKind.VARIABLE:
			first_line = self._text(value, content_bytes).splitlines()[0] if value.end_byte > value.start_byte else ""
			signature = f"export default {first_line}".rstrip(";")
		else:
			signature = self._signature(value, content_bytes)

		name_node = value.child_by_field_name("name")
		return Declaration(
			name=self._text(name_node, content_bytes) if name_node is not None else "default",
			kind=kind,
			signature=signature,
			span=Span(value.start_byte, value.end_byte),
			statement_start=statement.start_byte,
			exported=True,
			default=True,
		)

	def _signature(self, node: Node, content_bytes: bytes) -> str:
		"""The declaration text up to its body, whitespace collapsed."""
		body = node.child_by_field_name("body")
		end = body.start_byte if body is not None and node.type not in self.config.type_alias else node.end_byte
		text = content_bytes[node.start_byte : end].decode("utf-8", errors="ignore")
		return self._collapse(text).rstrip(";").rstrip()

	@staticmethod
	def _collapse(text: str) -> str:
		return " ".join(text.split())

	@staticmethod
	def _text(node: Node, content_bytes: bytes) -> str:
		return content_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")

	def _string_value(self, node: Node, content_bytes: bytes) -> str:
		"""Contents of a string literal without its quotes."""
		return self._text(node, content_bytes)[1:-1]

	def _name_value(self, node: Node, content_bytes: bytes) -> str:
		"""An export/import name, which may be an identifier or a string literal."""
		if node.type == "string":
			return self._string_value(node, content_bytes)
		return self._text(node, content_bytes)
