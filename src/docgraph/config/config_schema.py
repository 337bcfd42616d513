"""Schemas for the DocGraph configuration file."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

DEFAULT_EXTENSIONS = [".ts", ".tsx", ".mts", ".cts", ".js", ".jsx", ".mjs", ".cjs"]


class LoaderSchema(BaseModel):
	"""How specifiers are resolved and sources are read."""

	max_concurrency: int = Field(default=8, ge=1)
	extensions: list[str] = Field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
	import_map: dict[str, str] = Field(default_factory=dict)
	allow_remote: bool = True
	http_timeout: float = Field(default=30.0, gt=0)


class ParserSchema(BaseModel):
	"""Syntax options applied by the module parser."""

	tolerate_syntax_errors: bool = False
	decorators: bool = True
	dynamic_import: bool = True


class DocsSchema(BaseModel):
	"""How documentation entries are aggregated."""

	max_blank_lines: int = Field(default=0, ge=0)
	include_private: bool = False
	full_graph: bool = False
	module_order: Literal["discovery", "specifier"] = "discovery"


class BuildSchema(BaseModel):
	"""Limits for graph construction."""

	timeout: float | None = Field(default=None, gt=0)


class AppConfigSchema(BaseModel):
	"""Top-level configuration."""

	loader: LoaderSchema = Field(default_factory=LoaderSchema)
	parser: ParserSchema = Field(default_factory=ParserSchema)
	docs: DocsSchema = Field(default_factory=DocsSchema)
	build: BuildSchema = Field(default_factory=BuildSchema)
