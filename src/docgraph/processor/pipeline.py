"""
Pipeline wiring the loader, parser, graph builder and doc aggregator together.

``DocumentationPipeline`` reads its settings from the application
configuration and runs graph construction followed by aggregation.

"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from docgraph.config.config_loader import ConfigLoader
from docgraph.processor.comments import CommentAssociator
from docgraph.processor.docs.aggregator import DocAggregator, ModuleOrder
from docgraph.processor.graph.graph_builder import ModuleGraphBuilder
from docgraph.processor.loader import FileLoader
from docgraph.processor.syntax import SyntaxConfig
from docgraph.processor.tree_sitter.parser import TreeSitterModuleParser

if TYPE_CHECKING:
	from docgraph.config.config_schema import AppConfigSchema
	from docgraph.processor.docs.aggregator import AggregateResult
	from docgraph.processor.graph.models import GraphResult
	from docgraph.processor.interfaces import ModuleParser, SourceLoader

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
	"""The graph and the documentation built from it."""

	graph: GraphResult
	docs: AggregateResult


class DocumentationPipeline:
	"""Builds module graphs and documentation using the application configuration."""

	def __init__(
		self,
		config: AppConfigSchema | None = None,
		loader: SourceLoader | None = None,
		parser: ModuleParser | None = None,
	) -> None:
		"""
		Initialize the pipeline.

		Args:
		    config: Application configuration, defaults to the shared ConfigLoader's
		    loader: Source loader, defaults to a FileLoader built from ``config.loader``
		    parser: Module parser, defaults to the tree-sitter parser built from ``config.parser``

		"""
		self.config = config or ConfigLoader.get_instance().get
		syntax = SyntaxConfig(
			decorators=self.config.parser.decorators,
			dynamic_import=self.config.parser.dynamic_import,
		)
		self.loader = loader or FileLoader(self.config.loader, syntax)
		self.parser = parser or TreeSitterModuleParser(
			tolerate_syntax_errors=self.config.parser.tolerate_syntax_errors
		)

	def normalize_entry(self, entry: str) -> str:
		"""Normalize a user-supplied entry point when the loader knows how to."""
		if isinstance(self.loader, FileLoader):
			return self.loader.normalize_entry(entry)
		return entry

	async def build_graph(self, entry: str) -> GraphResult:
		"""Build the module graph reachable from ``entry``."""
		builder = ModuleGraphBuilder(self.loader, self.parser)
		entry_specifier = await asyncio.to_thread(self.normalize_entry, entry)
		return await builder.build(entry_specifier, timeout=self.config.build.timeout)

	async def run(self, entry: str, full_graph: bool | None = None) -> PipelineResult:
		"""
		Build the graph for ``entry`` and aggregate its documentation.

		Args:
		    entry: Entry module path or URL
		    full_graph: Document every resolved module, defaults to ``docs.full_graph``

		Returns:
		    PipelineResult: The graph and its documentation

		"""
		docs_config = self.config.docs
		graph = await self.build_graph(entry)
		aggregator = DocAggregator(
			graph,
			associator=CommentAssociator(max_blank_lines=docs_config.max_blank_lines),
			include_private=docs_config.include_private,
			module_order=ModuleOrder(docs_config.module_order),
		)
		docs = aggregator.aggregate(full_graph=docs_config.full_graph if full_graph is None else full_graph)
		logger.debug(
			"Pipeline finished for %s: %d modules, %d entries, %d diagnostics",
			graph.entry_specifier,
			len(graph.nodes),
			len(docs.entries),
			len(docs.diagnostics),
		)
		return PipelineResult(graph=graph, docs=docs)
