"""
DocGraph - documentation extraction across TypeScript/JavaScript module graphs.

Starting from an entry module, DocGraph follows import statements, parses every
reachable module once and collects the documentation attached to exported
declarations.

"""

from __future__ import annotations

__version__ = "0.3.0"
__author__ = "DocGraph Contributors"

from docgraph.processor.docs.aggregator import AggregateResult, DocAggregator, aggregate
from docgraph.processor.graph.graph_builder import ModuleGraphBuilder, build
from docgraph.processor.graph.models import GraphNode, GraphResult, NodeState

__all__ = [
	"AggregateResult",
	"DocAggregator",
	"GraphNode",
	"GraphResult",
	"ModuleGraphBuilder",
	"NodeState",
	"aggregate",
	"build",
]
