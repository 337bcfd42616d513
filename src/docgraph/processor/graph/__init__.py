"""Module entry point for graph processing."""

from .graph_builder import ModuleGraphBuilder, build
from .models import CycleNotice, GraphNode, GraphResult, ImportEdge, NodeState, ParsedUnit

__all__ = [
	"CycleNotice",
	"GraphNode",
	"GraphResult",
	"ImportEdge",
	"ModuleGraphBuilder",
	"NodeState",
	"ParsedUnit",
	"build",
]
