"""Documentation aggregation over a built module graph."""

from .aggregator import AggregateResult, DocAggregator, ModuleOrder, aggregate

__all__ = ["AggregateResult", "DocAggregator", "ModuleOrder", "aggregate"]
