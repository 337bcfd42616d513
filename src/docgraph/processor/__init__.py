"""Processing core: diagnostics, comment association, graph building and doc aggregation."""
