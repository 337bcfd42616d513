"""Tree-sitter backed module parsing."""

from .parser import TreeSitterModuleParser

__all__ = ["TreeSitterModuleParser"]
