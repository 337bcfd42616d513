"""Language specific node handling."""

from .typescript import TYPESCRIPT_CONFIG, TypeScriptConfig, TypeScriptSyntaxHandler

__all__ = ["TYPESCRIPT_CONFIG", "TypeScriptConfig", "TypeScriptSyntaxHandler"]
