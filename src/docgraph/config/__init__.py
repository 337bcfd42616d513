"""Configuration for DocGraph."""

from .config_loader import ConfigError, ConfigFileNotFoundError, ConfigLoader, ConfigParsingError
from .config_schema import AppConfigSchema, BuildSchema, DocsSchema, LoaderSchema, ParserSchema

__all__ = [
	"AppConfigSchema",
	"BuildSchema",
	"ConfigError",
	"ConfigFileNotFoundError",
	"ConfigLoader",
	"ConfigParsingError",
	"DocsSchema",
	"LoaderSchema",
	"ParserSchema",
]
