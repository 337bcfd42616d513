"""Tests for configuration loading."""

import pytest
import yaml

from docgraph.config.config_loader import ConfigFileNotFoundError, ConfigLoader, ConfigParsingError
from docgraph.config.config_schema import AppConfigSchema

pytestmark = [pytest.mark.unit]


@pytest.fixture
def isolated(tmp_path, monkeypatch):
	"""Run in an empty directory with an empty XDG config home."""
	monkeypatch.chdir(tmp_path)
	monkeypatch.setattr("docgraph.config.config_loader.xdg_config_home", str(tmp_path / "xdg"))
	return tmp_path


def test_defaults_without_config_file(isolated):
	"""Without a file the schema defaults apply."""
	loader = ConfigLoader()

	assert loader.config_file is None
	assert loader.get == AppConfigSchema()
	assert loader.get.loader.max_concurrency == 8
	assert loader.get.docs.module_order == "discovery"
	assert loader.get.build.timeout is None


def test_local_config_file(isolated):
	"""./.docgraph.yml is picked up and merged with defaults."""
	(isolated / ".docgraph.yml").write_text(
		yaml.safe_dump({"docs": {"include_private": True, "max_blank_lines": 2}, "build": {"timeout": 1.5}})
	)
	config = ConfigLoader().get

	assert config.docs.include_private is True
	assert config.docs.max_blank_lines == 2
	assert config.docs.full_graph is False
	assert config.build.timeout == 1.5


def test_xdg_config_file(isolated):
	"""The XDG location is used when there is no local file."""
	xdg_file = isolated / "xdg" / "docgraph" / "config.yml"
	xdg_file.parent.mkdir(parents=True)
	xdg_file.write_text("loader:\n  allow_remote: false\n")

	loader = ConfigLoader()

	assert loader.config_file == xdg_file
	assert loader.get.loader.allow_remote is False


def test_explicit_missing_file(isolated):
	"""An explicitly given file must exist."""
	with pytest.raises(ConfigFileNotFoundError):
		ConfigLoader(isolated / "nope.yml")


@pytest.mark.parametrize(
	"content",
	[
		"- just\n- a list\n",
		"docs: [unclosed\n",
		"loader:\n  max_concurrency: 0\n",
		"docs:\n  module_order: random\n",
	],
)
def test_invalid_config(isolated, content):
	"""Malformed or invalid files raise ConfigParsingError."""
	path = isolated / "config.yml"
	path.write_text(content)

	with pytest.raises(ConfigParsingError):
		ConfigLoader(path)


def test_shared_instance_reload(isolated):
	"""get_instance returns one loader and reloads on request."""
	first = ConfigLoader.get_instance()
	assert ConfigLoader.get_instance() is first

	path = isolated / "custom.yml"
	path.write_text("parser:\n  tolerate_syntax_errors: true\n")
	reloaded = ConfigLoader.get_instance(path, reload=True)

	assert reloaded is first
	assert reloaded.get.parser.tolerate_syntax_errors is True
