"""Default source loader for local files and remote modules."""

from __future__ import annotations

import asyncio
import logging
import os
import posixpath
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urljoin, urlparse

import aiofiles
import requests

from docgraph.config.config_schema import LoaderSchema
from docgraph.processor.errors import LoadError, ResolutionError
from docgraph.processor.syntax import Language, SyntaxConfig

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = ("http", "https")
RELATIVE_PREFIXES = ("./", "../", "/")

EXTENSION_LANGUAGES: dict[str, Language] = {
	".ts": "typescript",
	".mts": "typescript",
	".cts": "typescript",
	".tsx": "tsx",
	".js": "javascript",
	".mjs": "javascript",
	".cjs": "javascript",
	".jsx": "javascript",
}

# `import "./x.js"` in TypeScript sources usually points at x.ts
_JS_TO_TS = {".js": (".ts", ".tsx"), ".mjs": (".mts",), ".cjs": (".cts",), ".jsx": (".tsx",)}


def is_url(specifier: str) -> bool:
	"""Whether ``specifier`` is an absolute URL (``file`` or ``http(s)``)."""
	scheme = urlparse(specifier).scheme
	return scheme in (*REMOTE_SCHEMES, "file")


def syntax_for_specifier(specifier: str, base: SyntaxConfig | None = None) -> SyntaxConfig:
	"""
	Choose the syntax configuration from a specifier's extension.

	Unknown extensions fall back to TypeScript.

	"""
	base = base or SyntaxConfig()
	path = urlparse(specifier).path if is_url(specifier) else specifier
	suffix = PurePosixPath(path).suffix.lower()
	language = EXTENSION_LANGUAGES.get(suffix, "typescript")
	return base.model_copy(update={"language": language})


class FileLoader:
	"""
	Resolves and loads modules from the local file system and over HTTP.

	Relative specifiers are resolved against the referrer, bare specifiers only
	through the import map. Concurrent reads are bounded by a semaphore.

	"""

	def __init__(self, config: LoaderSchema | None = None, syntax: SyntaxConfig | None = None) -> None:
		"""
		Initialize the loader.

		Args:
		    config: Loader settings
		    syntax: Syntax options applied to every loaded module, except the language

		"""
		self.config = config or LoaderSchema()
		self.syntax = syntax or SyntaxConfig()
		self._semaphore = asyncio.Semaphore(self.config.max_concurrency)

	def normalize_entry(self, entry: str) -> str:
		"""Normalize a user-supplied entry point. Blocks on file system access."""
		if is_url(entry):
			return self._check_url(entry, entry)
		return str(self._find_file(Path(entry).expanduser().resolve()))

	async def resolve(self, raw_specifier: str, referrer: str) -> str:
		"""
		Normalize ``raw_specifier`` relative to ``referrer``.

		Finding files stats the file system, so it runs in a worker thread.

		Raises:
		    ResolutionError: For bare specifiers missing from the import map and
		        for remote URLs when remote loading is disabled

		"""
		return await asyncio.to_thread(self._resolve, raw_specifier, referrer)

	def _resolve(self, raw_specifier: str, referrer: str) -> str:
		specifier = self._apply_import_map(raw_specifier)

		if is_url(specifier):
			return self._check_url(specifier, referrer)

		if not specifier.startswith(RELATIVE_PREFIXES) and specifier not in (".", ".."):
			msg = f"Bare specifier {raw_specifier!r} is not mapped by the import map"
			raise ResolutionError(raw_specifier, msg, referrer=referrer)

		if is_url(referrer) and not referrer.startswith("file:"):
			return self._check_url(urljoin(referrer, specifier), referrer)

		# An absolute specifier replaces the base when joined.
		candidate = self._path_of(referrer).parent / specifier
		return str(self._find_file(Path(os.path.normpath(candidate))))

	async def load(self, specifier: str) -> tuple[SyntaxConfig, str]:
		"""
		Read the source of ``specifier``.

		Raises:
		    LoadError: If the file or URL cannot be read

		"""
		async with self._semaphore:
			if urlparse(specifier).scheme in REMOTE_SCHEMES:
				text = await asyncio.to_thread(self._fetch, specifier)
			else:
				text = await self._read(self._path_of(specifier))
		logger.debug("Loaded %s (%d chars)", specifier, len(text))
		return syntax_for_specifier(specifier, self.syntax), text

	def _apply_import_map(self, raw_specifier: str) -> str:
		"""Map a specifier through the longest matching import map prefix."""
		for prefix in sorted(self.config.import_map, key=len, reverse=True):
			if raw_specifier == prefix or (prefix.endswith("/") and raw_specifier.startswith(prefix)):
				mapped = self.config.import_map[prefix] + raw_specifier[len(prefix) :]
				logger.debug("Import map: %s -> %s", raw_specifier, mapped)
				if is_url(mapped) or mapped.startswith("/"):
					return mapped
				return str(Path(mapped).resolve())
		return raw_specifier

	def _check_url(self, url: str, referrer: str) -> str:
		parsed = urlparse(url)
		if parsed.scheme == "file":
			return str(self._find_file(Path(unquote(parsed.path))))
		if not self.config.allow_remote:
			msg = f"Remote module {url!r} is not allowed"
			raise ResolutionError(url, msg, referrer=referrer)
		path = posixpath.normpath(parsed.path) if parsed.path else "/"
		return parsed._replace(path=path, fragment="").geturl()

	@staticmethod
	def _path_of(specifier: str) -> Path:
		parsed = urlparse(specifier)
		if parsed.scheme == "file":
			return Path(unquote(parsed.path))
		return Path(specifier)

	def _find_file(self, path: Path) -> Path:
		"""
		Find the file a path refers to.

		Tries the path itself, the path with each configured extension, the
		TypeScript counterpart of a ``.js`` path and ``index`` files. Returns
		the path unchanged when nothing exists so that loading reports it.

		"""
		if path.is_file():
			return path
		for ext in self.config.extensions:
			candidate = path.with_name(path.name + ext)
			if candidate.is_file():
				return candidate
		for ext in _JS_TO_TS.get(path.suffix, ()):
			candidate = path.with_suffix(ext)
			if candidate.is_file():
				return candidate
		if path.is_dir():
			for ext in self.config.extensions:
				candidate = path / f"index{ext}"
				if candidate.is_file():
					return candidate
		return path

	@staticmethod
	async def _read(path: Path) -> str:
		try:
			async with aiofiles.open(path, encoding="utf-8") as f:
				return await f.read()
		except FileNotFoundError as e:
			msg = f"Module not found: {path}"
			raise LoadError(str(path), msg) from e
		except (OSError, UnicodeDecodeError) as e:
			msg = f"Failed to read {path}: {e}"
			raise LoadError(str(path), msg) from e

	def _fetch(self, url: str) -> str:
		try:
			response = requests.get(url, timeout=self.config.http_timeout)
			response.raise_for_status()
		except requests.RequestException as e:
			msg = f"Failed to fetch {url}: {e}"
			raise LoadError(url, msg) from e
		return response.text
