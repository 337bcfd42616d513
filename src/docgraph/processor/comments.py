"""Attach leading comments to declarations."""

from __future__ import annotations

import bisect
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
	from docgraph.processor.syntax import Comment, CommentStream

logger = logging.getLogger(__name__)


class CommentAssociator:
	"""
	Finds the documentation comment that leads a declaration.

	The attached comment is the longest run of comments ending right before the
	declaration, where only whitespace separates neighbours and no gap holds
	more than ``max_blank_lines`` blank lines. A comment that shares its line
	with preceding code belongs to that code and stops the run.

	"""

	def __init__(self, max_blank_lines: int = 0) -> None:
		"""
		Initialize the associator.

		Args:
		    max_blank_lines: Blank lines tolerated between neighbours of a run

		"""
		if max_blank_lines < 0:
			msg = "max_blank_lines must not be negative"
			raise ValueError(msg)
		self.max_blank_lines = max_blank_lines

	def attach(self, declaration_offset: int, stream: CommentStream) -> str | None:
		"""
		Return the comment attached to the declaration starting at ``declaration_offset``.

		Args:
		    declaration_offset: Byte offset where the declaration (or its export statement) starts
		    stream: The module's comments

		Returns:
		    The joined comment bodies, or None when nothing is attached

		"""
		run = self.leading_run(declaration_offset, stream)
		if not run:
			return None
		return "\n".join(comment.body for comment in run)

	def leading_run(self, declaration_offset: int, stream: CommentStream) -> list[Comment]:
		"""Return the attached comments in source order."""
		comments = stream.comments
		ends = [comment.span.end for comment in comments]
		index = bisect.bisect_right(ends, declaration_offset) - 1

		run: list[Comment] = []
		boundary = declaration_offset
		while index >= 0:
			comment = comments[index]
			if not self._is_adjacent(stream.source, comment.span.end, boundary):
				break
			if self._is_trailing(stream, index):
				break
			run.append(comment)
			boundary = comment.span.start
			index -= 1

		run.reverse()
		return run

	def _is_adjacent(self, source: bytes, start: int, end: int) -> bool:
		"""Whether ``source[start:end]`` is whitespace within the blank line limit."""
		gap = source[start:end]
		if gap.strip():
			return False
		blank_lines = max(0, gap.count(b"\n") - 1)
		return blank_lines <= self.max_blank_lines

	@staticmethod
	def _is_trailing(stream: CommentStream, index: int) -> bool:
		"""Whether code precedes the comment at ``index`` on its first line."""
		source = stream.source
		cursor = stream.comments[index].span.start
		line_start = source.rfind(b"\n", 0, cursor) + 1

		# Earlier comments on the same line are not code.
		for previous in reversed(stream.comments[:index]):
			if previous.span.end <= line_start:
				break
			if source[previous.span.end : cursor].strip():
				return True
			if previous.span.start < line_start:
				return False
			cursor = previous.span.start
		return bool(source[line_start:cursor].strip())
