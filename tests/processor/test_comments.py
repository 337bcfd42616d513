"""Tests for the CommentAssociator."""

import pytest

from docgraph.processor.comments import CommentAssociator
from docgraph.processor.syntax import Comment, CommentKind, CommentStream, Span

pytestmark = [pytest.mark.unit, pytest.mark.processor]


def _stream(source: str) -> CommentStream:
	"""Build a comment stream by scanning ``//`` and ``/* */`` comments."""
	comments = []
	index = 0
	while index < len(source):
		if source.startswith("//", index):
			end = source.find("\n", index)
			end = len(source) if end == -1 else end
			comments.append(Comment(CommentKind.LINE, source[index:end], Span(index, end)))
			index = end
		elif source.startswith("/*", index):
			end = source.index("*/", index) + 2
			comments.append(Comment(CommentKind.BLOCK, source[index:end], Span(index, end)))
			index = end
		else:
			index += 1
	return CommentStream(source=source.encode(), comments=tuple(comments))


def _attach(source: str, marker: str = "export", max_blank_lines: int = 0) -> str | None:
	return CommentAssociator(max_blank_lines).attach(source.index(marker), _stream(source))


def test_jsdoc_block():
	"""A JSDoc block directly above a declaration is attached without its gutters."""
	source = "/**\n * Greets.\n *\n * @param name who\n */\nexport function greet(name) {}\n"

	assert _attach(source) == "Greets.\n\n@param name who"


def test_consecutive_line_comments_form_one_run():
	"""Adjacent line comments are joined with newlines."""
	source = "// first\n// second\nexport const x = 1;\n"

	assert _attach(source) == "first\nsecond"


def test_blank_line_breaks_the_run():
	"""A blank line separates a comment from the declaration unless tolerated."""
	source = "// detached\n\nexport const x = 1;\n"

	assert _attach(source) is None
	assert _attach(source, max_blank_lines=1) == "detached"


def test_blank_line_inside_run():
	"""Only the part of a run after the last large gap is attached."""
	source = "// license\n\n// doc\nexport const x = 1;\n"

	assert _attach(source) == "doc"
	assert _attach(source, max_blank_lines=1) == "license\ndoc"


def test_trailing_comment_of_previous_statement_is_not_attached():
	"""A comment sharing its line with code belongs to that code."""
	source = "const a = 1; // about a\nexport const b = 2;\n"

	assert _attach(source) is None


def test_comments_on_same_line_before_code_are_a_run():
	"""Several comments on their own line still form a leading run."""
	source = "/* a */ /* b */\nexport const b = 2;\n"

	assert _attach(source) == "a\nb"


def test_code_between_comment_and_declaration():
	"""Any code in the gap detaches the comment."""
	source = "// about a\nconst a = 1;\nexport const b = 2;\n"

	assert _attach(source, marker="export const b") is None


def test_no_comments():
	"""Declarations without comments get None."""
	assert _attach("export const x = 1;\n") is None


def test_negative_blank_line_limit_is_rejected():
	"""The blank line limit cannot be negative."""
	with pytest.raises(ValueError, match="must not be negative"):
		CommentAssociator(max_blank_lines=-1)
