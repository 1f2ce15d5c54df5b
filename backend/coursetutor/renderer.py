from __future__ import annotations
import re
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field

from .categories import CourseCategory
from .highlighter import escape_html, highlight_code, split_language_tag


class TextSegment(BaseModel):
	kind: Literal["text"] = "text"
	html: str


class CodeSegment(BaseModel):
	kind: Literal["code"] = "code"
	code: str
	language: Optional[str] = None
	html: str


class MathSegment(BaseModel):
	kind: Literal["math"] = "math"
	formula: str
	html: str


class QuoteSegment(BaseModel):
	kind: Literal["quote"] = "quote"
	text: str
	html: str


RenderSegment = Annotated[
	Union[TextSegment, CodeSegment, MathSegment, QuoteSegment],
	Field(discriminator="kind"),
]


_FENCE_RE = re.compile(r"```([\s\S]*?)```")
_MATH_BLOCK_RE = re.compile(r"\$\$([\s\S]+?)\$\$")
_INLINE_MATH_RE = re.compile(r"\$([^$\n]+?)\$")
# "> line" at line start, or a long passage in straight or curly double quotes
_QUOTE_RE = re.compile(r'^>[ \t]?(?P<line>.+)$|"(?P<straight>[^"]{20,})"|“(?P<curly>[^”]{20,})”', re.M)
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_LIST_ITEM_RE = re.compile(r"^\* (.*)$", re.M)

# Pieces are (kind, payload) pairs; payload is raw text, never html
_Piece = Tuple[str, str]


# Stands in for an inline formula while markdown-lite runs over the prose
_PLACEHOLDER = "\x00{}\x00"
_PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")


def format_inline(text: str, category: CourseCategory = CourseCategory.OTHER) -> str:
	"""Markdown-lite for plain prose; the text is escaped before any tag is added.

	Inline formulas are lifted out first so bold/list rules never reach inside them.
	"""
	html = escape_html(text.replace("\x00", ""))
	formulas: List[str] = []
	if category.renders_math:
		def _hold(m: re.Match) -> str:
			formulas.append(m.group(1))
			return _PLACEHOLDER.format(len(formulas) - 1)
		html = _INLINE_MATH_RE.sub(_hold, html)
	html = _BOLD_RE.sub(r"<strong>\1</strong>", html)
	html = _LIST_ITEM_RE.sub(r"<li>\1</li>", html)
	html = html.replace("</li>\n", "</li>")
	html = html.replace("\n", "<br/>")
	return _PLACEHOLDER_RE.sub(
		lambda m: f'<span class="math-inline">{formulas[int(m.group(1))]}</span>', html
	)


def _split(pieces: List[_Piece], pattern: re.Pattern, kind: str) -> List[_Piece]:
	out: List[_Piece] = []
	for piece_kind, payload in pieces:
		if piece_kind != "text":
			out.append((piece_kind, payload))
			continue
		pos = 0
		for m in pattern.finditer(payload):
			out.append(("text", payload[pos:m.start()]))
			out.append((kind, next(g for g in m.groups() if g is not None)))
			pos = m.end()
		out.append(("text", payload[pos:]))
	return out


def _to_segment(kind: str, payload: str, category: CourseCategory):
	if kind == "math":
		formula = payload.strip()
		return MathSegment(formula=formula, html=f'<div class="math-block">{escape_html(formula)}</div>')
	if kind == "quote":
		text = payload.strip()
		return QuoteSegment(text=text, html=f'<blockquote class="quote">"{escape_html(text)}"</blockquote>')
	return TextSegment(html=format_inline(payload, category))


def _render_plain(text: str, category: CourseCategory) -> List[RenderSegment]:
	pieces: List[_Piece] = [("text", text)]
	if category.renders_math:
		pieces = _split(pieces, _MATH_BLOCK_RE, "math")
	if category.renders_quotes:
		pieces = _split(pieces, _QUOTE_RE, "quote")
	return [_to_segment(kind, payload, category) for kind, payload in pieces if payload]


def _render_code(body: str) -> CodeSegment:
	language, code = split_language_tag(body)
	return CodeSegment(code=code, language=language, html=highlight_code(code))


def render_reply(text: str, category: CourseCategory | str = CourseCategory.OTHER) -> List[RenderSegment]:
	"""Turn reply text into display segments in source order.

	Fenced code is split out for every category; math blocks only for math
	courses and quotations only for letters courses. Unclosed delimiters stay
	as literal text.
	"""
	category = CourseCategory.parse(category)
	segments: List[RenderSegment] = []
	if not text:
		return segments
	pos = 0
	for m in _FENCE_RE.finditer(text):
		segments.extend(_render_plain(text[pos:m.start()], category))
		segments.append(_render_code(m.group(1)))
		pos = m.end()
	segments.extend(_render_plain(text[pos:], category))
	return segments
