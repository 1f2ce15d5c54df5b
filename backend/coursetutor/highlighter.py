from __future__ import annotations
import html
import re
from typing import Optional, Tuple


KEYWORDS = frozenset({
	# C-like / JS / TS / Java
	"class", "public", "private", "protected", "static", "function", "const", "let", "var",
	"if", "else", "switch", "case", "default", "for", "while", "do", "break", "continue",
	"return", "import", "export", "from", "async", "await", "new", "this", "typeof",
	"interface", "type", "implements", "extends", "void", "int", "float", "double",
	"string", "bool", "boolean", "char", "struct", "enum", "try", "catch", "finally",
	"throw", "null", "true", "false",
	# Python
	"def", "elif", "in", "is", "not", "and", "or", "None", "True", "False", "pass",
	"except", "raise", "with", "as", "lambda", "yield", "global", "nonlocal", "self",
})

TOKEN_CLASSES = {
	"string": "tok-string",
	"comment": "tok-comment",
	"keyword": "tok-keyword",
	"number": "tok-number",
}

# One alternation so a single left-to-right pass decides each token; earlier
# groups win, which keeps keywords and numbers inside strings/comments untouched.
_TOKEN_RE = re.compile(
	r"(?P<string>\"(?:\\.|[^\"\\\n])*\"|'(?:\\.|[^'\\\n])*'|`[^`]*`)"
	r"|(?P<comment>//[^\n]*|/\*[\s\S]*?\*/|(?<![&\w])#[^\n]*)"
	r"|(?P<keyword>(?<!&)\b(?:" + "|".join(sorted(KEYWORDS, key=len, reverse=True)) + r")\b)"
	r"|(?P<number>(?<![\w#])\d+(?:\.\d+)?\b)"
)

# "&" that does not already start a character reference
_BARE_AMP_RE = re.compile(r"&(?!(?:[A-Za-z][A-Za-z0-9]*|#[0-9]+|#[xX][0-9A-Fa-f]+);)")

_LANG_TAG_RE = re.compile(r"^[\w+#.-]*$")


def escape_html(text: str) -> str:
	if not text:
		return ""
	text = _BARE_AMP_RE.sub("&amp;", text)
	return text.replace("<", "&lt;").replace(">", "&gt;")


def _wrap(match: re.Match) -> str:
	kind = match.lastgroup
	return f'<span class="{TOKEN_CLASSES[kind]}">{match.group(kind)}</span>'


def highlight_code(code: str) -> str:
	if not code:
		return ""
	# Source code is literal: every "&" is escaped, even one that looks like a reference
	return _TOKEN_RE.sub(_wrap, html.escape(code, quote=False))


def split_language_tag(body: str) -> Tuple[Optional[str], str]:
	"""Split the inside of a ``` fence into (language, code).

	The first line is dropped only when it is blank or a single bare word such
	as ``python`` or ``c++``.
	"""
	first, sep, rest = body.partition("\n")
	if sep and _LANG_TAG_RE.match(first.strip()):
		language = first.strip() or None
		return language, rest.rstrip("\n")
	return None, body.rstrip("\n")
