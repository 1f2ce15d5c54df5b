"""
Sentinel markers carried inside tutor replies.

The model is asked to end a reply with at most one double-brace marker:

    {{Yes|No|Maybe}}     multiple-choice options, pipe separated
    {{CODE_REQUEST}}     reveal the code editor for the next student turn

Only the first marker in a reply is interpreted and removed; any later
``{{...}}`` text is shown as-is.
"""

from __future__ import annotations
import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

CODE_REQUEST = "CODE_REQUEST"

_MARKER_RE = re.compile(r"\{\{(.+?)\}\}")


class ParsedReply(BaseModel):
	model_config = ConfigDict(frozen=True)

	display_text: str
	options: Optional[List[str]] = None
	is_code_request: bool = False


def _split_options(content: str) -> Optional[List[str]]:
	options = [piece.strip() for piece in content.split("|")]
	options = [o for o in options if o]
	return options or None


def parse_reply(text: str) -> ParsedReply:
	text = text or ""
	match = _MARKER_RE.search(text)
	if match is None:
		return ParsedReply(display_text=text)
	content = match.group(1)
	display = (text[: match.start()] + text[match.end():]).strip()
	if CODE_REQUEST in content:
		return ParsedReply(display_text=display, is_code_request=True)
	return ParsedReply(display_text=display, options=_split_options(content))
