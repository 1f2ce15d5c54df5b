from __future__ import annotations
from typing import List, Optional

from pydantic import BaseModel, Field

from .categories import CourseCategory
from .protocol import parse_reply
from .renderer import RenderSegment, render_reply


class TutorReply(BaseModel):
	display_text: str
	options: Optional[List[str]] = None
	is_code_request: bool = False
	segments: List[RenderSegment] = Field(default_factory=list)


def process_reply(raw_text: str, category: CourseCategory | str = CourseCategory.OTHER) -> TutorReply:
	parsed = parse_reply(raw_text)
	return TutorReply(
		display_text=parsed.display_text,
		options=parsed.options,
		is_code_request=parsed.is_code_request,
		segments=render_reply(parsed.display_text, category),
	)
