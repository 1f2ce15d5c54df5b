from __future__ import annotations
from typing import Any, List

from fastapi import APIRouter
from pydantic import BaseModel, field_validator

from ..categories import CourseCategory, CourseContext
from ..composer import build_system_prompt
from ..highlighter import highlight_code
from ..pipeline import TutorReply, process_reply
from ..protocol import ParsedReply, parse_reply
from ..renderer import RenderSegment, render_reply

# Stateless helpers for clients that already hold the course and reply text
router = APIRouter(prefix="/tutor", tags=["tutor"])


class PromptResponse(BaseModel):
	system_prompt: str


class TextRequest(BaseModel):
	text: str
	category: CourseCategory = CourseCategory.OTHER

	@field_validator("category", mode="before")
	@classmethod
	def _coerce_category(cls, value: Any) -> CourseCategory:
		return CourseCategory.parse(value)


class CodeRequest(BaseModel):
	code: str


class RenderResponse(BaseModel):
	segments: List[RenderSegment]


@router.post("/prompt", response_model=PromptResponse)
def compose_prompt(context: CourseContext):
	return PromptResponse(system_prompt=build_system_prompt(context))


@router.post("/parse", response_model=ParsedReply)
def parse(req: TextRequest):
	return parse_reply(req.text)


@router.post("/render", response_model=RenderResponse)
def render(req: TextRequest):
	return RenderResponse(segments=render_reply(req.text, req.category))


@router.post("/process", response_model=TutorReply)
def process(req: TextRequest):
	return process_reply(req.text, req.category)


@router.post("/highlight")
def highlight(req: CodeRequest):
	return {"html": highlight_code(req.code)}
