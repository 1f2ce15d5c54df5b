from __future__ import annotations
import json
import logging
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..categories import CourseCategory, CourseContext
from ..composer import OPENING_MESSAGE, build_system_prompt
from ..db import get_db
from ..gemini_client import GeminiClient, GeminiError, get_gemini_client
from ..models import ChatMessage, Course
from ..pipeline import TutorReply, process_reply
from ..renderer import RenderSegment, render_reply
from ..settings import settings
from .auth import User, get_current_user
from .courses import get_course_or_404, require_access

router = APIRouter(prefix="/chat", tags=["chat"])

logger = logging.getLogger(__name__)


class SendRequest(BaseModel):
	text: str


class ChatTurnOut(BaseModel):
	id: int
	role: str
	text: str
	created_at: datetime
	options: Optional[List[str]] = None
	is_code_request: bool = False
	segments: List[RenderSegment] = Field(default_factory=list)


class HistoryResponse(BaseModel):
	messages: List[ChatTurnOut]
	code_editor_visible: bool = False


class ReplyResponse(BaseModel):
	success: bool
	reply: TutorReply
	message_id: Optional[int] = None


def _decode_options(raw: Optional[str]) -> Optional[List[str]]:
	if not raw:
		return None
	try:
		data = json.loads(raw)
	except ValueError:
		return None
	return [str(o) for o in data] if isinstance(data, list) and data else None


def _turn_out(row: ChatMessage, category: CourseCategory) -> ChatTurnOut:
	return ChatTurnOut(
		id=row.id,
		role=row.role,
		text=row.content,
		created_at=row.created_at,
		options=_decode_options(row.options),
		is_code_request=bool(row.is_code_request),
		segments=render_reply(row.content, category),
	)


def _conversation(db: Session, user: User, course_id: int) -> List[ChatMessage]:
	return (
		db.query(ChatMessage)
		.filter(ChatMessage.course_id == course_id, ChatMessage.user_id == user.username)
		.order_by(ChatMessage.id)
		.all()
	)


def _history_for_model(rows: List[ChatMessage]) -> List[Dict[str, str]]:
	limit = settings.tutor_history_limit
	if limit > 0:
		rows = rows[-limit:]
	return [{"role": r.role, "content": r.content} for r in rows]


async def _ask_tutor(
	client: Optional[GeminiClient],
	course: Course,
	message: str,
	history: List[Dict[str, str]],
) -> Optional[str]:
	if client is None:
		return None
	system_prompt = build_system_prompt(CourseContext.from_course(course))
	try:
		return await client.chat(system_prompt, message, history)
	except GeminiError as e:
		logger.warning("Tutor reply failed for course %s: %s", course.id, e)
		return None


def _store_model_turn(db: Session, user: User, course: Course, raw_text: str) -> ReplyResponse:
	reply = process_reply(raw_text, course.category)
	row = ChatMessage(
		user_id=user.username,
		course_id=course.id,
		role="model",
		content=reply.display_text,
		options=json.dumps(reply.options, ensure_ascii=False) if reply.options else None,
		is_code_request=reply.is_code_request,
	)
	db.add(row)
	db.commit()
	db.refresh(row)
	return ReplyResponse(success=True, reply=reply, message_id=row.id)


def _fallback_reply(course: Course) -> ReplyResponse:
	text = settings.tutor_fallback_message
	return ReplyResponse(
		success=False,
		reply=TutorReply(display_text=text, segments=render_reply(text, course.category)),
	)


@router.get("/{course_id}/messages", response_model=HistoryResponse)
async def get_history(course_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	course = get_course_or_404(db, course_id)
	require_access(db, course, user)
	category = CourseCategory.parse(course.category)
	rows = _conversation(db, user, course_id)
	return HistoryResponse(
		messages=[_turn_out(r, category) for r in rows],
		code_editor_visible=bool(rows and rows[-1].is_code_request),
	)


@router.post("/{course_id}/start", response_model=ReplyResponse)
async def start_conversation(
	course_id: int,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	client: Optional[GeminiClient] = Depends(get_gemini_client),
):
	"""Have the tutor open the class; the opening instruction itself is not stored."""
	course = get_course_or_404(db, course_id)
	require_access(db, course, user)
	raw = await _ask_tutor(client, course, OPENING_MESSAGE, [])
	if raw is None:
		return _fallback_reply(course)
	return _store_model_turn(db, user, course, raw)


@router.post("/{course_id}/messages", response_model=ReplyResponse)
async def send_message(
	course_id: int,
	req: SendRequest,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	client: Optional[GeminiClient] = Depends(get_gemini_client),
):
	text = (req.text or "").strip()
	if not text:
		raise HTTPException(status_code=400, detail="text is required")
	course = get_course_or_404(db, course_id)
	require_access(db, course, user)
	history = _history_for_model(_conversation(db, user, course_id))
	# The student's turn is stored before the model is asked so it always precedes the reply
	db.add(ChatMessage(user_id=user.username, course_id=course_id, role="user", content=text))
	db.commit()
	raw = await _ask_tutor(client, course, text, history)
	if raw is None:
		return _fallback_reply(course)
	return _store_model_turn(db, user, course, raw)


@router.delete("/{course_id}/messages")
async def clear_history(course_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	course = get_course_or_404(db, course_id)
	require_access(db, course, user)
	removed = (
		db.query(ChatMessage)
		.filter(ChatMessage.course_id == course_id, ChatMessage.user_id == user.username)
		.delete(synchronize_session=False)
	)
	db.commit()
	return {"ok": True, "removed": removed}
