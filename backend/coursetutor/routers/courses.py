from __future__ import annotations
import json
import logging
import re
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..categories import CourseCategory, parse_syllabus
from ..composer import build_syllabus_prompt
from ..db import get_db
from ..gemini_client import GeminiClient, GeminiError, get_gemini_client
from ..models import AuthUser, ChatMessage, ClassSession, Course, Enrollment
from .auth import User, get_current_user, require_teacher

router = APIRouter(prefix="/courses", tags=["courses"])

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")


class CourseIn(BaseModel):
    title: str
    description: str = ""
    category: CourseCategory = CourseCategory.OTHER
    is_published: bool = True

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> CourseCategory:
        return CourseCategory.parse(value)


class CoursePatch(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[CourseCategory] = None
    is_published: Optional[bool] = None

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> Optional[CourseCategory]:
        return None if value is None else CourseCategory.parse(value)


class CourseOut(BaseModel):
    id: int
    title: str
    description: str
    category: CourseCategory
    created_by: str
    teacher_name: Optional[str] = None
    syllabus: List[str] = Field(default_factory=list)
    is_published: bool


class SyllabusIn(BaseModel):
    topics: List[str]


class ClassSessionIn(BaseModel):
    date: str
    time: str
    link: str


class ClassSessionOut(BaseModel):
    id: int
    course_id: int
    date: str
    time: str
    link: str


class StudentOut(BaseModel):
    username: str
    full_name: Optional[str] = None


def _course_out(course: Course, db: Session) -> CourseOut:
    owner = db.get(AuthUser, course.created_by)
    return CourseOut(
        id=course.id,
        title=course.title,
        description=course.description or "",
        category=CourseCategory.parse(course.category),
        created_by=course.created_by,
        teacher_name=owner.full_name if owner else None,
        syllabus=parse_syllabus(course.syllabus),
        is_published=bool(course.is_published),
    )


def get_course_or_404(db: Session, course_id: int) -> Course:
    course = db.get(Course, course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


def require_owner(course: Course, user: User) -> None:
    if course.created_by != user.username:
        raise HTTPException(status_code=403, detail="only the course owner can do this")


def is_enrolled(db: Session, course_id: int, username: str) -> bool:
    row = (
        db.query(Enrollment)
        .filter(Enrollment.course_id == course_id, Enrollment.student_id == username)
        .first()
    )
    return row is not None


def require_access(db: Session, course: Course, user: User) -> None:
    """Owners and enrolled students may use a course's tutor."""
    if course.created_by == user.username or is_enrolled(db, course.id, user.username):
        return
    raise HTTPException(status_code=403, detail="not enrolled in this course")


def _extract_json_array(text: str) -> List[str]:
    try:
        data = json.loads(text)
    except Exception:
        match = re.search(r"\[[\s\S]*\]", text or "")
        if not match:
            raise HTTPException(status_code=502, detail="LLM did not return a JSON array.")
        try:
            data = json.loads(match.group(0))
        except Exception:
            raise HTTPException(status_code=502, detail="LLM did not return a JSON array.")
    if not isinstance(data, list):
        raise HTTPException(status_code=502, detail="LLM did not return a JSON array.")
    return [str(item).strip() for item in data if item is not None and str(item).strip()]


@router.get("")
async def list_courses(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> Dict[str, List[CourseOut]]:
    courses = db.query(Course).order_by(Course.id).all()
    if user.is_teacher:
        mine = [c for c in courses if c.created_by == user.username]
        return {"mine": [_course_out(c, db) for c in mine], "all": [_course_out(c, db) for c in courses if c.is_published or c.created_by == user.username]}
    enrolled_ids = {
        row.course_id for row in db.query(Enrollment).filter(Enrollment.student_id == user.username).all()
    }
    mine = [c for c in courses if c.id in enrolled_ids]
    available = [c for c in courses if c.id not in enrolled_ids and c.is_published]
    return {"mine": [_course_out(c, db) for c in mine], "available": [_course_out(c, db) for c in available]}


@router.post("", response_model=CourseOut, status_code=201)
async def create_course(req: CourseIn, user: User = Depends(require_teacher), db: Session = Depends(get_db)):
    title = (req.title or "").strip()
    if not title:
        raise HTTPException(status_code=400, detail="title is required")
    course = Course(
        title=title,
        description=(req.description or "").strip(),
        category=req.category.value,
        created_by=user.username,
        is_published=req.is_published,
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    logger.info("Course %s created by %s", course.id, user.username)
    return _course_out(course, db)


@router.get("/{course_id}", response_model=CourseOut)
async def get_course(course_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    course = get_course_or_404(db, course_id)
    # Drafts are visible to their owner and to students already enrolled
    if not course.is_published and course.created_by != user.username and not is_enrolled(db, course_id, user.username):
        raise HTTPException(status_code=404, detail="Course not found")
    return _course_out(course, db)


@router.patch("/{course_id}", response_model=CourseOut)
async def update_course(course_id: int, req: CoursePatch, user: User = Depends(require_teacher), db: Session = Depends(get_db)):
    course = get_course_or_404(db, course_id)
    require_owner(course, user)
    if req.title is not None:
        title = req.title.strip()
        if not title:
            raise HTTPException(status_code=400, detail="title must not be empty")
        course.title = title
    if req.description is not None:
        course.description = req.description.strip()
    if req.category is not None:
        course.category = req.category.value
    if req.is_published is not None:
        course.is_published = req.is_published
    db.add(course)
    db.commit()
    db.refresh(course)
    return _course_out(course, db)


@router.delete("/{course_id}")
async def delete_course(course_id: int, user: User = Depends(require_teacher), db: Session = Depends(get_db)):
    course = get_course_or_404(db, course_id)
    require_owner(course, user)
    # Children first; SQLite does not enforce cascades by default
    for model in (ChatMessage, ClassSession, Enrollment):
        db.query(model).filter(model.course_id == course_id).delete(synchronize_session=False)
    db.delete(course)
    db.commit()
    logger.info("Course %s deleted by %s", course_id, user.username)
    return {"ok": True}


@router.put("/{course_id}/syllabus", response_model=CourseOut)
async def save_syllabus(course_id: int, req: SyllabusIn, user: User = Depends(require_teacher), db: Session = Depends(get_db)):
    course = get_course_or_404(db, course_id)
    require_owner(course, user)
    topics = [t.strip() for t in req.topics if t and t.strip()]
    course.syllabus = json.dumps(topics, ensure_ascii=False)
    db.add(course)
    db.commit()
    db.refresh(course)
    return _course_out(course, db)


@router.post("/{course_id}/syllabus/generate")
async def generate_syllabus(
    course_id: int,
    user: User = Depends(require_teacher),
    db: Session = Depends(get_db),
    client: Optional[GeminiClient] = Depends(get_gemini_client),
):
    """Draft five topics with the model; the teacher reviews them before saving."""
    course = get_course_or_404(db, course_id)
    require_owner(course, user)
    if client is None:
        raise HTTPException(status_code=502, detail="Gemini is not configured")
    try:
        text = await client.generate(build_syllabus_prompt(course.title))
    except GeminiError as e:
        logger.warning("Syllabus generation failed for course %s: %s", course_id, e)
        raise HTTPException(status_code=502, detail="syllabus generation failed")
    return {"topics": _extract_json_array(text)}


@router.post("/{course_id}/enroll", status_code=201)
async def enroll(course_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    course = get_course_or_404(db, course_id)
    if user.is_teacher:
        raise HTTPException(status_code=403, detail="only students can enroll")
    if not course.is_published:
        raise HTTPException(status_code=404, detail="Course not found")
    if is_enrolled(db, course_id, user.username):
        raise HTTPException(status_code=409, detail="already enrolled")
    db.add(Enrollment(course_id=course_id, student_id=user.username))
    db.commit()
    return {"ok": True}


@router.delete("/{course_id}/enroll")
async def leave_course(course_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    get_course_or_404(db, course_id)
    removed = (
        db.query(Enrollment)
        .filter(Enrollment.course_id == course_id, Enrollment.student_id == user.username)
        .delete(synchronize_session=False)
    )
    db.commit()
    if not removed:
        raise HTTPException(status_code=404, detail="not enrolled in this course")
    return {"ok": True}


@router.get("/{course_id}/students", response_model=List[StudentOut])
async def list_students(course_id: int, user: User = Depends(require_teacher), db: Session = Depends(get_db)):
    course = get_course_or_404(db, course_id)
    require_owner(course, user)
    rows = (
        db.query(AuthUser)
        .join(Enrollment, Enrollment.student_id == AuthUser.username)
        .filter(Enrollment.course_id == course_id)
        .order_by(Enrollment.id)
        .all()
    )
    return [StudentOut(username=r.username, full_name=r.full_name) for r in rows]


@router.get("/{course_id}/sessions", response_model=List[ClassSessionOut])
async def list_sessions(course_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    course = get_course_or_404(db, course_id)
    require_access(db, course, user)
    rows = (
        db.query(ClassSession)
        .filter(ClassSession.course_id == course_id)
        .order_by(ClassSession.date, ClassSession.time)
        .all()
    )
    return [ClassSessionOut(id=r.id, course_id=r.course_id, date=r.date, time=r.time, link=r.link) for r in rows]


@router.post("/{course_id}/sessions", response_model=ClassSessionOut, status_code=201)
async def create_session(course_id: int, req: ClassSessionIn, user: User = Depends(require_teacher), db: Session = Depends(get_db)):
    course = get_course_or_404(db, course_id)
    require_owner(course, user)
    if not _DATE_RE.match(req.date or "") or not _TIME_RE.match(req.time or ""):
        raise HTTPException(status_code=400, detail="date must be YYYY-MM-DD and time HH:MM")
    link = (req.link or "").strip()
    if not link:
        raise HTTPException(status_code=400, detail="link is required")
    row = ClassSession(course_id=course_id, date=req.date, time=req.time, link=link)
    db.add(row)
    db.commit()
    db.refresh(row)
    return ClassSessionOut(id=row.id, course_id=row.course_id, date=row.date, time=row.time, link=row.link)
