from __future__ import annotations
import json
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CourseCategory(str, Enum):
	MATH = "math"
	PROGRAMMING = "programming"
	LETTERS = "letters"
	OTHER = "other"

	@classmethod
	def parse(cls, value: Any) -> "CourseCategory":
		if isinstance(value, cls):
			return value
		try:
			return cls(str(value or "").strip().lower())
		except ValueError:
			return cls.OTHER

	@property
	def renders_math(self) -> bool:
		return self is CourseCategory.MATH

	@property
	def renders_quotes(self) -> bool:
		return self is CourseCategory.LETTERS


def parse_syllabus(raw: Optional[str]) -> List[str]:
	"""Decode the stored syllabus column into an ordered topic list.

	A JSON array yields its non-blank items. Any other non-blank value (not JSON,
	or JSON that is not an array) is kept whole as a single topic.
	"""
	if raw is None or not str(raw).strip():
		return []
	try:
		parsed = json.loads(raw)
	except (TypeError, ValueError):
		return [str(raw).strip()]
	if not isinstance(parsed, list):
		return [str(raw).strip()]
	return [str(item).strip() for item in parsed if item is not None and str(item).strip()]


class CourseContext(BaseModel):
	model_config = ConfigDict(frozen=True)

	title: str
	category: CourseCategory = CourseCategory.OTHER
	syllabus_topics: List[str] = Field(default_factory=list)

	@field_validator("category", mode="before")
	@classmethod
	def _coerce_category(cls, value: Any) -> CourseCategory:
		return CourseCategory.parse(value)

	@classmethod
	def from_course(cls, course: Any) -> "CourseContext":
		return cls(
			title=course.title,
			category=CourseCategory.parse(course.category),
			syllabus_topics=parse_syllabus(course.syllabus),
		)
