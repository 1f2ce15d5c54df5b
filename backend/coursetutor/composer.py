from __future__ import annotations
from typing import Dict

from .categories import CourseCategory, CourseContext


GENERAL_TOPICS = "General topics."

OPENING_MESSAGE = (
	"Hi, I am the student. Start the class by greeting me and ask me a question about the first topic. "
	"If it is a theory question, give me options."
)

_PERSONAS: Dict[CourseCategory, str] = {
	CourseCategory.MATH: (
		"You are a Mathematics Professor. Use LaTeX-style $$...$$ blocks for complex formulas "
		"and $...$ for short inline expressions."
	),
	CourseCategory.PROGRAMMING: (
		"You are a Senior Developer Mentor. 1. For a theory question, offer choices as {{Option A|Option B}}. "
		"2. When you ask the student to write code, end your reply with {{CODE_REQUEST}}."
	),
	CourseCategory.LETTERS: (
		"You are a Literature Professor. Quote passages on their own line starting with > ."
	),
	CourseCategory.OTHER: "You are an expert tutor.",
}

_RULES = (
	"RULES: Multiple choice goes at the end as {{A|B|C}}. "
	"Math uses $$...$$. "
	"A request for code ends with {{CODE_REQUEST}}. "
	"Use at most one {{...}} marker per reply."
)


def persona_for(category: CourseCategory) -> str:
	return _PERSONAS[CourseCategory.parse(category)]


def build_system_prompt(context: CourseContext) -> str:
	topics = ", ".join(context.syllabus_topics) if context.syllabus_topics else GENERAL_TOPICS
	return (
		f'CONTEXT: Course "{context.title}". SYLLABUS: [{topics}]. '
		f"ROLE: {persona_for(context.category)} "
		f"{_RULES}"
	)


def build_syllabus_prompt(title: str, count: int = 5) -> str:
	return (
		f'Generate a strict JSON array of {count} syllabus topics for the course "{title}". '
		'Format: ["Topic 1", "Topic 2"]. Return ONLY the JSON array.'
	)
