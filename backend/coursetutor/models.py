from __future__ import annotations
from datetime import datetime
from sqlalchemy import Boolean, Column, String, DateTime, Integer, Text, ForeignKey, UniqueConstraint
from .db import Base


class AuthUser(Base):
	__tablename__ = "auth_users"
	# Primary key is username
	username = Column(String(128), primary_key=True, index=True)
	password_hash = Column(String(256), nullable=False)
	full_name = Column(String(256), nullable=True)
	# "student" or "teacher"
	role = Column(String(16), default="student", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# JWT "jti"; a token is only valid while its row exists
	session_id = Column(String(64), primary_key=True)
	username = Column(String(128), ForeignKey("auth_users.username"), nullable=False, index=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Course(Base):
	__tablename__ = "courses"
	id = Column(Integer, primary_key=True, autoincrement=True)
	title = Column(String(256), nullable=False)
	description = Column(Text, nullable=False, default="")
	# One of CourseCategory values; unknown values are read as "other"
	category = Column(String(32), nullable=False, default="other")
	created_by = Column(String(128), ForeignKey("auth_users.username"), nullable=False, index=True)
	syllabus = Column(Text, nullable=True)  # JSON array string
	is_published = Column(Boolean, default=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Enrollment(Base):
	__tablename__ = "enrollments"
	__table_args__ = (UniqueConstraint("course_id", "student_id", name="uq_enrollment"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
	student_id = Column(String(128), ForeignKey("auth_users.username"), nullable=False, index=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ClassSession(Base):
	__tablename__ = "class_sessions"
	id = Column(Integer, primary_key=True, autoincrement=True)
	course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
	date = Column(String(16), nullable=False)  # YYYY-MM-DD
	time = Column(String(8), nullable=False)  # HH:MM
	link = Column(String(512), nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ChatMessage(Base):
	__tablename__ = "chat_messages"
	# Autoincrement id doubles as the conversation order
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(String(128), ForeignKey("auth_users.username"), nullable=False, index=True)
	course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
	role = Column(String(8), nullable=False)  # "user" or "model"
	content = Column(Text, nullable=False)
	options = Column(Text, nullable=True)  # JSON array string
	is_code_request = Column(Boolean, default=False, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
