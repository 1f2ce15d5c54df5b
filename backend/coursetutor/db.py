from __future__ import annotations
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./coursetutor.db"

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


# Best-effort lightweight migrations for development (SQLite-friendly)
def ensure_schema() -> None:
	try:
		inspector = inspect(engine)
		tables = set(inspector.get_table_names())
	except Exception:
		return
	if "courses" in tables:
		cols = {c["name"] for c in inspector.get_columns("courses")}
		with engine.begin() as conn:
			if "syllabus" not in cols:
				conn.exec_driver_sql("ALTER TABLE courses ADD COLUMN syllabus TEXT")
			if "is_published" not in cols:
				conn.exec_driver_sql("ALTER TABLE courses ADD COLUMN is_published BOOLEAN DEFAULT 1 NOT NULL")
	if "chat_messages" in tables:
		cols = {c["name"] for c in inspector.get_columns("chat_messages")}
		with engine.begin() as conn:
			if "options" not in cols:
				conn.exec_driver_sql("ALTER TABLE chat_messages ADD COLUMN options TEXT")
			if "is_code_request" not in cols:
				conn.exec_driver_sql("ALTER TABLE chat_messages ADD COLUMN is_code_request BOOLEAN DEFAULT 0 NOT NULL")
