import logging

from fastapi import FastAPI

from .db import Base, engine, ensure_schema
from .settings import settings
from .routers import health
from .routers import auth
from .routers import courses
from .routers import chat
from .routers import tutor

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Course Tutor API")
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(courses.router)
app.include_router(chat.router)
app.include_router(tutor.router)


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	try:
		ensure_schema()
	except Exception:
		logger.exception("ensure_schema failed; continuing with existing schema")
	if not settings.gemini_api_key:
		logger.warning("GEMINI_API_KEY is not set; the tutor will answer with the fallback message")
