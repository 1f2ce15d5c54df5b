"""Shared test fixtures for the course tutor API."""

from __future__ import annotations

import os
import tempfile
from typing import Any, Dict, List

import pytest
from httpx import ASGITransport, AsyncClient

# Set required env vars before importing the app
_TMP_DIR = tempfile.mkdtemp(prefix="coursetutor-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TMP_DIR}/test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("OPENROUTER_API_KEY", None)


class FakeGemini:
    """Stands in for GeminiClient; replies are consumed in order."""

    def __init__(self) -> None:
        self.replies: List[Any] = []
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *replies: Any) -> None:
        self.replies.extend(replies)

    def _next(self) -> str:
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def chat(self, system_instruction: str, message: str, history=()) -> str:
        self.calls.append({"system": system_instruction, "message": message, "history": list(history)})
        return self._next()

    async def generate(self, prompt: str) -> str:
        self.calls.append({"prompt": prompt})
        return self._next()


@pytest.fixture
def fake_gemini() -> FakeGemini:
    return FakeGemini()


@pytest.fixture
async def client(fake_gemini: FakeGemini):
    """Async test client for the FastAPI app with a fresh database per test."""
    from coursetutor.db import Base, engine  # noqa: E402
    from coursetutor.gemini_client import get_gemini_client  # noqa: E402
    from coursetutor.main import app  # noqa: E402

    Base.metadata.create_all(bind=engine)

    async def _fake_client():
        yield fake_gemini

    app.dependency_overrides[get_gemini_client] = _fake_client
    transport = ASGITransport(app=app)  # type: ignore[arg-type]
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
        Base.metadata.drop_all(bind=engine)


async def _login(client: AsyncClient, username: str, role: str) -> Dict[str, str]:
    res = await client.post(
        "/auth/register",
        json={"username": username, "password": "pw-123456", "full_name": username.title(), "role": role},
    )
    assert res.status_code == 201, res.text
    res = await client.post("/auth/token", data={"username": username, "password": "pw-123456"})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


@pytest.fixture
async def teacher_headers(client: AsyncClient) -> Dict[str, str]:
    return await _login(client, "teacher1", "teacher")


@pytest.fixture
async def student_headers(client: AsyncClient) -> Dict[str, str]:
    return await _login(client, "student1", "student")


@pytest.fixture
async def course_id(client: AsyncClient, teacher_headers: Dict[str, str]) -> int:
    res = await client.post(
        "/courses",
        json={"title": "Intro to Loops", "description": "Loops 101", "category": "programming"},
        headers=teacher_headers,
    )
    assert res.status_code == 201, res.text
    cid = res.json()["id"]
    res = await client.put(
        f"/courses/{cid}/syllabus",
        json={"topics": ["for-loops", "while-loops"]},
        headers=teacher_headers,
    )
    assert res.status_code == 200, res.text
    return cid
