"""
Pytest configuration for the LMS tests.

Every test gets its own in-memory document store (mongomock-motor) and,
for HTTP tests, an httpx client bound to the app with get_db overridden.
"""
from datetime import timedelta

import httpx
import pytest
from httpx import ASGITransport
from jose import jwt
from mongomock_motor import AsyncMongoMockClient

from app.core.auth_utils import Principal, Role
from app.core.config import JWT_SECRET_KEY, JWT_ALGORITHM
from app.core.database import utcnow
from app.core.dependencies import get_db
from app.courses import course_service
from app.lessons import lesson_service
from app.assignments import assignment_service
from app.main import app


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def db():
    return AsyncMongoMockClient()["lms_test"]


@pytest.fixture
async def client(db):
    async def _override_db():
        return db

    app.dependency_overrides[get_db] = _override_db
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


# ==================== PRINCIPALS ====================

@pytest.fixture
def instructor():
    return Principal("USR_INSTRUCTOR", Role.INSTRUCTOR)


@pytest.fixture
def other_instructor():
    return Principal("USR_OTHER_INSTRUCTOR", Role.INSTRUCTOR)


@pytest.fixture
def student():
    return Principal("USR_STUDENT", Role.STUDENT)


@pytest.fixture
def other_student():
    return Principal("USR_OTHER_STUDENT", Role.STUDENT)


@pytest.fixture
def admin():
    return Principal("USR_ADMIN", Role.ADMIN)


def make_token(principal: Principal) -> str:
    return jwt.encode(
        {"sub": principal.user_id, "role": principal.role.value},
        JWT_SECRET_KEY,
        algorithm=JWT_ALGORITHM,
    )


def auth(principal: Principal) -> dict:
    return {"Authorization": f"Bearer {make_token(principal)}"}


# ==================== SEEDING ====================

async def seed_course(db, owner: Principal, published: bool = True, **overrides) -> dict:
    data = {
        "title": "Intro to Python",
        "description": "Basics of the language",
        "category": "programming",
        "level": "beginner",
        "price": 0,
        "published": published,
    }
    data.update(overrides)
    return await course_service.create_course(db, owner, data)


async def seed_lessons(db, owner: Principal, course_id: str, count: int) -> list:
    lessons = []
    for i in range(count):
        lessons.append(await lesson_service.create_lesson(db, owner, course_id, {
            "title": f"Lesson {i + 1}",
            "content": "Some content",
            "is_published": True,
        }))
    return lessons


async def seed_assignment(db, owner: Principal, course_id: str, **overrides) -> dict:
    data = {
        "title": "Homework",
        "description": "Solve the exercises",
        "due_date": utcnow() + timedelta(days=7),
        "total_points": 100,
        "is_published": True,
    }
    data.update(overrides)
    return await assignment_service.create_assignment(db, owner, course_id, data)
