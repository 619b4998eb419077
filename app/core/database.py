import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.core.config import MONGO_URL, MONGO_DB_NAME

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None


def get_client() -> AsyncIOMotorClient:
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(MONGO_URL)
    return _client


def get_database() -> AsyncIOMotorDatabase:
    return get_client()[MONGO_DB_NAME]


def close_client():
    global _client
    if _client is not None:
        _client.close()
        _client = None


# ==================== HELPERS ====================

def generate_id(prefix: str) -> str:
    """Generate unique ID with prefix"""
    return f"{prefix}_{secrets.token_hex(8).upper()}"


def utcnow() -> datetime:
    """Naive UTC, the form Mongo hands datetimes back in"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def serialize_mongo(doc: Optional[dict]) -> Optional[dict]:
    if doc is not None:
        doc.pop("_id", None)
    return doc


def serialize_many(docs: list) -> list:
    return [serialize_mongo(doc) for doc in docs]


# ==================== INDEXES ====================

async def create_indexes(db: AsyncIOMotorDatabase):
    """
    Create database indexes
    Called during application startup
    """
    # Courses
    await db.courses.create_index("course_id", unique=True)
    await db.courses.create_index("instructor_id")
    await db.courses.create_index([("published", 1), ("created_at", -1)])
    await db.courses.create_index("enrollments.user_id")

    # Lessons
    await db.lessons.create_index("lesson_id", unique=True)
    await db.lessons.create_index([("course_id", 1), ("order", 1)])

    # Assignments
    await db.assignments.create_index("assignment_id", unique=True)
    await db.assignments.create_index("course_id")
    await db.assignments.create_index("lesson_id")
    await db.assignments.create_index("submissions.submission_id")

    # Users (owned by the identity side, only the id lists are touched here)
    await db.users.create_index("user_id", unique=True)

    # Audit logs
    await db.audit_logs.create_index([("target_type", 1), ("target_id", 1)])
    await db.audit_logs.create_index([("actor_user_id", 1), ("timestamp", -1)])

    logger.info("LMS indexes created")
