"""
Lessons and their ordering within a course

Orders are kept dense (1..N) on every insert, move, delete and reorder.
All ordering writes for one course happen under that course's lock.
"""

import asyncio
import logging
import weakref
from typing import List, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.core.auth_utils import Principal
from app.core.common_audit import log_audit
from app.core.database import generate_id, serialize_mongo, serialize_many, utcnow
from app.core.errors import NotFound, ValidationError
from app.core.permissions import (
    ensure, can_access_course_content, can_read_course_content, can_write_course_resource
)
from app.courses.course_service import get_course_or_404
from app.lessons.lesson_models import Lesson

logger = logging.getLogger(__name__)

# Entries live only while some operation holds or awaits the lock
_course_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def course_lock(course_id: str) -> asyncio.Lock:
    """Serializes lesson renumbering per course"""
    lock = _course_locks.get(course_id)
    if lock is None:
        lock = asyncio.Lock()
        _course_locks[course_id] = lock
    return lock


async def get_lesson_or_404(db: AsyncIOMotorDatabase, lesson_id: str) -> dict:
    lesson = await db.lessons.find_one({"lesson_id": lesson_id})
    if not lesson:
        raise NotFound("No lesson found with that ID")
    return serialize_mongo(lesson)


async def get_lesson_with_course(db: AsyncIOMotorDatabase, lesson_id: str) -> Tuple[dict, dict]:
    lesson = await get_lesson_or_404(db, lesson_id)
    course = await get_course_or_404(db, lesson["course_id"])
    return lesson, course


async def _sync_lesson_ids(db: AsyncIOMotorDatabase, course_id: str):
    """Rewrite course.lesson_ids from the lessons' order"""
    cursor = db.lessons.find({"course_id": course_id}, {"_id": 0, "lesson_id": 1}).sort("order", 1)
    lesson_ids = [doc["lesson_id"] for doc in await cursor.to_list(length=None)]
    await db.courses.update_one({"course_id": course_id}, {"$set": {"lesson_ids": lesson_ids}})


async def get_course_orders(db: AsyncIOMotorDatabase, course_id: str) -> List[int]:
    cursor = db.lessons.find({"course_id": course_id}, {"_id": 0, "order": 1})
    return sorted(doc["order"] for doc in await cursor.to_list(length=None))

# ==================== READS ====================

async def list_lessons(db: AsyncIOMotorDatabase, principal: Principal, course_id: str) -> List[dict]:
    """Lessons of a course by order; students only see published ones"""
    course = await get_course_or_404(db, course_id)
    ensure(can_access_course_content(principal, course))

    query = {"course_id": course_id}
    if principal.is_student:
        query["is_published"] = True

    cursor = db.lessons.find(query).sort("order", 1)
    return serialize_many(await cursor.to_list(length=None))


async def get_lesson(db: AsyncIOMotorDatabase, principal: Principal, lesson_id: str) -> dict:
    lesson, course = await get_lesson_with_course(db, lesson_id)
    ensure(can_read_course_content(principal, course, lesson))
    return lesson

# ==================== WRITES ====================

async def create_lesson(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    course_id: str,
    data: dict
) -> dict:
    """
    Insert a lesson

    Without an order the lesson is appended. A requested order is clamped
    into [1, count + 1] and the lessons at or after it shift down by one.
    """
    course = await get_course_or_404(db, course_id)
    ensure(can_write_course_resource(principal, course))

    requested = data.pop("order", None)

    async with course_lock(course_id):
        count = await db.lessons.count_documents({"course_id": course_id})
        order = count + 1 if requested is None else max(1, min(requested, count + 1))

        if order <= count:
            await db.lessons.update_many(
                {"course_id": course_id, "order": {"$gte": order}},
                {"$inc": {"order": 1}}
            )

        lesson = Lesson(
            lesson_id=generate_id("LSN"),
            course_id=course_id,
            order=order,
            **data
        )
        await db.lessons.insert_one(lesson.model_dump())
        await _sync_lesson_ids(db, course_id)

    logger.info("Lesson %s inserted at %d in %s", lesson.lesson_id, order, course_id)
    return await get_lesson_or_404(db, lesson.lesson_id)


async def _move_lesson(db: AsyncIOMotorDatabase, lesson: dict, requested: int) -> int:
    """Move a lesson, shifting the ones in between. Caller holds the lock."""
    course_id = lesson["course_id"]
    count = await db.lessons.count_documents({"course_id": course_id})
    old = lesson["order"]
    new = max(1, min(requested, count))

    if new < old:
        await db.lessons.update_many(
            {"course_id": course_id, "order": {"$gte": new, "$lt": old}},
            {"$inc": {"order": 1}}
        )
    elif new > old:
        await db.lessons.update_many(
            {"course_id": course_id, "order": {"$gt": old, "$lte": new}},
            {"$inc": {"order": -1}}
        )

    return new


async def update_lesson(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    lesson_id: str,
    updates: dict
) -> dict:
    lesson, course = await get_lesson_with_course(db, lesson_id)
    ensure(can_write_course_resource(principal, course))

    requested = updates.pop("order", None)
    updates["updated_at"] = utcnow()

    async with course_lock(course["course_id"]):
        if requested is not None:
            # Re-read under the lock, a concurrent delete may have moved it
            lesson = await get_lesson_or_404(db, lesson_id)
            updates["order"] = await _move_lesson(db, lesson, requested)

        updated = await db.lessons.find_one_and_update(
            {"lesson_id": lesson_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER
        )
        if not updated:
            raise NotFound("No lesson found with that ID")

        if requested is not None:
            await _sync_lesson_ids(db, course["course_id"])

    return serialize_mongo(updated)


async def delete_lesson(db: AsyncIOMotorDatabase, principal: Principal, lesson_id: str):
    """
    Remove a lesson and close the gap it leaves:
    every later lesson in the course moves up by exactly one
    """
    lesson, course = await get_lesson_with_course(db, lesson_id)
    ensure(can_write_course_resource(principal, course))
    course_id = course["course_id"]

    async with course_lock(course_id):
        lesson = await get_lesson_or_404(db, lesson_id)

        await db.lessons.delete_one({"lesson_id": lesson_id})
        await db.courses.update_one(
            {"course_id": course_id},
            {"$pull": {"lesson_ids": lesson_id}}
        )
        await db.lessons.update_many(
            {"course_id": course_id, "order": {"$gt": lesson["order"]}},
            {"$inc": {"order": -1}}
        )

    # Assignments keep living in the course, detached from the lesson
    await db.assignments.update_many(
        {"lesson_id": lesson_id},
        {"$set": {"lesson_id": None}}
    )

    await log_audit(db, principal, "delete_lesson", "lesson", lesson_id, {"course_id": course_id})
    logger.info("Lesson %s removed from %s", lesson_id, course_id)


async def reorder_lessons(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    course_id: str,
    lesson_ids: List[str]
) -> List[dict]:
    """Assign orders 1..N following the given permutation of the course's lessons"""
    course = await get_course_or_404(db, course_id)
    ensure(can_write_course_resource(principal, course))

    async with course_lock(course_id):
        cursor = db.lessons.find({"course_id": course_id}, {"_id": 0, "lesson_id": 1})
        existing = {doc["lesson_id"] for doc in await cursor.to_list(length=None)}

        if len(lesson_ids) != len(set(lesson_ids)) or set(lesson_ids) != existing:
            raise ValidationError("Order must list every lesson of the course exactly once")

        for position, lesson_id in enumerate(lesson_ids, start=1):
            await db.lessons.update_one(
                {"lesson_id": lesson_id},
                {"$set": {"order": position, "updated_at": utcnow()}}
            )
        await db.courses.update_one(
            {"course_id": course_id},
            {"$set": {"lesson_ids": list(lesson_ids)}}
        )

    await log_audit(db, principal, "reorder_lessons", "course", course_id)
    logger.info("Lessons of %s reordered", course_id)

    cursor = db.lessons.find({"course_id": course_id}).sort("order", 1)
    return serialize_many(await cursor.to_list(length=None))
