import logging
from typing import List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.core.auth_utils import Principal
from app.core.common_audit import log_audit
from app.core.database import (
    generate_id, serialize_mongo, serialize_many, utcnow, as_naive_utc
)
from app.core.errors import NotFound, ValidationError
from app.core.permissions import (
    ensure, is_staff,
    can_access_course_content, can_read_course_content, can_write_course_resource
)
from app.assignments.assignment_models import Assignment
from app.courses.course_service import get_course_or_404
from app.lessons.lesson_service import get_lesson_or_404, get_lesson_with_course

logger = logging.getLogger(__name__)


async def get_assignment_or_404(db: AsyncIOMotorDatabase, assignment_id: str) -> dict:
    assignment = await db.assignments.find_one({"assignment_id": assignment_id})
    if not assignment:
        raise NotFound("No assignment found with that ID")
    return serialize_mongo(assignment)


async def get_assignment_with_course(
    db: AsyncIOMotorDatabase, assignment_id: str
) -> Tuple[dict, dict]:
    assignment = await get_assignment_or_404(db, assignment_id)
    course = await get_course_or_404(db, assignment["course_id"])
    return assignment, course


def present_assignment(principal: Principal, assignment: dict, course: dict) -> dict:
    """Graders see every submission, anyone else only their own"""
    if is_staff(principal, course):
        return assignment

    view = dict(assignment)
    view["submissions"] = [
        s for s in assignment.get("submissions", [])
        if s.get("student_id") == principal.user_id
    ]
    return view


async def _check_lesson_in_course(db: AsyncIOMotorDatabase, lesson_id: str, course_id: str):
    lesson = await db.lessons.find_one({"lesson_id": lesson_id})
    if not lesson or lesson["course_id"] != course_id:
        raise ValidationError("Lesson does not belong to this course")


def _check_total_covers_grades(assignment: dict, total_points: float):
    """Stored grades must stay within [0, total_points]"""
    top = max(
        (s["grade"] for s in assignment.get("submissions", [])
         if s.get("is_graded") and s.get("grade") is not None),
        default=None
    )
    if top is not None and total_points < top:
        raise ValidationError(f"total_points cannot be below an existing grade of {top}")

# ==================== READS ====================

async def list_assignments(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    course_id: Optional[str] = None,
    lesson_id: Optional[str] = None
) -> List[dict]:
    """Assignments of a course or of one lesson; students only see published ones"""
    if lesson_id:
        lesson, course = await get_lesson_with_course(db, lesson_id)
        ensure(can_read_course_content(principal, course, lesson))
        query = {"lesson_id": lesson_id}
    else:
        course = await get_course_or_404(db, course_id)
        ensure(can_access_course_content(principal, course))
        query = {"course_id": course_id}

    if principal.is_student:
        query["is_published"] = True

    cursor = db.assignments.find(query).sort("created_at", 1)
    assignments = serialize_many(await cursor.to_list(length=None))
    return [present_assignment(principal, a, course) for a in assignments]


async def get_assignment(db: AsyncIOMotorDatabase, principal: Principal, assignment_id: str) -> dict:
    assignment, course = await get_assignment_with_course(db, assignment_id)
    ensure(can_read_course_content(principal, course, assignment))
    return present_assignment(principal, assignment, course)

# ==================== WRITES ====================

async def create_assignment(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    course_id: str,
    data: dict
) -> dict:
    course = await get_course_or_404(db, course_id)
    ensure(can_write_course_resource(principal, course))

    if data.get("lesson_id"):
        await _check_lesson_in_course(db, data["lesson_id"], course_id)
    data["due_date"] = as_naive_utc(data.get("due_date"))

    assignment = Assignment(
        assignment_id=generate_id("ASG"),
        course_id=course_id,
        **data
    )
    await db.assignments.insert_one(assignment.model_dump())
    logger.info("Assignment %s created in %s", assignment.assignment_id, course_id)

    return await get_assignment_or_404(db, assignment.assignment_id)


async def create_lesson_assignment(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    lesson_id: str,
    data: dict
) -> dict:
    lesson = await get_lesson_or_404(db, lesson_id)
    data["lesson_id"] = lesson_id
    return await create_assignment(db, principal, lesson["course_id"], data)


async def update_assignment(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    assignment_id: str,
    updates: dict
) -> dict:
    assignment, course = await get_assignment_with_course(db, assignment_id)
    ensure(can_write_course_resource(principal, course))

    if updates.get("lesson_id"):
        await _check_lesson_in_course(db, updates["lesson_id"], course["course_id"])
    if "total_points" in updates:
        _check_total_covers_grades(assignment, updates["total_points"])
    if "due_date" in updates:
        updates["due_date"] = as_naive_utc(updates["due_date"])
    updates["updated_at"] = utcnow()

    updated = await db.assignments.find_one_and_update(
        {"assignment_id": assignment_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER
    )
    if not updated:
        raise NotFound("No assignment found with that ID")

    return serialize_mongo(updated)


async def delete_assignment(db: AsyncIOMotorDatabase, principal: Principal, assignment_id: str):
    assignment, course = await get_assignment_with_course(db, assignment_id)
    ensure(can_write_course_resource(principal, course))

    await db.assignments.delete_one({"assignment_id": assignment_id})
    await log_audit(
        db, principal, "delete_assignment", "assignment", assignment_id,
        {"course_id": course["course_id"]}
    )
    logger.info("Assignment %s deleted by %s", assignment_id, principal.user_id)
