import logging
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.core.auth_utils import Principal
from app.core.common_audit import log_audit
from app.core.database import generate_id, serialize_mongo, serialize_many, utcnow
from app.core.errors import NotFound, Forbidden
from app.core.permissions import (
    ensure, can_read_course, can_write_course_resource, can_enroll,
    is_enrolled, is_staff
)
from app.courses.course_models import Course, Enrollment, slugify

logger = logging.getLogger(__name__)

INSTRUCTOR_SUMMARY = {"_id": 0, "user_id": 1, "name": 1, "email": 1, "profile_picture": 1}
LESSON_SUMMARY = {"_id": 0, "lesson_id": 1, "title": 1, "duration": 1, "order": 1, "is_published": 1}


async def get_course_or_404(db: AsyncIOMotorDatabase, course_id: str) -> dict:
    course = await db.courses.find_one({"course_id": course_id})
    if not course:
        raise NotFound("No course found with that ID")
    return serialize_mongo(course)


def present_course(principal: Principal, course: dict) -> dict:
    """
    Owner and admin see the full enrollment list,
    everyone else only the count and their own flag
    """
    if is_staff(principal, course):
        return course

    view = {k: v for k, v in course.items() if k != "enrollments"}
    view["enrollment_count"] = len(course.get("enrollments", []))
    view["is_enrolled"] = is_enrolled(principal, course)
    return view


# ==================== COURSE READS ====================

async def list_courses(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    category: Optional[str] = None,
    level: Optional[str] = None,
    skip: int = 0,
    limit: int = 10
) -> List[dict]:
    """List courses the principal may read, newest first"""
    query = {}
    if category:
        query["category"] = category
    if level:
        query["level"] = level

    if principal.is_student:
        query["published"] = True
    elif not principal.is_admin:
        query["$or"] = [{"published": True}, {"instructor_id": principal.user_id}]

    cursor = db.courses.find(query).sort("created_at", -1).skip(skip).limit(limit)
    courses = serialize_many(await cursor.to_list(length=limit))
    return [present_course(principal, c) for c in courses]


async def get_course_detail(db: AsyncIOMotorDatabase, principal: Principal, course_id: str) -> dict:
    """
    Get course with instructor and lesson summaries joined in explicitly
    """
    course = await get_course_or_404(db, course_id)
    ensure(can_read_course(principal, course))

    lesson_query = {"course_id": course_id}
    if principal.is_student:
        lesson_query["is_published"] = True

    lessons_cursor = db.lessons.find(lesson_query, LESSON_SUMMARY).sort("order", 1)

    view = present_course(principal, course)
    view["instructor"] = await db.users.find_one(
        {"user_id": course["instructor_id"]}, INSTRUCTOR_SUMMARY
    )
    view["lessons"] = await lessons_cursor.to_list(length=None)
    return view


async def list_enrolled_courses(db: AsyncIOMotorDatabase, principal: Principal) -> List[dict]:
    """Get all courses the principal is enrolled in, with their own enrollment"""
    cursor = db.courses.find({"enrollments.user_id": principal.user_id}).sort("created_at", -1)
    courses = serialize_many(await cursor.to_list(length=None))

    results = []
    for course in courses:
        enrollment = next(
            e for e in course["enrollments"] if e["user_id"] == principal.user_id
        )
        view = present_course(principal, course)
        view["enrollment"] = enrollment
        results.append(view)

    return results


async def list_created_courses(db: AsyncIOMotorDatabase, principal: Principal) -> List[dict]:
    """Get all courses owned by the principal"""
    cursor = db.courses.find({"instructor_id": principal.user_id}).sort("created_at", -1)
    return serialize_many(await cursor.to_list(length=None))


# ==================== COURSE WRITES ====================

async def create_course(db: AsyncIOMotorDatabase, principal: Principal, data: dict) -> dict:
    """Create a course owned by the caller"""
    course = Course(
        course_id=generate_id("CRS"),
        slug=slugify(data["title"]),
        instructor_id=principal.user_id,
        **data
    )

    await db.courses.insert_one(course.model_dump())
    await db.users.update_one(
        {"user_id": principal.user_id},
        {"$addToSet": {"created_courses": course.course_id}}
    )
    await log_audit(db, principal, "create_course", "course", course.course_id)
    logger.info("Course %s created by %s", course.course_id, principal.user_id)

    return await get_course_or_404(db, course.course_id)


async def update_course(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    course_id: str,
    updates: dict
) -> dict:
    """Apply allow-listed updates"""
    course = await get_course_or_404(db, course_id)
    ensure(can_write_course_resource(principal, course))

    if "title" in updates:
        updates["slug"] = slugify(updates["title"])
    updates["updated_at"] = utcnow()

    updated = await db.courses.find_one_and_update(
        {"course_id": course_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER
    )
    if not updated:
        raise NotFound("No course found with that ID")

    await log_audit(
        db, principal, "update_course", "course", course_id,
        {k: v for k, v in updates.items() if k != "updated_at"}
    )
    return serialize_mongo(updated)


async def delete_course(db: AsyncIOMotorDatabase, principal: Principal, course_id: str):
    """
    Delete course with its lessons and assignments,
    and prune the id from every user's course lists
    """
    course = await get_course_or_404(db, course_id)
    ensure(can_write_course_resource(principal, course))

    await db.lessons.delete_many({"course_id": course_id})
    await db.assignments.delete_many({"course_id": course_id})

    await db.users.update_many(
        {"enrolled_courses": course_id},
        {"$pull": {"enrolled_courses": course_id}}
    )
    await db.users.update_many(
        {"created_courses": course_id},
        {"$pull": {"created_courses": course_id}}
    )

    await db.courses.delete_one({"course_id": course_id})
    await log_audit(db, principal, "delete_course", "course", course_id)
    logger.info("Course %s deleted by %s", course_id, principal.user_id)


# ==================== ENROLLMENT ====================

async def enroll(db: AsyncIOMotorDatabase, principal: Principal, course_id: str) -> dict:
    """
    Enroll the principal in a published course

    The push is conditional on the course still being published and the
    user not being enrolled, so racing calls cannot produce two records.
    """
    course = await get_course_or_404(db, course_id)
    ensure(can_enroll(principal, course))

    enrollment = Enrollment(user_id=principal.user_id)

    result = await db.courses.update_one(
        {
            "course_id": course_id,
            "published": True,
            "enrollments.user_id": {"$ne": principal.user_id}
        },
        {"$push": {"enrollments": enrollment.model_dump()}}
    )

    if result.modified_count == 0:
        # Lost a race: report what the fresh snapshot says
        ensure(can_enroll(principal, await get_course_or_404(db, course_id)))
        raise NotFound("No course found with that ID")

    await db.users.update_one(
        {"user_id": principal.user_id},
        {"$addToSet": {"enrolled_courses": course_id}}
    )
    await log_audit(db, principal, "enroll", "course", course_id)
    logger.info("User %s enrolled in %s", principal.user_id, course_id)

    return present_course(principal, await get_course_or_404(db, course_id))


async def unenroll(db: AsyncIOMotorDatabase, principal: Principal, course_id: str):
    """Remove the principal's enrollment"""
    await get_course_or_404(db, course_id)

    result = await db.courses.update_one(
        {"course_id": course_id},
        {"$pull": {"enrollments": {"user_id": principal.user_id}}}
    )
    if result.modified_count == 0:
        raise NotFound("You are not enrolled in this course")

    await db.users.update_one(
        {"user_id": principal.user_id},
        {"$pull": {"enrolled_courses": course_id}}
    )
    await log_audit(db, principal, "unenroll", "course", course_id)
    logger.info("User %s unenrolled from %s", principal.user_id, course_id)


async def update_progress(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    course_id: str,
    progress: float
) -> dict:
    """Update the principal's own progress; 100 marks the course completed"""
    await get_course_or_404(db, course_id)

    updated = await db.courses.find_one_and_update(
        {"course_id": course_id, "enrollments.user_id": principal.user_id},
        {"$set": {
            "enrollments.$.progress": progress,
            "enrollments.$.completed": progress >= 100
        }},
        return_document=ReturnDocument.AFTER
    )
    if not updated:
        raise Forbidden("You are not enrolled in this course")

    return next(e for e in updated["enrollments"] if e["user_id"] == principal.user_id)
