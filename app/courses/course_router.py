from fastapi import APIRouter, Depends, Query, Response
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional

from app.core.auth_utils import Principal, Role
from app.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.core.dependencies import get_db, get_current_principal, require_roles
from app.core.errors import success
from app.courses import course_service as service
from app.courses.course_models import CourseCategory, CourseLevel
from app.courses.course_schemas import CourseCreate, CourseUpdate, ProgressUpdate

router = APIRouter(prefix="/courses", tags=["Courses"])

authors = require_roles(Role.INSTRUCTOR, Role.ADMIN)
learners = require_roles(Role.STUDENT, Role.ADMIN)

# ==================== COURSE CRUD ====================

@router.get("")
async def list_courses(
    category: Optional[CourseCategory] = None,
    level: Optional[CourseLevel] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """List courses visible to the caller"""
    courses = await service.list_courses(
        db, principal,
        category=category.value if category else None,
        level=level.value if level else None,
        skip=skip, limit=limit
    )
    return success({"courses": courses}, results=len(courses))


@router.get("/me/enrolled")
async def list_my_enrolled_courses(
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    courses = await service.list_enrolled_courses(db, principal)
    return success({"courses": courses}, results=len(courses))


@router.get("/me/created")
async def list_my_created_courses(
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(authors)
):
    courses = await service.list_created_courses(db, principal)
    return success({"courses": courses}, results=len(courses))


@router.get("/{course_id}")
async def get_course(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """
    Get course with instructor and lesson summaries
    """
    course = await service.get_course_detail(db, principal, course_id)
    return success({"course": course})


@router.post("", status_code=201)
async def create_course(
    data: CourseCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(authors)
):
    course = await service.create_course(db, principal, data.model_dump())
    return success({"course": course})


@router.patch("/{course_id}")
async def update_course(
    course_id: str,
    data: CourseUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(authors)
):
    course = await service.update_course(
        db, principal, course_id, data.model_dump(exclude_unset=True)
    )
    return success({"course": course})


@router.delete("/{course_id}", status_code=204)
async def delete_course(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(authors)
):
    await service.delete_course(db, principal, course_id)
    return Response(status_code=204)

# ==================== ENROLLMENT ====================

@router.post("/{course_id}/enroll")
async def enroll(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(learners)
):
    course = await service.enroll(db, principal, course_id)
    return success({"course": course}, message="Successfully enrolled in course")


@router.delete("/{course_id}/enroll", status_code=204)
async def unenroll(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(learners)
):
    await service.unenroll(db, principal, course_id)
    return Response(status_code=204)


@router.patch("/{course_id}/progress")
async def update_progress(
    course_id: str,
    data: ProgressUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    enrollment = await service.update_progress(db, principal, course_id, data.progress)
    return success({"enrollment": enrollment})
