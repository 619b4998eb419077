from fastapi import APIRouter, Depends, Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.auth_utils import Principal, Role
from app.core.dependencies import get_db, get_current_principal, require_roles
from app.core.errors import success
from app.lessons import lesson_service as service
from app.lessons.lesson_schemas import LessonCreate, LessonUpdate, ReorderPayload

router = APIRouter(tags=["Lessons"])

authors = require_roles(Role.INSTRUCTOR, Role.ADMIN)

# ==================== COURSE LESSONS ====================

@router.get("/courses/{course_id}/lessons")
async def list_course_lessons(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    lessons = await service.list_lessons(db, principal, course_id)
    return success({"lessons": lessons}, results=len(lessons))


@router.post("/courses/{course_id}/lessons", status_code=201)
async def create_lesson(
    course_id: str,
    data: LessonCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(authors)
):
    """
    Add a lesson to the course. Without an order it goes last,
    with one the later lessons shift down to make room.
    """
    lesson = await service.create_lesson(db, principal, course_id, data.model_dump())
    return success({"lesson": lesson})


@router.put("/courses/{course_id}/lessons/reorder")
async def reorder_lessons(
    course_id: str,
    payload: ReorderPayload,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(authors)
):
    lessons = await service.reorder_lessons(db, principal, course_id, payload.order)
    return success({"lessons": lessons}, results=len(lessons))

# ==================== SINGLE LESSON ====================

@router.get("/lessons/{lesson_id}")
async def get_lesson(
    lesson_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    lesson = await service.get_lesson(db, principal, lesson_id)
    return success({"lesson": lesson})


@router.patch("/lessons/{lesson_id}")
async def update_lesson(
    lesson_id: str,
    data: LessonUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(authors)
):
    lesson = await service.update_lesson(
        db, principal, lesson_id, data.model_dump(exclude_unset=True)
    )
    return success({"lesson": lesson})


@router.delete("/lessons/{lesson_id}", status_code=204)
async def delete_lesson(
    lesson_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(authors)
):
    await service.delete_lesson(db, principal, lesson_id)
    return Response(status_code=204)
