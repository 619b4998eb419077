from fastapi import APIRouter, Depends, Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.auth_utils import Principal, Role
from app.core.dependencies import get_db, get_current_principal, require_roles
from app.core.errors import success
from app.assignments import assignment_service as service
from app.assignments import submission_service
from app.assignments.assignment_schemas import (
    AssignmentCreate, AssignmentUpdate, SubmissionCreate, GradePayload
)

router = APIRouter(tags=["Assignments"])

authors = require_roles(Role.INSTRUCTOR, Role.ADMIN)
learners = require_roles(Role.STUDENT, Role.ADMIN)

# ==================== LISTING ====================

@router.get("/courses/{course_id}/assignments")
async def list_course_assignments(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    assignments = await service.list_assignments(db, principal, course_id=course_id)
    return success({"assignments": assignments}, results=len(assignments))


@router.get("/lessons/{lesson_id}/assignments")
async def list_lesson_assignments(
    lesson_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    assignments = await service.list_assignments(db, principal, lesson_id=lesson_id)
    return success({"assignments": assignments}, results=len(assignments))

# ==================== ASSIGNMENT MANAGEMENT ====================

@router.post("/courses/{course_id}/assignments", status_code=201)
async def create_course_assignment(
    course_id: str,
    data: AssignmentCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(authors)
):
    assignment = await service.create_assignment(db, principal, course_id, data.model_dump())
    return success({"assignment": assignment})


@router.post("/lessons/{lesson_id}/assignments", status_code=201)
async def create_lesson_assignment(
    lesson_id: str,
    data: AssignmentCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(authors)
):
    assignment = await service.create_lesson_assignment(db, principal, lesson_id, data.model_dump())
    return success({"assignment": assignment})


@router.get("/assignments/{assignment_id}")
async def get_assignment(
    assignment_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    assignment = await service.get_assignment(db, principal, assignment_id)
    return success({"assignment": assignment})


@router.patch("/assignments/{assignment_id}")
async def update_assignment(
    assignment_id: str,
    data: AssignmentUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(authors)
):
    assignment = await service.update_assignment(
        db, principal, assignment_id, data.model_dump(exclude_unset=True)
    )
    return success({"assignment": assignment})


@router.delete("/assignments/{assignment_id}", status_code=204)
async def delete_assignment(
    assignment_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(authors)
):
    await service.delete_assignment(db, principal, assignment_id)
    return Response(status_code=204)

# ==================== SUBMISSIONS ====================

@router.post("/assignments/{assignment_id}/submit")
async def submit_assignment(
    assignment_id: str,
    data: SubmissionCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(learners)
):
    """
    Submit or resubmit. Resubmitting replaces the earlier work
    and clears its grade until it is graded again.
    """
    payload = data.model_dump()
    submission, resubmitted = await submission_service.submit(
        db, principal, assignment_id, payload["content"], payload["attachments"]
    )
    return success(
        {"submission": submission},
        message="Assignment resubmitted" if resubmitted else "Assignment submitted"
    )


@router.get("/assignments/{assignment_id}/submissions")
async def list_submissions(
    assignment_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(authors)
):
    submissions = await submission_service.list_submissions(db, principal, assignment_id)
    return success({"submissions": submissions}, results=len(submissions))


@router.post("/assignments/{assignment_id}/grade/{submission_id}")
async def grade_submission(
    assignment_id: str,
    submission_id: str,
    data: GradePayload,
    db: AsyncIOMotorDatabase = Depends(get_db),
    principal: Principal = Depends(authors)
):
    submission = await submission_service.grade_submission(
        db, principal, assignment_id, submission_id, data.grade, data.feedback
    )
    return success({"submission": submission}, message="Assignment graded successfully")
