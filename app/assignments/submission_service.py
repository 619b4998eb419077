"""
Submission lifecycle: NoSubmission -> Submitted -> Graded -> (resubmit) Submitted

One submission record per (assignment, student). The record is written
with conditional updates on the embedded array, never read-modify-write,
so racing submits from the same student still leave a single record.
"""

import logging
from typing import List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.core.auth_utils import Principal
from app.core.common_audit import log_audit
from app.core.database import generate_id, utcnow
from app.core.errors import LMSError, NotFound, ValidationError
from app.core.permissions import ensure, can_submit, can_grade
from app.assignments.assignment_models import Submission
from app.assignments.assignment_service import get_assignment_or_404, get_assignment_with_course

logger = logging.getLogger(__name__)

SUBMIT_ATTEMPTS = 3


def _find_submission(assignment: dict, key: str, value: str) -> Optional[dict]:
    return next(
        (s for s in assignment.get("submissions", []) if s.get(key) == value),
        None
    )


async def submit(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    assignment_id: str,
    content: str,
    attachments: List[dict] = None
) -> Tuple[dict, bool]:
    """
    Record the principal's submission

    Returns:
        tuple: (submission, is_resubmission)

    Raises:
        NotFound: Assignment missing
        NotPublished: Assignment not published
        DueDatePassed: Past the due date
        Forbidden: Not enrolled
    """
    assignment, course = await get_assignment_with_course(db, assignment_id)
    ensure(can_submit(principal, assignment, course))

    attachments = attachments or []
    student_id = principal.user_id

    for _ in range(SUBMIT_ATTEMPTS):
        submitted_at = utcnow()

        # Resubmission: overwrite in place and drop the old grade
        updated = await db.assignments.find_one_and_update(
            {"assignment_id": assignment_id, "submissions.student_id": student_id},
            {"$set": {
                "submissions.$.content": content,
                "submissions.$.attachments": attachments,
                "submissions.$.submission_date": submitted_at,
                "submissions.$.is_graded": False,
                "submissions.$.grade": None,
                "submissions.$.feedback": None,
                "submissions.$.graded_at": None,
                "submissions.$.graded_by": None,
            }},
            return_document=ReturnDocument.AFTER
        )
        if updated:
            logger.info("Student %s resubmitted %s", student_id, assignment_id)
            return _find_submission(updated, "student_id", student_id), True

        # First submission: push only while no record for this student exists
        submission = Submission(
            submission_id=generate_id("SUB"),
            student_id=student_id,
            content=content,
            attachments=attachments,
            submission_date=submitted_at,
        )
        updated = await db.assignments.find_one_and_update(
            {"assignment_id": assignment_id, "submissions.student_id": {"$ne": student_id}},
            {"$push": {"submissions": submission.model_dump()}},
            return_document=ReturnDocument.AFTER
        )
        if updated:
            logger.info("Student %s submitted %s", student_id, assignment_id)
            return _find_submission(updated, "student_id", student_id), False

        if not await db.assignments.count_documents({"assignment_id": assignment_id}):
            raise NotFound("No assignment found with that ID")
        # A concurrent first submission won; go again as a resubmission

    raise LMSError("Submission could not be recorded, please retry")


async def grade_submission(
    db: AsyncIOMotorDatabase,
    principal: Principal,
    assignment_id: str,
    submission_id: str,
    grade: float,
    feedback: Optional[str] = None
) -> dict:
    """
    Grade a submission. Re-grading overwrites.
    Bounds are checked before anything is written, and again by the write itself.
    """
    assignment, course = await get_assignment_with_course(db, assignment_id)
    ensure(can_grade(principal, course))

    if not _find_submission(assignment, "submission_id", submission_id):
        raise NotFound("No submission found with that ID")

    total_points = assignment["total_points"]
    if grade is None or not 0 <= grade <= total_points:
        raise ValidationError(f"Grade must be between 0 and {total_points}")

    # total_points is re-checked in the filter in case it was lowered meanwhile
    updated = await db.assignments.find_one_and_update(
        {
            "assignment_id": assignment_id,
            "submissions.submission_id": submission_id,
            "total_points": {"$gte": grade}
        },
        {"$set": {
            "submissions.$.grade": grade,
            "submissions.$.feedback": feedback,
            "submissions.$.is_graded": True,
            "submissions.$.graded_at": utcnow(),
            "submissions.$.graded_by": principal.user_id,
        }},
        return_document=ReturnDocument.AFTER
    )
    if not updated:
        current = await get_assignment_or_404(db, assignment_id)
        if not _find_submission(current, "submission_id", submission_id):
            raise NotFound("No submission found with that ID")
        raise ValidationError(f"Grade must be between 0 and {current['total_points']}")

    await log_audit(
        db, principal, "grade_submission", "submission", submission_id,
        {"assignment_id": assignment_id, "grade": grade}
    )
    logger.info("Submission %s graded %s/%s", submission_id, grade, total_points)

    return _find_submission(updated, "submission_id", submission_id)


async def list_submissions(db: AsyncIOMotorDatabase, principal: Principal, assignment_id: str) -> List[dict]:
    """Gradebook view of one assignment, graders only"""
    assignment, course = await get_assignment_with_course(db, assignment_id)
    ensure(can_grade(principal, course))
    return sorted(assignment.get("submissions", []), key=lambda s: s["submission_date"])
