"""
Access-control decisions for courses and their content

Every check is a pure function of (principal, document snapshot) and
returns (allowed, error). The error is the denial to raise when the caller
decides to enforce it; it is None when access is granted.
"""

from datetime import datetime
from typing import Optional, Tuple

from app.core.auth_utils import Principal
from app.core.database import as_naive_utc, utcnow
from app.core.errors import (
    LMSError, Forbidden, NotPublished, AlreadyEnrolled, DueDatePassed
)

Decision = Tuple[bool, Optional[LMSError]]

ALLOW: Decision = (True, None)


def deny(error: LMSError) -> Decision:
    return False, error


def ensure(decision: Decision):
    """Raise the denial carried by a decision"""
    allowed, error = decision
    if not allowed:
        raise error


# ==================== FACTS ====================

def is_owner(principal: Principal, course: dict) -> bool:
    return course.get("instructor_id") == principal.user_id


def is_enrolled(principal: Principal, course: dict) -> bool:
    return any(
        e.get("user_id") == principal.user_id
        for e in course.get("enrollments", [])
    )


def is_staff(principal: Principal, course: dict) -> bool:
    """Admin or the course owner"""
    return principal.is_admin or is_owner(principal, course)


# ==================== DECISIONS ====================

def can_read_course(principal: Principal, course: dict) -> Decision:
    if course.get("published") or is_staff(principal, course):
        return ALLOW
    return deny(NotPublished("This course is not published yet"))


def can_access_course_content(principal: Principal, course: dict) -> Decision:
    if is_staff(principal, course) or is_enrolled(principal, course):
        return ALLOW
    return deny(Forbidden("You are not enrolled in this course"))


def can_read_course_content(principal: Principal, course: dict, resource: dict) -> Decision:
    """
    Lessons and assignments: admin, owner or enrolled user.
    Students additionally only see published resources.
    """
    allowed, error = can_access_course_content(principal, course)
    if not allowed:
        return deny(error)

    if principal.is_student and not resource.get("is_published"):
        return deny(NotPublished())

    return ALLOW


def can_write_course_resource(principal: Principal, course: dict) -> Decision:
    if is_staff(principal, course):
        return ALLOW
    return deny(Forbidden("You are not authorized to modify this course"))


def can_enroll(principal: Principal, course: dict) -> Decision:
    if not course.get("published"):
        return deny(NotPublished("This course is not published yet"))

    if is_enrolled(principal, course):
        return deny(AlreadyEnrolled())

    return ALLOW


def can_submit(
    principal: Principal,
    assignment: dict,
    course: dict,
    now: Optional[datetime] = None
) -> Decision:
    if not assignment.get("is_published"):
        return deny(NotPublished("This assignment is not published yet"))

    due_date = as_naive_utc(assignment.get("due_date"))
    if due_date is not None and (as_naive_utc(now) or utcnow()) > due_date:
        return deny(DueDatePassed())

    if not (is_enrolled(principal, course) or principal.is_admin):
        return deny(Forbidden("You are not enrolled in this course"))

    return ALLOW


def can_grade(principal: Principal, course: dict) -> Decision:
    if is_staff(principal, course):
        return ALLOW
    return deny(Forbidden("You are not authorized to grade this assignment"))
