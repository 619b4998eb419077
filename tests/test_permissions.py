"""
Access decisions are pure functions of (principal, snapshot): no store needed.
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.core.auth_utils import Principal, Role
from app.core.errors import Forbidden, NotPublished, AlreadyEnrolled, DueDatePassed
from app.core.permissions import (
    ALLOW, ensure,
    can_read_course, can_access_course_content, can_read_course_content,
    can_write_course_resource, can_enroll, can_submit, can_grade,
)

OWNER = Principal("USR_OWNER", Role.INSTRUCTOR)
STRANGER = Principal("USR_STRANGER", Role.INSTRUCTOR)
STUDENT = Principal("USR_STUDENT", Role.STUDENT)
ADMIN = Principal("USR_ADMIN", Role.ADMIN)


def course(published=True, enrolled=()):
    return {
        "course_id": "CRS_1",
        "instructor_id": OWNER.user_id,
        "published": published,
        "enrollments": [{"user_id": uid, "progress": 0} for uid in enrolled],
    }


def assignment(published=True, due_date=None):
    return {"assignment_id": "ASG_1", "is_published": published, "due_date": due_date}


def denial_of(decision):
    allowed, error = decision
    assert allowed is False
    return error


def test_unpublished_course_is_hidden_from_students():
    error = denial_of(can_read_course(STUDENT, course(published=False)))
    assert isinstance(error, NotPublished)
    assert error.status_code == 403


def test_unpublished_course_visible_to_owner_and_admin():
    assert can_read_course(OWNER, course(published=False)) == ALLOW
    assert can_read_course(ADMIN, course(published=False)) == ALLOW
    assert isinstance(denial_of(can_read_course(STRANGER, course(published=False))), NotPublished)


def test_content_requires_enrollment_or_staff():
    c = course(enrolled=[STUDENT.user_id])
    assert can_access_course_content(STUDENT, c) == ALLOW
    assert can_access_course_content(OWNER, course()) == ALLOW
    assert can_access_course_content(ADMIN, course()) == ALLOW

    error = denial_of(can_access_course_content(STUDENT, course()))
    assert type(error) is Forbidden


def test_enrolled_student_cannot_read_unpublished_lesson():
    c = course(enrolled=[STUDENT.user_id])
    assert can_read_course_content(STUDENT, c, {"is_published": True}) == ALLOW
    assert isinstance(denial_of(can_read_course_content(STUDENT, c, {"is_published": False})), NotPublished)
    assert can_read_course_content(OWNER, c, {"is_published": False}) == ALLOW


def test_only_owner_or_admin_may_write():
    assert can_write_course_resource(OWNER, course()) == ALLOW
    assert can_write_course_resource(ADMIN, course()) == ALLOW
    assert type(denial_of(can_write_course_resource(STRANGER, course()))) is Forbidden
    assert type(denial_of(can_write_course_resource(STUDENT, course()))) is Forbidden


def test_enroll_denied_for_unpublished_course():
    assert isinstance(denial_of(can_enroll(STUDENT, course(published=False))), NotPublished)


def test_enroll_denied_when_already_enrolled():
    c = course(enrolled=[STUDENT.user_id])
    assert isinstance(denial_of(can_enroll(STUDENT, c)), AlreadyEnrolled)
    assert can_enroll(STUDENT, course()) == ALLOW


def test_submit_checks_publication_first():
    past = datetime(2000, 1, 1)
    error = denial_of(can_submit(STUDENT, assignment(published=False, due_date=past), course()))
    assert isinstance(error, NotPublished)


def test_submit_after_due_date():
    now = datetime(2024, 5, 2, 12, 0)
    a = assignment(due_date=datetime(2024, 5, 1, 12, 0))
    c = course(enrolled=[STUDENT.user_id])
    assert isinstance(denial_of(can_submit(STUDENT, a, c, now=now)), DueDatePassed)


def test_submit_compares_aware_and_naive_times_in_utc():
    due = datetime(2024, 5, 1, 12, 0)
    c = course(enrolled=[STUDENT.user_id])
    # 13:00 at UTC+2 is 11:00 UTC, still before the deadline
    now = datetime(2024, 5, 1, 13, 0, tzinfo=timezone(timedelta(hours=2)))
    assert can_submit(STUDENT, assignment(due_date=due), c, now=now) == ALLOW


def test_submit_requires_enrollment_unless_admin():
    a = assignment(due_date=None)
    assert type(denial_of(can_submit(STUDENT, a, course()))) is Forbidden
    assert can_submit(STUDENT, a, course(enrolled=[STUDENT.user_id])) == ALLOW
    assert can_submit(ADMIN, a, course()) == ALLOW


def test_grade_is_staff_only():
    assert can_grade(OWNER, course()) == ALLOW
    assert can_grade(ADMIN, course()) == ALLOW
    assert type(denial_of(can_grade(STRANGER, course()))) is Forbidden
    assert type(denial_of(can_grade(STUDENT, course(enrolled=[STUDENT.user_id])))) is Forbidden


def test_ensure_raises_carried_error():
    ensure(ALLOW)
    with pytest.raises(AlreadyEnrolled):
        ensure(can_enroll(STUDENT, course(enrolled=[STUDENT.user_id])))
