import asyncio

import pytest

from app.core.errors import AlreadyEnrolled, Forbidden, NotFound, NotPublished
from app.courses import course_service
from app.lessons import lesson_service

from conftest import seed_assignment, seed_course, seed_lessons

pytestmark = pytest.mark.anyio


async def test_cannot_enroll_in_unpublished_course(db, instructor, student):
    course = await seed_course(db, instructor, published=False)

    with pytest.raises(NotPublished):
        await course_service.enroll(db, student, course["course_id"])

    stored = await course_service.get_course_or_404(db, course["course_id"])
    assert stored["enrollments"] == []


async def test_second_enroll_fails_and_keeps_single_record(db, instructor, student):
    course = await seed_course(db, instructor)

    view = await course_service.enroll(db, student, course["course_id"])
    assert view["is_enrolled"] is True
    assert view["enrollment_count"] == 1

    with pytest.raises(AlreadyEnrolled):
        await course_service.enroll(db, student, course["course_id"])

    stored = await course_service.get_course_or_404(db, course["course_id"])
    assert [e["user_id"] for e in stored["enrollments"]] == [student.user_id]


async def test_racing_enrolls_produce_one_record(db, instructor, student):
    course = await seed_course(db, instructor)

    results = await asyncio.gather(
        *(course_service.enroll(db, student, course["course_id"]) for _ in range(5)),
        return_exceptions=True
    )

    assert sum(1 for r in results if isinstance(r, dict)) == 1
    assert all(isinstance(r, AlreadyEnrolled) for r in results if not isinstance(r, dict))

    stored = await course_service.get_course_or_404(db, course["course_id"])
    assert len(stored["enrollments"]) == 1


async def test_enroll_tracks_course_on_user(db, instructor, student):
    await db.users.insert_one({"user_id": student.user_id, "enrolled_courses": []})
    course = await seed_course(db, instructor)

    await course_service.enroll(db, student, course["course_id"])

    user = await db.users.find_one({"user_id": student.user_id})
    assert user["enrolled_courses"] == [course["course_id"]]


async def test_enroll_unknown_course(db, student):
    with pytest.raises(NotFound):
        await course_service.enroll(db, student, "CRS_MISSING")


async def test_unenroll(db, instructor, student):
    course = await seed_course(db, instructor)
    await course_service.enroll(db, student, course["course_id"])

    await course_service.unenroll(db, student, course["course_id"])

    stored = await course_service.get_course_or_404(db, course["course_id"])
    assert stored["enrollments"] == []

    with pytest.raises(NotFound):
        await course_service.unenroll(db, student, course["course_id"])


async def test_progress_updates_own_enrollment(db, instructor, student, other_student):
    course = await seed_course(db, instructor)
    await course_service.enroll(db, student, course["course_id"])
    await course_service.enroll(db, other_student, course["course_id"])

    enrollment = await course_service.update_progress(db, student, course["course_id"], 40)
    assert enrollment["progress"] == 40
    assert enrollment["completed"] is False

    enrollment = await course_service.update_progress(db, student, course["course_id"], 100)
    assert enrollment["completed"] is True

    stored = await course_service.get_course_or_404(db, course["course_id"])
    other = next(e for e in stored["enrollments"] if e["user_id"] == other_student.user_id)
    assert other["progress"] == 0


async def test_progress_requires_enrollment(db, instructor, student):
    course = await seed_course(db, instructor)

    with pytest.raises(Forbidden):
        await course_service.update_progress(db, student, course["course_id"], 10)


async def test_students_list_only_published(db, instructor, student):
    published = await seed_course(db, instructor, title="Open course")
    await seed_course(db, instructor, published=False, title="Draft course")

    courses = await course_service.list_courses(db, student)
    assert [c["course_id"] for c in courses] == [published["course_id"]]
    assert "enrollments" not in courses[0]

    own = await course_service.list_courses(db, instructor)
    assert len(own) == 2


async def test_course_detail_joins_instructor_and_lessons(db, instructor, student):
    await db.users.insert_one({
        "user_id": instructor.user_id, "name": "Ada", "email": "ada@example.com",
        "password_hash": "secret"
    })
    course = await seed_course(db, instructor)
    lessons = await seed_lessons(db, instructor, course["course_id"], 2)
    await lesson_service.update_lesson(db, instructor, lessons[1]["lesson_id"], {"is_published": False})

    detail = await course_service.get_course_detail(db, student, course["course_id"])
    assert detail["instructor"]["name"] == "Ada"
    assert "password_hash" not in detail["instructor"]
    assert [l["lesson_id"] for l in detail["lessons"]] == [lessons[0]["lesson_id"]]

    detail = await course_service.get_course_detail(db, instructor, course["course_id"])
    assert len(detail["lessons"]) == 2


async def test_update_course_recomputes_slug(db, instructor, other_instructor):
    course = await seed_course(db, instructor)

    updated = await course_service.update_course(
        db, instructor, course["course_id"], {"title": "Advanced Python Topics"}
    )
    assert updated["slug"] == "advanced-python-topics"
    assert updated["instructor_id"] == instructor.user_id

    with pytest.raises(Forbidden):
        await course_service.update_course(db, other_instructor, course["course_id"], {"price": 5})


async def test_delete_course_cascades(db, instructor, student):
    await db.users.insert_one({"user_id": instructor.user_id, "created_courses": []})
    await db.users.insert_one({"user_id": student.user_id, "enrolled_courses": []})

    course = await seed_course(db, instructor)
    course_id = course["course_id"]
    await seed_lessons(db, instructor, course_id, 2)
    await seed_assignment(db, instructor, course_id)
    await course_service.enroll(db, student, course_id)

    await course_service.delete_course(db, instructor, course_id)

    assert await db.courses.count_documents({"course_id": course_id}) == 0
    assert await db.lessons.count_documents({"course_id": course_id}) == 0
    assert await db.assignments.count_documents({"course_id": course_id}) == 0
    assert (await db.users.find_one({"user_id": student.user_id}))["enrolled_courses"] == []
    assert (await db.users.find_one({"user_id": instructor.user_id}))["created_courses"] == []

    logs = await db.audit_logs.find({"target_id": course_id}).to_list(length=None)
    actions = [log["action"] for log in logs]
    assert "delete_course" in actions
