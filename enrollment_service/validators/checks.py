"""Lookup checks shared by the validators.

Each check reads live state through a Transaction and returns the
violation message, or None when the check passes.
"""

from __future__ import annotations

from enrollment_service.repos.unit_of_work import Transaction


async def check_student(
    tx: Transaction, user_id: int, *, label: str = "User"
) -> str | None:
    user = await tx.catalog.get_user(user_id)
    if user is None or not user.is_active:
        return f"{label} {user_id} does not exist or is not active"
    if not user.is_student:
        return f"{label} {user_id} is not a student"
    return None


async def check_admin(tx: Transaction, admin_id: int) -> str | None:
    admin = await tx.catalog.get_user(admin_id)
    if admin is None or not admin.is_active or not admin.is_admin:
        return f"Admin {admin_id} does not exist or is not an admin"
    return None


async def check_course(
    tx: Transaction, course_id: int, *, enrollable: bool = False
) -> str | None:
    course = await tx.catalog.get_course(course_id)
    if course is None:
        return f"Course {course_id} does not exist"
    if enrollable and not course.is_enrollable:
        return f"Course {course_id} is not published (status: {course.status})"
    return None


async def check_chapter(
    tx: Transaction, chapter_id: int, course_id: int
) -> str | None:
    owner = await tx.catalog.get_chapter_course_id(chapter_id)
    if owner is None:
        return f"Chapter {chapter_id} does not exist"
    if owner != course_id:
        return f"Chapter {chapter_id} does not belong to course {course_id}"
    return None


async def is_enrolled(tx: Transaction, user_id: int, course_id: int) -> bool:
    """Either table holding a row counts as enrolled."""
    if await tx.progress.get(user_id, course_id) is not None:
        return True
    return await tx.enrollments.get(user_id, course_id) is not None
