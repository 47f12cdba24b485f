from __future__ import annotations


class DataManagerError(Exception):
    """Business-rule failure raised inside an operation body.

    Never retryable: re-running the same call against the same state
    fails the same way.
    """

    code = "OPERATION_ERROR"
    retryable = False


class EnrollmentNotFoundError(DataManagerError):
    code = "ENROLLMENT_NOT_FOUND"

    def __init__(self, user_id: int, course_id: int) -> None:
        super().__init__(
            f"No enrollment found for user {user_id} in course {course_id}"
        )
        self.user_id = user_id
        self.course_id = course_id


class StudentNotFoundError(DataManagerError):
    code = "STUDENT_NOT_FOUND"

    def __init__(self, student_id: int) -> None:
        super().__init__(
            f"Student {student_id} does not exist or is not an active student"
        )
        self.student_id = student_id


class CourseNotFoundError(DataManagerError):
    code = "COURSE_NOT_FOUND"

    def __init__(self, course_id: int) -> None:
        super().__init__(f"Course {course_id} does not exist")
        self.course_id = course_id


class ChapterNotInCourseError(DataManagerError):
    code = "CHAPTER_NOT_IN_COURSE"

    def __init__(self, chapter_id: int, course_id: int) -> None:
        super().__init__(f"Chapter {chapter_id} does not belong to course {course_id}")
        self.chapter_id = chapter_id
        self.course_id = course_id


class RequestNotFoundError(DataManagerError):
    code = "REQUEST_NOT_FOUND"

    def __init__(self, request_id: int) -> None:
        super().__init__(f"Request {request_id} not found")
        self.request_id = request_id


class RequestNotPendingError(DataManagerError):
    code = "REQUEST_NOT_PENDING"

    def __init__(self, request_id: int, status: str) -> None:
        super().__init__(f"Request {request_id} is not pending (status: {status})")
        self.request_id = request_id
        self.status = status


class DuplicatePendingRequestError(DataManagerError):
    code = "DUPLICATE_PENDING_REQUEST"

    def __init__(self, student_id: int, course_id: int) -> None:
        super().__init__(
            f"Pending request already exists for student {student_id} "
            f"and course {course_id}"
        )
        self.student_id = student_id
        self.course_id = course_id


class EnrollmentVerificationError(DataManagerError):
    code = "ENROLLMENT_VERIFICATION_FAILED"

    def __init__(
        self,
        student_id: int,
        course_id: int,
        *,
        in_progress: bool,
        in_enrollments: bool,
    ) -> None:
        super().__init__(
            f"Enrollment verification failed for student {student_id}, "
            f"course {course_id}. "
            f"Progress: {in_progress}, Enrollments: {in_enrollments}"
        )
        self.student_id = student_id
        self.course_id = course_id
