from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Enrollment:
    """Read-optimized replica of enrollment + progress facts.

    ``progress`` mirrors StudentProgress.total_progress; ``completed_at``
    is set exactly when progress is 100.
    """

    user_id: int
    course_id: int
    status: str = "active"  # active|inactive
    progress: int = 0
    enrolled_at: int | None = None
    completed_at: int | None = None
    updated_at: int | None = None
    id: int | None = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @staticmethod
    def new(
        *, user_id: int, course_id: int, now: int, progress: int = 0
    ) -> Enrollment:
        return Enrollment(
            user_id=user_id,
            course_id=course_id,
            status="active",
            progress=progress,
            enrolled_at=now,
            completed_at=now if progress == 100 else None,
            updated_at=now,
        )
