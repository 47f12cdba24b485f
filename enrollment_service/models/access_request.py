from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AccessRequest:
    id: int | None
    student_id: int
    course_id: int
    reason: str = ""
    status: str = "pending"  # pending|approved|rejected
    requested_at: int | None = None
    reviewed_at: int | None = None
    reviewed_by: int | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    @property
    def stored_id(self) -> int:
        if self.id is None:
            raise ValueError("access request has not been stored yet")
        return self.id

    @staticmethod
    def new(
        *, student_id: int, course_id: int, now: int, reason: str | None = None
    ) -> AccessRequest:
        return AccessRequest(
            id=None,
            student_id=student_id,
            course_id=course_id,
            reason=reason or "",
            status="pending",
            requested_at=now,
        )
