from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from enrollment_service.models.access_request import AccessRequest
from enrollment_service.repos.mappers import request_from_columns, request_to_columns
from enrollment_service.repos.memory_tables import InMemoryTables


class AccessRequestRepo(Protocol):
    async def get(
        self, request_id: int, *, for_update: bool = False
    ) -> AccessRequest | None: ...
    async def find_pending(
        self, student_id: int, course_id: int
    ) -> AccessRequest | None: ...
    async def list_pending(
        self, student_id: int | None = None
    ) -> list[AccessRequest]: ...
    async def add(self, request: AccessRequest) -> AccessRequest: ...
    async def save(self, request: AccessRequest) -> None: ...
    async def delete(self, request_id: int) -> bool: ...
    async def delete_pending(self, student_id: int, course_id: int) -> int: ...


class InMemoryAccessRequestRepo:
    def __init__(self, tables: InMemoryTables) -> None:
        self._rows = tables.access_requests
        self._tables = tables

    async def get(
        self, request_id: int, *, for_update: bool = False
    ) -> AccessRequest | None:
        row = self._rows.get(request_id)
        return request_from_columns(row) if row is not None else None

    async def find_pending(
        self, student_id: int, course_id: int
    ) -> AccessRequest | None:
        for row in self._rows.values():
            if (
                row["student_id"] == student_id
                and row["course_id"] == course_id
                and row["status"] == "pending"
            ):
                return request_from_columns(row)
        return None

    async def list_pending(self, student_id: int | None = None) -> list[AccessRequest]:
        return [
            request_from_columns(row)
            for _, row in sorted(self._rows.items())
            if row["status"] == "pending"
            and (student_id is None or row["student_id"] == student_id)
        ]

    async def add(self, request: AccessRequest) -> AccessRequest:
        if request.is_pending and await self.find_pending(
            request.student_id, request.course_id
        ):
            raise ValueError("duplicate pending access request")
        row_id = self._tables.next_id("access_requests")
        self._rows[row_id] = {"id": row_id, **request_to_columns(request)}
        return replace(request, id=row_id)

    async def save(self, request: AccessRequest) -> None:
        if request.id is None or request.id not in self._rows:
            raise KeyError("access request not found")
        self._rows[request.id].update(request_to_columns(request))

    async def delete(self, request_id: int) -> bool:
        return self._rows.pop(request_id, None) is not None

    async def delete_pending(self, student_id: int, course_id: int) -> int:
        doomed = [
            rid
            for rid, row in self._rows.items()
            if row["student_id"] == student_id
            and row["course_id"] == course_id
            and row["status"] == "pending"
        ]
        for rid in doomed:
            del self._rows[rid]
        return len(doomed)
