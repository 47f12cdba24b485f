"""Backing tables for the in-memory store.

Rows are plain dicts keyed by the same column names as db/tables.py, so
in-memory data goes through the same mappers (and codec) as Postgres.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from typing import Any

Row = dict[str, Any]
PairKey = tuple[int, int]


@dataclass
class InMemoryTables:
    users: dict[int, Row] = field(default_factory=dict)
    courses: dict[int, Row] = field(default_factory=dict)
    modules: dict[int, Row] = field(default_factory=dict)
    chapters: dict[int, Row] = field(default_factory=dict)
    student_progress: dict[PairKey, Row] = field(default_factory=dict)
    enrollments: dict[PairKey, Row] = field(default_factory=dict)
    access_requests: dict[int, Row] = field(default_factory=dict)
    sequences: dict[str, int] = field(default_factory=dict)

    def next_id(self, table: str) -> int:
        value = self.sequences.get(table, 0) + 1
        self.sequences[table] = value
        return value

    def claim_id(self, table: str, explicit: int | None) -> int:
        if explicit is None:
            return self.next_id(table)
        self.sequences[table] = max(self.sequences.get(table, 0), explicit)
        return explicit

    def snapshot(self) -> dict[str, Any]:
        return {f.name: copy.deepcopy(getattr(self, f.name)) for f in fields(self)}

    def restore(self, snapshot: dict[str, Any]) -> None:
        # Restore in place: repos hold references to these dicts
        for name, saved in snapshot.items():
            live = getattr(self, name)
            live.clear()
            live.update(saved)
