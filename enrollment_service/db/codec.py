"""Encoding of the collection columns on student_progress.

Storage shape (JSON text, shared with rows written by the web
client):

  completed_chapters  [3, 7, 12]
  watched_videos      [{"chapterId": 3, "progress": 95.0, "lastWatched": 1700000000}]
  quiz_attempts       [{"quizId": 9, "chapterId": 3, "score": 80, "passed": true,
                        "attemptedAt": 1700000000}]

NULL / empty text decodes to an empty collection.  Text that is not
valid JSON, or has the wrong shape, raises ColumnDecodeError: the row is
left untouched rather than silently rewritten with an empty collection.
"""

from __future__ import annotations

import datetime
import json
from collections.abc import Iterable, Mapping
from typing import Any

from enrollment_service.models.progress import QuizAttempt, VideoProgress


class ColumnDecodeError(ValueError):
    def __init__(self, column: str, detail: str) -> None:
        super().__init__(f"cannot decode {column}: {detail}")
        self.column = column


def _load_list(column: str, raw: str | None) -> list[Any]:
    if raw is None or not raw.strip():
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ColumnDecodeError(column, f"invalid JSON ({exc.msg})") from exc
    if value is None:
        return []
    if not isinstance(value, list):
        kind = type(value).__name__
        raise ColumnDecodeError(column, f"expected a JSON array, got {kind}")
    return value


def _as_int(column: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ColumnDecodeError(column, f"expected an integer id, got {value!r}")
    try:
        return int(value)
    except ValueError:
        raise ColumnDecodeError(column, f"not an integer: {value!r}") from None


def _as_float(column: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ColumnDecodeError(column, f"expected a number, got {value!r}")
    try:
        return float(value)
    except ValueError:
        raise ColumnDecodeError(column, f"not a number: {value!r}") from None


def _as_bool(column: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ColumnDecodeError(column, f"expected a boolean, got {value!r}")
    return value


def _as_timestamp(column: str, value: Any) -> int:
    """Epoch seconds; ISO-8601 strings written by older clients are accepted."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        try:
            parsed = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ColumnDecodeError(column, f"bad timestamp {value!r}") from None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=datetime.UTC)
        return int(parsed.timestamp())
    raise ColumnDecodeError(column, f"bad timestamp {value!r}")


def _field(column: str, entry: Any, key: str) -> Any:
    if not isinstance(entry, dict):
        raise ColumnDecodeError(column, f"expected an object, got {entry!r}")
    if key not in entry:
        raise ColumnDecodeError(column, f"entry is missing {key!r}")
    return entry[key]


# ---- completed_chapters ----


def encode_completed_chapters(chapters: Iterable[int]) -> str:
    return json.dumps(sorted(set(chapters)))


def decode_completed_chapters(raw: str | None) -> frozenset[int]:
    column = "completed_chapters"
    return frozenset(_as_int(column, v) for v in _load_list(column, raw))


# ---- watched_videos ----


def encode_watched_videos(videos: Mapping[int, VideoProgress]) -> str:
    return json.dumps(
        [
            {
                "chapterId": v.chapter_id,
                "progress": v.progress,
                "lastWatched": v.last_watched,
            }
            for _, v in sorted(videos.items())
        ]
    )


def decode_watched_videos(raw: str | None) -> dict[int, VideoProgress]:
    column = "watched_videos"
    videos: dict[int, VideoProgress] = {}
    for entry in _load_list(column, raw):
        chapter_id = _as_int(column, _field(column, entry, "chapterId"))
        # Later entries win, matching replace-by-key on write
        videos[chapter_id] = VideoProgress(
            chapter_id=chapter_id,
            progress=_as_float(column, _field(column, entry, "progress")),
            last_watched=_as_timestamp(column, _field(column, entry, "lastWatched")),
        )
    return videos


# ---- quiz_attempts ----


def encode_quiz_attempts(attempts: Iterable[QuizAttempt]) -> str:
    return json.dumps(
        [
            {
                "quizId": a.quiz_id,
                "chapterId": a.chapter_id,
                "score": a.score,
                "passed": a.passed,
                "attemptedAt": a.attempted_at,
            }
            for a in attempts
        ]
    )


def decode_quiz_attempts(raw: str | None) -> tuple[QuizAttempt, ...]:
    column = "quiz_attempts"
    return tuple(
        QuizAttempt(
            quiz_id=_as_int(column, _field(column, entry, "quizId")),
            chapter_id=_as_int(column, _field(column, entry, "chapterId")),
            score=_as_float(column, _field(column, entry, "score")),
            passed=_as_bool(column, _field(column, entry, "passed")),
            attempted_at=_as_timestamp(column, _field(column, entry, "attemptedAt")),
        )
        for entry in _load_list(column, raw)
    )
