from __future__ import annotations

from fastapi.testclient import TestClient

from enrollment_service.services.data_manager import DataManager
from tests.conftest import Seed, enroll


def _base(seed: Seed) -> str:
    return f"/v1/progress/{seed.student_id}/{seed.course_id}"


def test_put_progress_rounds_and_mirrors(
    client: TestClient, manager: DataManager, seed: Seed
) -> None:
    enroll(manager, seed.student_id, seed.course_id)

    resp = client.put(_base(seed), json={"progress": 49.5})

    assert resp.status_code == 200
    assert resp.json()["data"] == {"progress": 50, "previous_progress": 0}
    state = client.get(f"/v1/students/{seed.student_id}/enrollments").json()
    assert state[0]["progress"] == 50


def test_put_progress_out_of_range_is_422(
    client: TestClient, manager: DataManager, seed: Seed
) -> None:
    enroll(manager, seed.student_id, seed.course_id)
    resp = client.put(_base(seed), json={"progress": 150})
    assert resp.status_code == 422
    assert resp.json()["detail"]["details"] == [
        "Progress must be between 0 and 100 (got 150.0)"
    ]


def test_progress_without_enrollment_is_422(client: TestClient, seed: Seed) -> None:
    resp = client.put(_base(seed), json={"progress": 10})
    assert resp.status_code == 422
    assert "not enrolled" in resp.json()["detail"]["message"]


def test_complete_chapter(client: TestClient, manager: DataManager, seed: Seed) -> None:
    enroll(manager, seed.student_id, seed.course_id)

    resp = client.post(f"{_base(seed)}/chapters/{seed.chapters[0]}/complete")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["progress"] == 25
    assert data["completed_chapters"] == [seed.chapters[0]]
    assert data["total_chapters"] == 4
    assert data["newly_completed"] is True

    again = client.post(f"{_base(seed)}/chapters/{seed.chapters[0]}/complete")
    assert again.json()["data"]["newly_completed"] is False
    assert again.json()["data"]["progress"] == 25


def test_complete_foreign_chapter_is_422(
    client: TestClient, manager: DataManager, seed: Seed
) -> None:
    enroll(manager, seed.student_id, seed.course_id)
    resp = client.post(f"{_base(seed)}/chapters/{seed.big_chapters[0]}/complete")
    assert resp.status_code == 422


def test_video_past_threshold_completes_chapter(
    client: TestClient, manager: DataManager, seed: Seed
) -> None:
    enroll(manager, seed.student_id, seed.course_id)

    resp = client.put(
        f"{_base(seed)}/chapters/{seed.chapters[1]}/video",
        json={"video_progress": 92.5},
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["video_progress"] == 92.5
    assert data["chapter_completion"]["progress"] == 25


def test_quiz_submission(client: TestClient, manager: DataManager, seed: Seed) -> None:
    enroll(manager, seed.student_id, seed.course_id)

    resp = client.post(
        f"{_base(seed)}/quizzes",
        json={
            "chapter_id": seed.chapters[2],
            "quiz_id": 5,
            "score": 40,
            "passed": False,
        },
    )

    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "progress": 0,
        "previous_progress": 0,
        "attempts": 1,
        "chapter_completed": False,
    }
