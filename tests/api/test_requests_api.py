from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from enrollment_service.api.results import status_for
from enrollment_service.operations.enrollment import EnrollmentVerification
from enrollment_service.operations.executor import (
    OPERATION_ERROR,
    VALIDATION_ERROR,
    OperationFailure,
)
from enrollment_service.services.data_manager import DataManager
from tests.conftest import Seed


def _create(client: TestClient, seed: Seed) -> int:
    resp = client.post(
        "/v1/requests",
        json={
            "student_id": seed.student_id,
            "course_id": seed.course_id,
            "reason": "please",
        },
    )
    assert resp.status_code == 201
    return resp.json()["data"]["request_id"]


def test_create_request(client: TestClient, seed: Seed) -> None:
    request_id = _create(client, seed)
    assert request_id >= 1


def test_duplicate_request_is_422(client: TestClient, seed: Seed) -> None:
    _create(client, seed)
    resp = client.post(
        "/v1/requests",
        json={"student_id": seed.student_id, "course_id": seed.course_id},
    )
    assert resp.status_code == 422
    assert resp.json()["detail"]["retryable"] is False


def test_approve_enrolls_student(client: TestClient, seed: Seed) -> None:
    request_id = _create(client, seed)

    resp = client.post(
        f"/v1/requests/{request_id}/approve", json={"admin_id": seed.admin_id}
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["enrollment_created"] is True
    verify = client.get(f"/v1/enrollments/{seed.student_id}/{seed.course_id}/verify")
    assert verify.json()["verified"] is True

    # The request row is gone once processed
    again = client.post(
        f"/v1/requests/{request_id}/approve", json={"admin_id": seed.admin_id}
    )
    assert again.status_code == 422
    assert again.json()["detail"]["details"] == [f"Request {request_id} does not exist"]


def test_failed_verification_is_409(
    client: TestClient,
    manager: DataManager,
    seed: Seed,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    request_id = _create(client, seed)

    async def unverified(tx, user_id, course_id):
        return EnrollmentVerification(in_progress=False, in_enrollments=True)

    monkeypatch.setattr(
        manager.requests.enrollment_ops, "verify_enrollment_exists", unverified
    )

    resp = client.post(
        f"/v1/requests/{request_id}/approve", json={"admin_id": seed.admin_id}
    )

    assert resp.status_code == 409
    detail = resp.json()["detail"]
    assert detail["code"] == "OPERATION_ERROR"
    assert detail["details"][0] == "ENROLLMENT_VERIFICATION_FAILED"


def test_reject_request(client: TestClient, seed: Seed) -> None:
    request_id = _create(client, seed)

    resp = client.post(
        f"/v1/requests/{request_id}/reject",
        json={"admin_id": seed.admin_id, "reason": "course full"},
    )

    assert resp.status_code == 200
    assert resp.json()["data"] == {"request_id": request_id, "rejected": True}


def test_non_admin_cannot_review(client: TestClient, seed: Seed) -> None:
    request_id = _create(client, seed)
    resp = client.post(
        f"/v1/requests/{request_id}/reject",
        json={"admin_id": seed.other_student_id},
    )
    assert resp.status_code == 422


def test_review_requires_admin_id(client: TestClient, seed: Seed) -> None:
    request_id = _create(client, seed)
    resp = client.post(f"/v1/requests/{request_id}/reject", json={})
    assert resp.status_code == 422


@pytest.mark.parametrize(
    ("failure", "expected"),
    [
        (OperationFailure(VALIDATION_ERROR, "bad", False), 422),
        (OperationFailure(OPERATION_ERROR, "down", True, ("OSError",)), 503),
        (
            OperationFailure(
                OPERATION_ERROR, "gone", False, ("ENROLLMENT_NOT_FOUND",)
            ),
            404,
        ),
        (OperationFailure(OPERATION_ERROR, "gone", False, ("REQUEST_NOT_FOUND",)), 404),
        (
            OperationFailure(
                OPERATION_ERROR, "taken", False, ("DUPLICATE_PENDING_REQUEST",)
            ),
            409,
        ),
    ],
)
def test_status_mapping(failure: OperationFailure, expected: int) -> None:
    assert status_for(failure) == expected
