from __future__ import annotations

from fastapi.testclient import TestClient

from enrollment_service.main import app, create_app
from enrollment_service.repos.in_memory_store import InMemoryStore
from enrollment_service.services.data_manager import DataManager


def test_module_app_uses_in_memory_store_without_database() -> None:
    manager = app.state.data_manager
    assert isinstance(manager, DataManager)
    assert isinstance(manager.store, InMemoryStore)


def test_module_app_serves_health() -> None:
    resp = TestClient(app).get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_create_app_uses_injected_manager(manager: DataManager) -> None:
    assert create_app(manager).state.data_manager is manager


def test_routes_are_registered() -> None:
    paths = set(create_app().openapi()["paths"])
    assert {
        "/health",
        "/ready",
        "/v1/enrollments",
        "/v1/enrollments/{user_id}/{course_id}/unenroll",
        "/v1/enrollments/{user_id}/{course_id}/verify",
        "/v1/enrollments/{user_id}/{course_id}/sync",
        "/v1/students/{student_id}/enrollments",
        "/v1/students/{student_id}/reconcile",
        "/v1/progress/{user_id}/{course_id}",
        "/v1/progress/{user_id}/{course_id}/chapters/{chapter_id}/complete",
        "/v1/progress/{user_id}/{course_id}/chapters/{chapter_id}/video",
        "/v1/progress/{user_id}/{course_id}/quizzes",
        "/v1/requests",
        "/v1/requests/{request_id}/approve",
        "/v1/requests/{request_id}/reject",
    } <= paths


def test_metrics_route_is_served_outside_the_schema(client: TestClient) -> None:
    assert "/metrics" not in client.app.openapi()["paths"]
    assert client.get("/metrics").status_code == 200
