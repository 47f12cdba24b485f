"""Tests for the request context middleware.

Every response gets an X-Request-ID header (generated or echoed from the
request), and the id is visible to log records emitted while serving it.
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from tests.conftest import Seed


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_error_responses(
    client: TestClient, seed: Seed
) -> None:
    resp = client.post(
        "/v1/enrollments",
        json={"user_id": seed.admin_id, "course_id": seed.course_id},
    )
    assert resp.status_code == 422
    assert resp.headers.get("x-request-id") is not None


def test_summary_line_carries_request_id(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(
        logging.INFO, logger="enrollment_service.middleware.request_context"
    ):
        client.get("/health", headers={"X-Request-ID": "trace-me"})

    summaries = [
        r
        for r in caplog.records
        if r.name == "enrollment_service.middleware.request_context"
    ]
    assert summaries
    assert getattr(summaries[-1], "request_id") == "trace-me"
    assert "GET /health -> 200" in summaries[-1].getMessage()
