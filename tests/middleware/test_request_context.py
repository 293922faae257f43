"""Tests for the request context middleware.

Verifies that every response gets:
- An X-Request-ID header (generated or echoed from the request)
- Request timing logged
"""

from __future__ import annotations

import uuid

from fastapi.testclient import TestClient


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    """When no X-Request-ID header is sent, one is generated."""
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    # Should be a valid UUID
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    """When the client sends X-Request-ID, the same value is echoed back."""
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    """Even error responses (401, 400) get an X-Request-ID header."""
    resp = client.get("/organizations/my-orgs")  # No auth token → 401
    assert resp.headers.get("x-request-id") is not None


def test_context_filter_copies_request_and_org_ids() -> None:
    """Records logged inside a request carry request_id and org_id."""
    import logging

    from app.middleware.request_context import (
        _RequestContextFilter,
        org_id_var,
        request_id_var,
    )

    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg="hello",
        args=(),
        exc_info=None,
    )
    req_token = request_id_var.set("req-1")
    org_token = org_id_var.set("org-1")
    try:
        assert _RequestContextFilter().filter(record) is True
    finally:
        request_id_var.reset(req_token)
        org_id_var.reset(org_token)

    assert record.request_id == "req-1"  # type: ignore[attr-defined]
    assert record.org_id == "org-1"  # type: ignore[attr-defined]


def test_context_filter_defaults_outside_request() -> None:
    import logging

    from app.middleware.request_context import _RequestContextFilter

    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg="hello",
        args=(),
        exc_info=None,
    )
    _RequestContextFilter().filter(record)
    assert record.org_id == "-"  # type: ignore[attr-defined]
