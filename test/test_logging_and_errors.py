"""
Tests for structured logging and the error code → HTTP status mapping
"""

import json
import logging

import pytest

from proofdesk.exception_handlers import STATUS_BY_ERROR_CODE, status_for_error
from proofdesk.exceptions import (
    BillingInactiveError,
    GalleryNotFound,
    MaxSelectionsExceeded,
    ProofDeskError,
    TenantScopeMissing,
)
from proofdesk.middleware.logging import RequestContextFilter, StructuredFormatter, request_id_var
from proofdesk.utils.request_scope import tenant_scope


def _record(message="hello"):
    return logging.LogRecord("proofdesk.test", logging.INFO, __file__, 1, message, None, None)


class TestRequestContextFilter:
    def test_adds_request_and_tenant_ids(self):
        token = request_id_var.set("req-1")
        try:
            with tenant_scope(42):
                record = _record()
                RequestContextFilter().filter(record)
        finally:
            request_id_var.reset(token)

        assert record.request_id == "req-1"
        assert record.tenant_id == 42

    def test_unscoped_record(self):
        record = _record()
        RequestContextFilter().filter(record)
        assert record.tenant_id == "-"


class TestStructuredFormatter:
    def test_json_output(self):
        record = _record("gallery %s")
        record.args = ("deleted",)
        record.request_id = "req-2"
        record.tenant_id = 7
        record.status_code = 204

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "gallery deleted"
        assert data["level"] == "INFO"
        assert data["tenant_id"] == 7
        assert data["status_code"] == 204
        assert "method" not in data


class TestStatusMapping:
    @pytest.mark.parametrize(
        "exc, expected",
        [
            (GalleryNotFound(1), 404),
            (MaxSelectionsExceeded(3, 2), 409),
            (TenantScopeMissing(), 500),
            (BillingInactiveError(1), 402),
            (ProofDeskError("boom"), 500),
        ],
    )
    def test_status_for_error(self, exc, expected):
        assert status_for_error(exc) == expected

    def test_every_mapped_code_is_an_http_error(self):
        assert all(400 <= code < 600 for code in STATUS_BY_ERROR_CODE.values())


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
