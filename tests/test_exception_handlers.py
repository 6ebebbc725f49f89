"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from batchguard.core.app_factory import create_app
from batchguard.core.errors import (
    AppError,
    BatchLoadError,
    NotFoundAppError,
    ValidationAppError,
)
from batchguard.core.exception_handlers import setup_exception_handlers, status_for


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def handler_client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (ValidationAppError(code="bad", message="bad input"), 400),
        (NotFoundAppError(code="missing", message="not here"), 404),
        (BatchLoadError(code="batch_size_mismatch", message="broken"), 500),
        (AppError(code="generic", message="generic"), 400),
    ],
)
def test_status_for_maps_error_types(error: AppError, expected: int) -> None:
    assert status_for(error) == expected


def test_app_error_renders_consistent_body(handler_client, app_with_handlers):
    @app_with_handlers.get("/test-not-found")
    async def endpoint():
        raise NotFoundAppError(
            code="thing_not_found",
            message="Thing not found",
            details={"resource": "thing", "resource_id": "42"},
        )

    response = handler_client.get("/test-not-found")

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "thing_not_found"
    assert error["message"] == "Thing not found"
    assert error["details"] == {"resource": "thing", "resource_id": "42"}
    assert "request_id" in error


def test_app_error_without_details_omits_key(handler_client, app_with_handlers):
    @app_with_handlers.get("/test-validation")
    async def endpoint():
        raise ValidationAppError(code="bad", message="Bad input")

    response = handler_client.get("/test-validation")

    assert response.status_code == 400
    assert "details" not in response.json()["error"]


def test_unexpected_exception_returns_generic_500(handler_client, app_with_handlers):
    @app_with_handlers.get("/test-crash")
    async def endpoint():
        raise RuntimeError("database password is hunter2")

    response = handler_client.get("/test-crash")

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "internal_server_error"
    assert "hunter2" not in response.text


def test_batch_failure_surfaces_as_500(store) -> None:
    def broken(ids):
        raise ConnectionError("store offline")

    store.find_users_by_ids = broken
    client = TestClient(create_app(store=store), raise_server_exceptions=False)

    response = client.get("/v1/users/user_1")

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "internal_server_error"


def test_misaligned_batch_surfaces_as_batch_load_error(store) -> None:
    store.find_users_by_ids = lambda ids: []
    client = TestClient(create_app(store=store))

    response = client.get("/v1/users", params={"ids": "user_1,user_2"})

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "batch_size_mismatch"
    assert error["details"]["expected"] == 2
    assert error["details"]["actual"] == 0
