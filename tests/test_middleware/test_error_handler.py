"""Tests for domain error mapping and the unhandled-exception middleware."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.domain.errors import (
    ConcurrencyError,
    DomainError,
    NotFoundError,
    TaskExecutionError,
    UnauthorizedError,
    ValidationError,
)
from src.middleware.error_handler import (
    ErrorHandlerMiddleware,
    get_error_response,
    register_exception_handlers,
    status_for,
)
from src.middleware.request_id import RequestIdMiddleware


@pytest.fixture
def client():
    app = FastAPI()
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIdMiddleware)
    register_exception_handlers(app)

    @app.get("/validation")
    async def validation():
        raise ValidationError("bad grade")

    @app.get("/missing")
    async def missing():
        raise NotFoundError("Job", "ghost")

    @app.get("/crash")
    async def crash():
        raise RuntimeError("secret internal detail")

    return TestClient(app, raise_server_exceptions=False)


@pytest.mark.parametrize(
    "error,status",
    [
        (ValidationError("x"), 400),
        (UnauthorizedError("x"), 401),
        (NotFoundError("Job", "x"), 404),
        (ConcurrencyError("k"), 409),
        (TaskExecutionError("job", RuntimeError("x")), 500),
        (DomainError("x"), 500),
    ],
)
def test_status_mapping(error, status):
    assert status_for(error) == status


def test_validation_error_response(client):
    response = client.get("/validation", headers={"X-Request-ID": "req-42"})

    assert response.status_code == 400
    assert response.json() == {
        "error": {"message": "bad grade", "type": "ValidationError"},
        "request_id": "req-42",
    }


def test_not_found_response(client):
    response = client.get("/missing")
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Job 'ghost' not found"


def test_unhandled_exception_is_generic_500(client):
    response = client.get("/crash")

    assert response.status_code == 500
    body = response.json()
    assert body["error"]["message"] == "Internal server error"
    assert "secret internal detail" not in response.text
    assert body["request_id"]


def test_get_error_response_without_request_id():
    body = get_error_response(ValueError("boom"))
    assert body == {"error": {"message": "boom", "type": "ValueError"}}
