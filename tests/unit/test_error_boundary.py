"""
Unit tests for the error boundary.

Tests verify the canonical error shape for every error source:
- DomainError raised in a route
- Request validation failures
- Transport-level HTTPException (including unknown routes)
- Unexpected exceptions in development and production modes
"""

import logging

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from adminvault.api.errors import ErrorBoundary
from adminvault.domain.errors import DomainError

CANONICAL_KEYS = {"statusCode", "error", "errorCode", "message", "details", "timestamp", "path"}


def build_fault_app(production: bool) -> FastAPI:
    """App with one route per error source."""
    app = FastAPI()
    ErrorBoundary(production=production).install(app)

    @app.get("/domain")
    async def domain_error() -> None:
        raise DomainError.conflict("Username already in use", details={"field": "username"})

    @app.get("/wrapped")
    async def wrapped_error() -> None:
        raise DomainError.unauthorized("Authentication failed", cause=RuntimeError("db down"))

    @app.get("/unavailable")
    async def unavailable() -> None:
        raise DomainError.service_unavailable()

    @app.get("/http")
    async def http_error() -> None:
        raise HTTPException(status_code=403, detail="Not allowed")

    @app.get("/teapot")
    async def teapot() -> None:
        raise HTTPException(status_code=418, detail="Short and stout")

    @app.get("/boom")
    async def boom() -> None:
        raise ValueError("secret internal detail")

    @app.get("/items/{item_id}")
    async def item(item_id: int) -> dict[str, int]:
        return {"id": item_id}

    return app


@pytest.fixture
def dev_client() -> TestClient:
    return TestClient(build_fault_app(production=False))


@pytest.fixture
def prod_client() -> TestClient:
    return TestClient(build_fault_app(production=True))


class TestDomainErrors:
    """Tests for DomainError rendering."""

    def test_status_code_and_details_verbatim(self, dev_client: TestClient) -> None:
        response = dev_client.get("/domain")
        body = response.json()

        assert response.status_code == 409
        assert set(body) == CANONICAL_KEYS
        assert body["statusCode"] == 409
        assert body["error"] == "ConflictError"
        assert body["errorCode"] == "CONFLICT"
        assert body["message"] == "Username already in use"
        assert body["details"] == {"field": "username"}
        assert body["path"] == "/domain"

    def test_cause_summary_only_in_development(self, dev_client, prod_client) -> None:
        dev = dev_client.get("/wrapped").json()
        prod = prod_client.get("/wrapped").json()

        assert dev["cause"] == "RuntimeError: db down"
        assert "cause" not in prod
        assert set(prod) == CANONICAL_KEYS

    def test_5xx_domain_error_is_logged(self, dev_client, caplog) -> None:
        with caplog.at_level(logging.ERROR, logger="adminvault.api.errors"):
            response = dev_client.get("/unavailable")

        assert response.status_code == 503
        assert response.json()["errorCode"] == "SERVICE_UNAVAILABLE"
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    def test_4xx_is_not_logged(self, dev_client, caplog) -> None:
        with caplog.at_level(logging.DEBUG, logger="adminvault.api.errors"):
            dev_client.get("/domain")
        assert not [r for r in caplog.records if r.name == "adminvault.api.errors"]


class TestRequestValidation:
    """Tests for request validation failures."""

    def test_invalid_path_param_is_validation_error(self, dev_client: TestClient) -> None:
        response = dev_client.get("/items/abc")
        body = response.json()

        assert response.status_code == 400
        assert set(body) == CANONICAL_KEYS
        assert body["errorCode"] == "VALIDATION_ERROR"
        assert body["details"][0]["field"] == "item_id"


class TestTransportErrors:
    """Tests for HTTPException rendering."""

    def test_http_exception_status_and_message(self, dev_client: TestClient) -> None:
        response = dev_client.get("/http")
        body = response.json()

        assert response.status_code == 403
        assert set(body) == CANONICAL_KEYS
        assert body["message"] == "Not allowed"
        assert body["errorCode"] == "FORBIDDEN"
        assert body["error"] == "Forbidden"

    def test_status_outside_taxonomy_uses_status_name(self, dev_client: TestClient) -> None:
        body = dev_client.get("/teapot").json()
        assert body["statusCode"] == 418
        assert body["errorCode"] == "IM_A_TEAPOT"

    def test_unknown_route_is_not_found(self, dev_client: TestClient) -> None:
        response = dev_client.get("/nope")
        body = response.json()

        assert response.status_code == 404
        assert body["errorCode"] == "RESOURCE_NOT_FOUND"
        assert body["path"] == "/nope"

    def test_method_not_allowed_keeps_allow_header(self, dev_client: TestClient) -> None:
        response = dev_client.post("/domain")

        assert response.status_code == 405
        assert response.json()["errorCode"] == "METHOD_NOT_ALLOWED"
        assert "GET" in response.headers["allow"]


class TestUnexpectedErrors:
    """Tests for unexpected exceptions."""

    def test_development_includes_diagnostics(self, dev_client: TestClient) -> None:
        response = dev_client.get("/boom")
        body = response.json()

        assert response.status_code == 500
        assert set(body) == CANONICAL_KEYS
        assert body["errorCode"] == "INTERNAL_ERROR"
        assert body["message"] == "secret internal detail"
        assert body["details"]["exception"] == "ValueError"
        assert any("ValueError" in line for line in body["details"]["stack"])

    def test_production_suppresses_diagnostics(self, prod_client: TestClient) -> None:
        response = prod_client.get("/boom")
        body = response.json()

        assert response.status_code == 500
        assert body["message"] == "Internal server error"
        assert body["details"] == {}
        assert "secret internal detail" not in response.text

    def test_unexpected_error_is_logged_with_stack(self, prod_client, caplog) -> None:
        with caplog.at_level(logging.ERROR, logger="adminvault.api.errors"):
            prod_client.get("/boom")

        records = [r for r in caplog.records if r.name == "adminvault.api.errors"]
        assert len(records) == 1
        assert records[0].exc_info is not None

    def test_unexpected_error_is_not_reraised_to_server(self) -> None:
        """The boundary answers; nothing propagates past the app."""
        client = TestClient(build_fault_app(production=True))

        response = client.get("/boom")

        assert response.status_code == 500
        assert response.json()["errorCode"] == "INTERNAL_ERROR"


class TestRenderIsPure:
    """Tests for ErrorBoundary.render without an app."""

    def test_render_domain_error(self) -> None:
        status, body, headers = ErrorBoundary().render(DomainError.not_found(), "/x")
        assert status == 404
        assert body["path"] == "/x"
        assert headers is None

    def test_injected_logger_is_used(self, caplog) -> None:
        logger = logging.getLogger("test.boundary")
        app = FastAPI()
        ErrorBoundary(production=True, logger=logger).install(app)

        @app.get("/boom")
        async def boom() -> None:
            raise RuntimeError("x")

        with caplog.at_level(logging.ERROR, logger="test.boundary"):
            TestClient(app).get("/boom")

        assert any(r.name == "test.boundary" for r in caplog.records)
