"""
Shared fixtures.

Applications are built in fixtures rather than inside test bodies:
create_app reconfigures logging, which must happen before pytest installs
its log capture handlers for the test call.
"""

from typing import Callable

import pytest
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from website.core.config import Settings
from website.domain.errors import HttpError
from website.main import create_app


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "environment": "development",
        "rate_limit_enabled": False,
    }
    values.update(overrides)
    return Settings(**values)


def _add_test_routes(app: FastAPI) -> None:
    """Routes that fail in each of the ways the error pipeline handles."""

    @app.get("/forbidden")
    def forbidden() -> None:
        raise HttpError("Forbidden", status=403)

    @app.get("/teapot")
    def teapot() -> None:
        raise HTTPException(status_code=418, detail="I'm a teapot")

    @app.get("/explicit-500")
    def explicit_500() -> None:
        raise HttpError("Backend exploded", status=500)

    @app.get("/crash")
    def crash() -> None:
        raise RuntimeError("database offline")

    @app.get("/items")
    def items(limit: int) -> dict[str, int]:
        return {"limit": limit}

    @app.post("/echo")
    async def echo(request: Request) -> JSONResponse:
        return JSONResponse({"body": request.state.body})

    @app.get("/large")
    def large() -> dict[str, str]:
        return {"data": "x" * 4000}

    @app.get("/cookies")
    def cookies(request: Request) -> dict[str, str]:
        return dict(request.cookies)


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """Build Settings for tests: development mode, rate limiting off."""
    return _settings


@pytest.fixture
def dev_app() -> FastAPI:
    """Application running outside production, with failing test routes."""
    app = create_app(_settings(environment="development"))
    _add_test_routes(app)
    return app


@pytest.fixture
def prod_app() -> FastAPI:
    """Application running in production, with failing test routes."""
    app = create_app(_settings(environment="production"))
    _add_test_routes(app)
    return app


@pytest.fixture
def dev_client(dev_app: FastAPI) -> TestClient:
    return TestClient(dev_app)


@pytest.fixture
def prod_client(prod_app: FastAPI) -> TestClient:
    return TestClient(prod_app)
