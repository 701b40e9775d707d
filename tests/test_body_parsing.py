"""
Tests for request body parsing.

Uses the /echo test route, which returns ``request.state.body``.
"""

import asyncio
import gzip
import zlib

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from website.main import create_app
from website.shared.errors.normalizer import ErrorNormalizer, build_error_pipeline
from website.shared.middleware.body_parsing import BodyParserMiddleware


@pytest.fixture
def small_limit_client(settings_factory) -> TestClient:
    """Application accepting bodies of at most 16 bytes."""
    app: FastAPI = create_app(
        settings_factory(environment="production", max_request_size_bytes=16)
    )

    @app.post("/echo")
    async def echo(request: Request) -> JSONResponse:
        return JSONResponse({"body": request.state.body})

    return TestClient(app)


class TestJsonBodies:
    """Tests for application/json bodies."""

    def test_object_parsed(self, prod_client: TestClient) -> None:
        """A JSON object is exposed as a dict."""
        response = prod_client.post("/echo", json={"name": "ada", "tags": [1, 2]})
        assert response.status_code == 200
        assert response.json() == {"body": {"name": "ada", "tags": [1, 2]}}

    def test_array_parsed(self, prod_client: TestClient) -> None:
        """A JSON array is accepted."""
        response = prod_client.post("/echo", json=[1, 2, 3])
        assert response.json() == {"body": [1, 2, 3]}

    def test_malformed_json_rejected(self, prod_client: TestClient) -> None:
        """Broken JSON ends in a 400 JSON error."""
        response = prod_client.post(
            "/echo",
            content=b'{"name": ',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid JSON body")

    def test_scalar_json_rejected(self, prod_client: TestClient) -> None:
        """Only objects and arrays are accepted."""
        response = prod_client.post(
            "/echo", content=b'"text"', headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json() == {
            "message": "JSON body must be an object or an array"
        }

    def test_non_utf_charset_rejected(self, prod_client: TestClient) -> None:
        """JSON must be sent in a UTF encoding."""
        response = prod_client.post(
            "/echo",
            content=b"{}",
            headers={"Content-Type": "application/json; charset=latin-1"},
        )
        assert response.status_code == 415
        assert response.json() == {"message": 'unsupported charset "LATIN-1"'}


class TestUrlencodedBodies:
    """Tests for application/x-www-form-urlencoded bodies."""

    def test_flat_pairs_parsed(self, prod_client: TestClient) -> None:
        """Form fields become a flat dict of strings."""
        response = prod_client.post("/echo", data={"name": "ada", "lang": "en"})
        assert response.json() == {"body": {"name": "ada", "lang": "en"}}

    def test_repeated_keys_become_lists(self, prod_client: TestClient) -> None:
        """A repeated field maps to the list of its values."""
        response = prod_client.post(
            "/echo",
            content=b"tag=a&tag=b&empty=",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.json() == {"body": {"tag": ["a", "b"], "empty": ""}}

    def test_unknown_charset_rejected(self, prod_client: TestClient) -> None:
        """Charsets Python cannot decode are refused."""
        response = prod_client.post(
            "/echo",
            content=b"a=1",
            headers={
                "Content-Type": "application/x-www-form-urlencoded; charset=klingon"
            },
        )
        assert response.status_code == 415


class TestBodyDefaults:
    """Requests without a parseable body."""

    def test_no_body_is_empty_dict(self, prod_client: TestClient) -> None:
        """Without a body, request.state.body is {}."""
        response = prod_client.post("/echo")
        assert response.json() == {"body": {}}

    def test_other_content_types_ignored(self, prod_client: TestClient) -> None:
        """Unsupported content types are left alone."""
        response = prod_client.post(
            "/echo", content=b"hello", headers={"Content-Type": "text/plain"}
        )
        assert response.json() == {"body": {}}


class TestBodyLimit:
    """Tests for the request size limit."""

    def test_oversized_body_rejected(self, small_limit_client: TestClient) -> None:
        """Bodies over the limit get a 413."""
        response = small_limit_client.post("/echo", json={"text": "x" * 64})
        assert response.status_code == 413
        assert response.json() == {"message": "request entity too large"}

    def test_body_within_limit_accepted(self, small_limit_client: TestClient) -> None:
        """Bodies at or under the limit are parsed."""
        response = small_limit_client.post("/echo", json={"a": 1})
        assert response.status_code == 200
        assert response.json() == {"body": {"a": 1}}

    def test_chunked_body_over_limit_rejected(
        self, small_limit_client: TestClient
    ) -> None:
        """A body without Content-Length is still held to the limit."""

        def chunks():
            for _ in range(64):
                yield b"x" * 1024

        response = small_limit_client.post(
            "/echo", content=chunks(), headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 413
        assert response.json() == {"message": "request entity too large"}

    def test_reading_stops_once_limit_is_passed(self) -> None:
        """The rejected body is not read past the chunk that broke the limit."""
        received: list[int] = []
        sent: list[dict] = []

        async def receive() -> dict:
            received.append(1)
            return {
                "type": "http.request",
                "body": b"x" * 1024,
                "more_body": len(received) < 1000,
            }

        async def send(message: dict) -> None:
            sent.append(message)

        async def downstream(scope, receive, send) -> None:
            raise AssertionError("rejected bodies never reach the routes")

        middleware = BodyParserMiddleware(
            downstream,
            pipeline=build_error_pipeline(ErrorNormalizer(production=True)),
            limit_bytes=16,
        )
        scope = {
            "type": "http",
            "asgi": {"version": "3.0", "spec_version": "2.4"},
            "http_version": "1.1",
            "method": "POST",
            "scheme": "http",
            "path": "/echo",
            "raw_path": b"/echo",
            "root_path": "",
            "query_string": b"",
            "headers": [
                (b"content-type", b"application/json"),
                (b"transfer-encoding", b"chunked"),
            ],
            "client": ("testclient", 50000),
            "server": ("testserver", 80),
        }

        asyncio.run(middleware(scope, receive, send))

        assert sent[0]["status"] == 413
        assert len(received) == 1


class TestStrictDefaults:
    """Edge cases where the parser refuses what it cannot represent."""

    def test_whitespace_json_rejected(self, prod_client: TestClient) -> None:
        """A JSON body made only of whitespace is malformed, not empty."""
        response = prod_client.post(
            "/echo", content=b"   \n", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid JSON body")

    def test_urlencoded_non_utf8_charset_rejected(
        self, prod_client: TestClient
    ) -> None:
        """URL-encoded bodies must be UTF-8."""
        response = prod_client.post(
            "/echo",
            content=b"name=ada",
            headers={
                "Content-Type": "application/x-www-form-urlencoded; charset=latin-1"
            },
        )
        assert response.status_code == 415
        assert response.json() == {"message": 'unsupported charset "LATIN-1"'}

    def test_parameter_limit(self, prod_client: TestClient) -> None:
        """Up to 1000 parameters are accepted; one more is refused."""
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        at_limit = "&".join(f"k{i}=v" for i in range(1000))
        response = prod_client.post("/echo", content=at_limit, headers=headers)
        assert response.status_code == 200
        assert len(response.json()["body"]) == 1000

        over_limit = at_limit + "&extra=v"
        response = prod_client.post("/echo", content=over_limit, headers=headers)
        assert response.status_code == 413
        assert response.json() == {"message": "too many parameters"}


class TestContentEncoding:
    """Tests for compressed request bodies."""

    def test_gzip_body_inflated(self, prod_client: TestClient) -> None:
        """gzip bodies are inflated before parsing."""
        response = prod_client.post(
            "/echo",
            content=gzip.compress(b'{"name": "ada"}'),
            headers={"Content-Type": "application/json", "Content-Encoding": "gzip"},
        )
        assert response.status_code == 200
        assert response.json() == {"body": {"name": "ada"}}

    def test_deflate_body_inflated(self, prod_client: TestClient) -> None:
        """deflate bodies are inflated before parsing."""
        response = prod_client.post(
            "/echo",
            content=zlib.compress(b"name=ada"),
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Content-Encoding": "deflate",
            },
        )
        assert response.json() == {"body": {"name": "ada"}}

    def test_unknown_encoding_rejected(self, prod_client: TestClient) -> None:
        """Encodings other than gzip, deflate and identity get a 415."""
        response = prod_client.post(
            "/echo",
            content=b"{}",
            headers={"Content-Type": "application/json", "Content-Encoding": "br"},
        )
        assert response.status_code == 415
        assert response.json() == {"message": 'unsupported content encoding "br"'}

    def test_corrupt_gzip_rejected(self, prod_client: TestClient) -> None:
        """A body that does not inflate is a 400."""
        response = prod_client.post(
            "/echo",
            content=b"not gzip at all",
            headers={"Content-Type": "application/json", "Content-Encoding": "gzip"},
        )
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid gzip body"}

    def test_limit_applies_to_inflated_size(
        self, small_limit_client: TestClient
    ) -> None:
        """A small compressed body that inflates past the limit is refused."""
        payload = gzip.compress(b'{"text": "' + b"x" * 4096 + b'"}')
        assert len(payload) < 100
        response = small_limit_client.post(
            "/echo",
            content=payload,
            headers={"Content-Type": "application/json", "Content-Encoding": "gzip"},
        )
        assert response.status_code == 413
