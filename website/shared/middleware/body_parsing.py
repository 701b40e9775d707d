"""
Request body parsing middleware.

Parses JSON and URL-encoded request bodies before the routes run and
exposes the result as ``request.state.body`` (``{}`` when there is no
body or its type is not handled).

- application/json: only objects and arrays are accepted, in a UTF charset.
- application/x-www-form-urlencoded: UTF-8 only, flat key/value pairs; a
  key that appears more than once maps to a list of its values. At most
  1000 parameters are accepted.

Bodies sent with ``Content-Encoding: gzip`` or ``deflate`` are inflated.
The size limit applies to the inflated body and is enforced while reading,
so an oversized upload is rejected without buffering it. Failures are
answered through the error pipeline.
"""

import codecs
import json
import logging
import zlib
from typing import Any, Callable, Optional
from urllib.parse import parse_qsl

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from website.domain.errors import ErrorCondition, HttpError
from website.shared.pipeline import Pipeline

logger = logging.getLogger(__name__)

JSON_TYPE = "application/json"
URLENCODED_TYPE = "application/x-www-form-urlencoded"
DEFAULT_LIMIT_BYTES = 102_400
PARAMETER_LIMIT = 1000

IDENTITY = "identity"
# zlib window bits per supported Content-Encoding.
INFLATE_WBITS = {
    "gzip": 16 + zlib.MAX_WBITS,
    "deflate": zlib.MAX_WBITS,
}

HTTP_400 = 400
HTTP_413 = 413
HTTP_415 = 415


class BodyParseError(HttpError):
    """Raised when a request body cannot be accepted."""


def _too_large() -> BodyParseError:
    return BodyParseError("request entity too large", status=HTTP_413)


def _unsupported_charset(charset: str) -> BodyParseError:
    return BodyParseError(f'unsupported charset "{charset.upper()}"', status=HTTP_415)


def _parse_json(text: str) -> Any:
    if not text:
        return {}
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise BodyParseError(f"Invalid JSON body: {exc.msg}", status=HTTP_400) from exc
    if not isinstance(value, (dict, list)):
        raise BodyParseError(
            "JSON body must be an object or an array", status=HTTP_400
        )
    return value


def _parse_urlencoded(text: str) -> dict[str, Any]:
    try:
        pairs = parse_qsl(text, keep_blank_values=True, max_num_fields=PARAMETER_LIMIT)
    except ValueError as exc:
        raise BodyParseError("too many parameters", status=HTTP_413) from exc

    parsed: dict[str, Any] = {}
    for key, value in pairs:
        if key not in parsed:
            parsed[key] = value
        elif isinstance(parsed[key], list):
            parsed[key].append(value)
        else:
            parsed[key] = [parsed[key], value]
    return parsed


PARSERS: dict[str, Callable[[str], Any]] = {
    JSON_TYPE: _parse_json,
    URLENCODED_TYPE: _parse_urlencoded,
}


def _split_content_type(header: str) -> tuple[str, Optional[str]]:
    """Return the lowercased media type and the charset parameter, if any."""
    media_type, _, params = header.partition(";")
    charset = None
    for param in params.split(";"):
        name, _, value = param.strip().partition("=")
        if name.lower() == "charset" and value:
            charset = value.strip().strip('"').lower()
    return media_type.strip().lower(), charset


def _has_body(request: Request) -> bool:
    if "transfer-encoding" in request.headers:
        return True
    return request.headers.get("content-length", "0") not in ("", "0")


def _check_charset(media_type: str, charset: str) -> None:
    if media_type == JSON_TYPE and not charset.startswith("utf-"):
        raise _unsupported_charset(charset)
    if media_type == URLENCODED_TYPE and charset != "utf-8":
        raise _unsupported_charset(charset)
    try:
        codecs.lookup(charset)
    except LookupError as exc:
        raise _unsupported_charset(charset) from exc


def _decode(raw: bytes, charset: str) -> str:
    try:
        return raw.decode(charset)
    except UnicodeDecodeError as exc:
        raise BodyParseError(
            f"Body is not valid {charset}", status=HTTP_400
        ) from exc


def _inflater(encoding: str) -> Optional[Any]:
    """Return a zlib decompressor for ``encoding``, or None for identity."""
    if encoding == IDENTITY:
        return None
    if encoding not in INFLATE_WBITS:
        raise BodyParseError(
            f'unsupported content encoding "{encoding}"', status=HTTP_415
        )
    return zlib.decompressobj(INFLATE_WBITS[encoding])


class BodyParserMiddleware(BaseHTTPMiddleware):
    """Parse supported request bodies into ``request.state.body``."""

    def __init__(
        self,
        app: ASGIApp,
        pipeline: Pipeline,
        limit_bytes: int = DEFAULT_LIMIT_BYTES,
    ) -> None:
        super().__init__(app)
        self.pipeline = pipeline
        self.limit_bytes = limit_bytes

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.body = {}
        media_type, charset = _split_content_type(
            request.headers.get("content-type", "")
        )
        parser = PARSERS.get(media_type)

        if parser is not None and _has_body(request):
            try:
                charset = charset or "utf-8"
                _check_charset(media_type, charset)
                raw = await self._read(request)
                request.state.body = parser(_decode(raw, charset))
            except BodyParseError as exc:
                logger.warning(
                    "Rejected %s body on %s: %s",
                    media_type,
                    request.url.path,
                    exc.message,
                )
                return self.pipeline.run(request, ErrorCondition.from_exception(exc))

        return await call_next(request)

    async def _read(self, request: Request) -> bytes:
        """Read the (inflated) body, stopping as soon as it passes the limit."""
        encoding = request.headers.get("content-encoding", IDENTITY).strip().lower()
        inflater = _inflater(encoding)

        declared = request.headers.get("content-length")
        if (
            inflater is None
            and declared
            and declared.isdigit()
            and int(declared) > self.limit_bytes
        ):
            raise _too_large()

        chunks: list[bytes] = []
        received = 0
        try:
            async for chunk in request.stream():
                if inflater is not None:
                    # One byte past the limit is enough to reject.
                    chunk = inflater.decompress(chunk, self.limit_bytes - received + 1)
                received += len(chunk)
                if received > self.limit_bytes:
                    raise _too_large()
                chunks.append(chunk)
            if inflater is not None:
                tail = inflater.flush()
                received += len(tail)
                if received > self.limit_bytes:
                    raise _too_large()
                chunks.append(tail)
        except zlib.error as exc:
            raise BodyParseError(f"Invalid {encoding} body", status=HTTP_400) from exc

        raw = b"".join(chunks)
        # Downstream reads of the request body replay the buffered bytes.
        request._body = raw
        return raw
