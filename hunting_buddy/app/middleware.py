import json
import logging
import time
from collections.abc import Awaitable, Callable
from pathlib import Path
from urllib.parse import parse_qsl, urlencode

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from starlette.datastructures import Headers, MutableHeaders
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware, DispatchFunction
from starlette.requests import cookie_parser
from starlette.staticfiles import StaticFiles
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from hunting_buddy.app.core.config import Settings
from hunting_buddy.app.core.errors import (
    BadRequestError,
    PayloadTooLargeError,
    error_response,
)
from hunting_buddy.app.core.sanitize import sanitize, sanitize_query_params

log = logging.getLogger(__name__)

# Keys used in the per-request ASGI state shared by the body stages.
RAW_BODY_KEY = "raw_body"
JSON_BODY_KEY = "json_body"

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self';base-uri 'self';font-src 'self' https: data:;"
        "form-action 'self';frame-ancestors 'self';img-src 'self' data:;"
        "object-src 'none';script-src 'self';script-src-attr 'none';"
        "style-src 'self' https: 'unsafe-inline';upgrade-insecure-requests"
    ),
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}
REMOVED_HEADERS = ("X-Powered-By",)


def apply_security_headers(
    headers: MutableHeaders,
    values: dict[str, str] = SECURITY_HEADERS,
) -> None:
    for name in REMOVED_HEADERS:
        if name in headers:
            del headers[name]
    for name, value in values.items():
        headers[name] = value


async def access_log_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Log one line per request: method, path, status and duration.

    Only installed when the application runs in development.
    """
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    _msg = (
        f"{request.method} {request.url.path} {response.status_code} "
        f"{elapsed_ms:.3f} ms"
    )
    log.info(_msg)
    return response


def create_static_files_middleware(directory: Path) -> DispatchFunction:
    """Build the stage serving built client assets before any API routing.

    Args:
        directory (Path): Root directory of the static assets. It may be missing,
            in which case every request passes through.

    Returns:
        DispatchFunction: A dispatch function for `BaseHTTPMiddleware`.

    Notes:
        1. Lookups go through Starlette's `StaticFiles`, so disk access runs in the
           threadpool and paths outside `directory` are rejected.
        2. Conditional requests are answered with 304.
        3. A directory URL is answered with its `index.html`.
        4. Anything `StaticFiles` cannot serve, including its own `404.html`,
           falls through to the next stage.

    """
    static = StaticFiles(directory=directory, html=True, check_dir=False)

    async def static_files_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.method not in ("GET", "HEAD"):
            return await call_next(request)

        try:
            response = await static.get_response(static.get_path(request.scope), request.scope)
        except HTTPException as e:
            if e.status_code != status.HTTP_404_NOT_FOUND:
                raise
            return await call_next(request)

        if response.status_code == status.HTTP_404_NOT_FOUND:
            return await call_next(request)

        _msg = f"Serving static file for {request.url.path}"
        log.debug(_msg)
        return response

    return static_files_middleware


async def cookie_parser_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Parse the Cookie header into `request.state.cookies`.

    A header that cannot be parsed is logged and treated as carrying no cookies;
    the request itself always continues.
    """
    cookie_header = request.headers.get("cookie", "")
    try:
        cookies = cookie_parser(cookie_header) if cookie_header else {}
    except ValueError as e:
        _msg = f"Ignoring malformed Cookie header: {e}"
        log.warning(_msg)
        cookies = {}
    request.state.cookies = cookies
    return await call_next(request)


def get_state(scope: Scope) -> dict:
    return scope.setdefault("state", {})


def is_json_request(scope: Scope) -> bool:
    content_type = Headers(scope=scope).get("content-type", "")
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


async def read_body(receive: Receive, limit: int) -> bytes:
    """Read the complete request body, failing once it grows past `limit` bytes."""
    chunks: list[bytes] = []
    size = 0
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunk = message.get("body", b"")
        size += len(chunk)
        if size > limit:
            raise PayloadTooLargeError()
        chunks.append(chunk)
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


def replay_body(scope: Scope, receive: Receive) -> Receive:
    """Build a receive callable that first yields the body held in request state.

    The body is looked up on the first call, so later stages may replace it.
    """
    sent = False

    async def receive_replayed() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            body = get_state(scope).get(RAW_BODY_KEY, b"")
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return receive_replayed


class ErrorBoundaryMiddleware:
    """Translate failures raised by later stages into JSON responses.

    The boundary sits inside the CORS stage, so error responses to allowed
    origins carry the CORS headers the client needs to read them. Responses
    produced here also receive the security headers, because the security
    stage runs further in and never sees them.

    `ApiError` raised inside routers is normally handled by the application's
    exception handlers; anything that escapes them, including unexpected
    exceptions from routers or middleware, ends up here as a 500.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_tracking(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_tracking)
        except Exception as exc:
            if response_started:
                raise
            _msg = f"Request to {scope['path']} failed: {exc!r}"
            log.debug(_msg)
            response = error_response(exc)
            apply_security_headers(response.headers)
            await response(scope, receive, send)


class JsonBodyParserMiddleware:
    """Parse JSON request bodies before any router reads them.

    Bodies larger than `limit` bytes fail with PayloadTooLargeError and malformed
    JSON fails with BadRequestError. Only objects and arrays are accepted at the
    top level. The parsed value is kept in request state and the body is replayed
    to the downstream application.
    """

    def __init__(self, app: ASGIApp, limit: int):
        self.app = app
        self.limit = limit

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not is_json_request(scope):
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.limit:
            raise PayloadTooLargeError()

        body = await read_body(receive, self.limit)
        state = get_state(scope)
        state[RAW_BODY_KEY] = body

        if body.strip():
            try:
                parsed = json.loads(body)
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                _msg = f"Malformed JSON body: {e}"
                log.debug(_msg)
                raise BadRequestError("malformed JSON in request body") from e
            if not isinstance(parsed, (dict, list)):
                raise BadRequestError("JSON body must be an object or an array")
            state[JSON_BODY_KEY] = parsed

        await self.app(scope, replay_body(scope, receive), send)


class SecurityHeadersMiddleware:
    """Apply a hardened set of HTTP response headers to every response."""

    def __init__(self, app: ASGIApp, headers: dict[str, str] | None = None):
        self.app = app
        self.headers = headers if headers is not None else SECURITY_HEADERS

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                apply_security_headers(MutableHeaders(scope=message), self.headers)
            await send(message)

        await self.app(scope, receive, send_with_headers)


class SanitizeMiddleware:
    """Strip query-operator keys from the JSON body and the query string."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        scope = dict(scope)
        state = get_state(scope)

        if JSON_BODY_KEY in state:
            cleaned, removed = sanitize(state[JSON_BODY_KEY])
            if removed:
                body = json.dumps(cleaned).encode("utf-8")
                state[JSON_BODY_KEY] = cleaned
                state[RAW_BODY_KEY] = body
                scope["headers"] = list(scope["headers"])
                MutableHeaders(scope=scope)["content-length"] = str(len(body))
                _msg = f"Removed operator keys from body of {scope['path']}"
                log.warning(_msg)

        query_string = scope.get("query_string", b"").decode("latin-1")
        if query_string:
            params = parse_qsl(query_string, keep_blank_values=True)
            kept, removed = sanitize_query_params(params)
            if removed:
                scope["query_string"] = urlencode(kept).encode("latin-1")
                _msg = f"Removed operator keys from query string of {scope['path']}"
                log.warning(_msg)

        await self.app(scope, receive, send)


def install_middleware(app: FastAPI, settings: Settings) -> None:
    """Register the request pipeline on `app`.

    Args:
        app (FastAPI): The application being assembled.
        settings (Settings): The application settings.

    Notes:
        1. Stages are listed in the order a request passes through them:
           access log (development only), static files, CORS, error boundary,
           cookie parser, JSON body parser, security headers, sanitizer.
        2. Starlette wraps each added middleware around the previous ones, so the
           list is registered in reverse to keep the first stage outermost.

    """
    stages: list[tuple[type, dict]] = []
    if settings.is_development:
        stages.append((BaseHTTPMiddleware, {"dispatch": access_log_middleware}))
    stages.extend(
        [
            (
                BaseHTTPMiddleware,
                {"dispatch": create_static_files_middleware(settings.static_dir)},
            ),
            (
                CORSMiddleware,
                {
                    "allow_origins": settings.cors_origins,
                    "allow_credentials": True,
                    "allow_methods": ["*"],
                    "allow_headers": ["*"],
                },
            ),
            (ErrorBoundaryMiddleware, {}),
            (BaseHTTPMiddleware, {"dispatch": cookie_parser_middleware}),
            (JsonBodyParserMiddleware, {"limit": settings.json_body_limit}),
            (SecurityHeadersMiddleware, {}),
            (SanitizeMiddleware, {}),
        ],
    )

    for middleware_class, options in reversed(stages):
        app.add_middleware(middleware_class, **options)

    _msg = f"Installed {len(stages)} middleware stages"
    log.debug(_msg)
