"""HTTP gateway: JSON API routing, error bodies, CORS and content-type checks."""

from __future__ import annotations

import json
import logging
import re
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import timedelta
from http import HTTPStatus
from socketserver import ThreadingMixIn
from urllib.parse import parse_qs
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from articlesvc.config import MAX_HEADER_BYTES, READ_TIMEOUT, WRITE_TIMEOUT
from articlesvc.entity import PostStatus
from articlesvc.errors import FieldViolation, RpcError, StatusCode, http_status_from_code
from articlesvc.usecase import ListPostsRequest, PostPayload

_log = logging.getLogger(__name__)

_FALLBACK = (
    b'{"code":500,"status":"Internal Server Error",'
    b'"message":"Internal Server Error","errors":{}}'
)
_CORS_HEADERS = ("Content-Type", "Accept", "Authorization")
_CORS_METHODS = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE")
_BODYLESS_METHODS = frozenset({"GET", "HEAD", "DELETE", "OPTIONS"})


def _status_text(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return ""


def _status_line(code: int) -> str:
    return f"{code} {_status_text(code)}"


def _plain_error(start_response, code: int, message: str):
    body = (message + "\n").encode("utf-8")
    start_response(
        _status_line(code),
        [
            ("Content-Type", "text/plain; charset=utf-8"),
            ("X-Content-Type-Options", "nosniff"),
            ("Content-Length", str(len(body))),
        ],
    )
    return [body]


@dataclass
class ErrorResponse:
    """The JSON body sent for a failed API call."""

    code: int
    status: str
    message: str
    errors: dict[str, str] = field(default_factory=dict)

    def to_json(self) -> bytes:
        document = {
            "code": self.code,
            "status": self.status,
            "message": self.message,
            "errors": dict(sorted(self.errors.items())),
        }
        return json.dumps(document, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def exception_response(error: BaseException) -> tuple[str, list[tuple[str, str]], bytes]:
    """The status line, headers and JSON body describing ``error``."""
    status = error if isinstance(error, RpcError) else RpcError(StatusCode.UNKNOWN, str(error))
    code = http_status_from_code(status.code)
    errors = {
        detail.field.lower(): detail.description
        for detail in status.details
        if isinstance(detail, FieldViolation)
    }
    response = ErrorResponse(code, _status_text(code), status.message, errors)
    try:
        body = response.to_json()
    except (TypeError, ValueError):
        body = _FALLBACK
    headers = [("Content-Type", "application/json"), ("Content-Length", str(len(body)))]
    return _status_line(code), headers, body


def cors(app):
    """Answer CORS preflights and echo the request origin on every response."""

    def wrapped(environ, start_response):
        origin = environ.get("HTTP_ORIGIN", "")
        if not origin:
            return app(environ, start_response)
        if environ.get("REQUEST_METHOD") == "OPTIONS" and environ.get(
            "HTTP_ACCESS_CONTROL_REQUEST_METHOD"
        ):
            start_response(
                "200 OK",
                [
                    ("Access-Control-Allow-Origin", origin),
                    ("Access-Control-Allow-Headers", ",".join(_CORS_HEADERS)),
                    ("Access-Control-Allow-Methods", ",".join(_CORS_METHODS)),
                    ("Content-Length", "0"),
                ],
            )
            return [b""]

        def start(status, headers, exc_info=None):
            return start_response(
                status, [("Access-Control-Allow-Origin", origin), *headers], exc_info
            )

        return app(environ, start)

    return wrapped


def strict_content_type_middleware(allowed_content_types: Iterable[str]):
    """Reject bodies whose Content-Type does not start with an allowed type."""
    allowed = tuple(allowed_content_types)

    def middleware(app):
        def wrapped(environ, start_response):
            if environ.get("REQUEST_METHOD", "GET") in _BODYLESS_METHODS:
                return app(environ, start_response)
            content_type = environ.get("CONTENT_TYPE", "")
            if not content_type:
                return _plain_error(start_response, 400, "Missing Content-Type")
            if not content_type.startswith(allowed):
                return _plain_error(start_response, 415, "Unsupported Content-Type")
            return app(environ, start_response)

        return wrapped

    return middleware


def handler_mux(gateway: Gateway, allowed_content_types: Iterable[str]):
    """Send ``/api`` paths to the API and everything else to mounted apps."""

    def dispatch(environ, start_response):
        if environ.get("PATH_INFO", "").startswith("/api"):
            return gateway.api(environ, start_response)
        return gateway._serve_mounted(environ, start_response)

    return cors(strict_content_type_middleware(allowed_content_types)(dispatch))


def _invalid(message: str) -> RpcError:
    return RpcError(StatusCode.INVALID_ARGUMENT, message)


def _parse_int(name: str, value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise _invalid(f"invalid value for {name}: {value!r}") from None


def _parse_status(value) -> int:
    if isinstance(value, bool):
        raise _invalid(f"invalid value for status: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if value.lstrip("-").isdigit():
            return int(value)
        for status in PostStatus:
            if value in (status.label, status.name):
                return int(status)
    raise _invalid(f"invalid value for status: {value!r}")


def _first(query: dict[str, list[str]], *names: str, default=""):
    for name in names:
        if query.get(name):
            return query[name][0]
    return default


def _list_request(query: dict[str, list[str]]) -> ListPostsRequest:
    status = _parse_status(_first(query, "status", default="0"))
    return ListPostsRequest(
        search=_first(query, "search"),
        page=_parse_int("page", _first(query, "page", default="0")),
        item_per_page=_parse_int(
            "itemPerPage", _first(query, "itemPerPage", "item_per_page", default="0")
        ),
        status=status,
    )


def _read_body(environ) -> dict:
    try:
        length = int(environ.get("CONTENT_LENGTH") or 0)
    except ValueError:
        length = 0
    raw = environ["wsgi.input"].read(length) if length > 0 else b""
    text = raw.decode("utf-8", errors="replace")
    if environ.get("CONTENT_TYPE", "").startswith("application/x-www-form-urlencoded"):
        return {key: values[0] for key, values in parse_qs(text).items()}
    if not text.strip():
        return {}
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise _invalid(str(exc)) from None
    if not isinstance(document, dict):
        raise _invalid("request body must be a JSON object")
    return document


def _payload(body: dict) -> PostPayload:
    return PostPayload(
        title=str(body.get("title", "")),
        content=str(body.get("content", "")),
        category=str(body.get("category", "")),
        status=_parse_status(body.get("status", 0)),
    )


def _json_response(start_response, document) -> list[bytes]:
    body = json.dumps(document, ensure_ascii=False).encode("utf-8")
    start_response(
        "200 OK", [("Content-Type", "application/json"), ("Content-Length", str(len(body)))]
    )
    return [body]


def build_api(handler):
    """A WSGI application exposing ``handler`` as the JSON API under ``/api/v1``."""
    Action = Callable[[re.Match, dict, Callable[[], dict]], dict]
    routes: list[tuple[str, str, Action]] = [
        ("GET", r"/api/v1/healthz", lambda m, q, b: handler.healthz_check()),
        ("GET", r"/api/v1/posts", lambda m, q, b: handler.get_posts(_list_request(q))),
        ("GET", r"/api/v1/posts/(?P<id>[^/]+)", lambda m, q, b: handler.get_post_by_id(m["id"])),
        (
            "GET",
            r"/api/v1/internal/posts",
            lambda m, q, b: handler.internal_get_posts(_list_request(q)),
        ),
        (
            "POST",
            r"/api/v1/internal/posts",
            lambda m, q, b: handler.internal_create_post(_payload(b())),
        ),
        (
            "GET",
            r"/api/v1/internal/posts/(?P<id>[^/]+)",
            lambda m, q, b: handler.internal_get_post_by_id(m["id"]),
        ),
        (
            "PUT",
            r"/api/v1/internal/posts/(?P<id>[^/]+)",
            lambda m, q, b: handler.internal_update_post(m["id"], _payload(b())),
        ),
        (
            "DELETE",
            r"/api/v1/internal/posts/(?P<id>[^/]+)",
            lambda m, q, b: handler.internal_delete_post_by_id(m["id"]),
        ),
    ]
    compiled = [(method, re.compile(f"^{pattern}$"), action) for method, pattern, action in routes]

    def app(environ, start_response):
        path = environ.get("PATH_INFO", "")
        method = environ.get("REQUEST_METHOD", "GET")
        try:
            path_known = False
            for route_method, pattern, action in compiled:
                match = pattern.match(path)
                if match is None:
                    continue
                path_known = True
                if route_method != method:
                    continue
                query = parse_qs(environ.get("QUERY_STRING", ""))
                result = action(match, query, lambda: _read_body(environ))
                return _json_response(start_response, result)
            if path_known:
                raise RpcError(StatusCode.UNIMPLEMENTED, "Method Not Allowed")
            raise RpcError(StatusCode.NOT_FOUND, "Not Found")
        except Exception as exc:
            status, headers, body = exception_response(exc)
            start_response(status, headers)
            return [body]

    return app


def _seconds(value) -> float | None:
    if value is None:
        return None
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


class _ThreadingServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


class Gateway:
    """The HTTP front of the service: the API plus apps mounted on path prefixes."""

    def __init__(
        self,
        address,
        api,
        max_header_bytes=MAX_HEADER_BYTES,
        read_timeout=READ_TIMEOUT,
        write_timeout=WRITE_TIMEOUT,
    ):
        self.address = str(address)
        self.api = api
        self.max_header_bytes = max_header_bytes
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self.bound_address: tuple[str, int] | None = None
        self._mounts: dict[str, object] = {}

    def mount(self, prefix: str, app) -> None:
        """Serve ``app`` at ``prefix``; a prefix ending in ``/`` covers its subtree."""
        self._mounts[prefix] = app

    def _serve_mounted(self, environ, start_response):
        path = environ.get("PATH_INFO", "") or "/"
        best = None
        for prefix, app in self._mounts.items():
            matches = path.startswith(prefix) if prefix.endswith("/") else path == prefix
            if matches and (best is None or len(prefix) > len(best[0])):
                best = (prefix, app)
        if best is None:
            return _plain_error(start_response, 404, "404 page not found")
        return best[1](environ, start_response)

    def _limit_headers(self, app):
        def wrapped(environ, start_response):
            size = sum(
                len(key) + len(str(value))
                for key, value in environ.items()
                if key.startswith("HTTP_")
            )
            if size > self.max_header_bytes:
                return _plain_error(start_response, 431, "Request Header Fields Too Large")
            return app(environ, start_response)

        return wrapped

    def _host_port(self) -> tuple[str, int]:
        host, _, port = self.address.rpartition(":") if ":" in self.address else ("", "", self.address)
        return host, int(port)

    def run(self, app, stop_event: threading.Event | None = None) -> None:
        """Serve ``app`` until ``stop_event`` is set; start-up failures are logged."""
        stop_event = stop_event if stop_event is not None else threading.Event()

        class _RequestHandler(WSGIRequestHandler):
            timeout = _seconds(self.read_timeout)

            def log_message(self, format, *args):
                _log.debug(format, *args)

        try:
            host, port = self._host_port()
            server = make_server(
                host,
                port,
                self._limit_headers(app),
                server_class=_ThreadingServer,
                handler_class=_RequestHandler,
            )
        except (OSError, ValueError) as exc:
            _log.error("gRPC-Gateway server exited with error: %s", exc)
            return None

        self.bound_address = server.server_address[:2]

        def watch():
            stop_event.wait()
            _log.info("Shutting down the HTTP gateway server...")
            server.shutdown()

        watcher = threading.Thread(target=watch, daemon=True)
        watcher.start()
        try:
            server.serve_forever()
        finally:
            server.server_close()
            self.bound_address = None
        return None