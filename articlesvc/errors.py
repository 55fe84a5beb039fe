"""Status codes, RPC errors and method registries shared by the service."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import IntEnum

METHOD_PREFIX = "/article.v1.CMSService/"


class StatusCode(IntEnum):
    """Canonical RPC status codes."""

    OK = 0
    CANCELED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16

    def __str__(self) -> str:
        if self is StatusCode.OK:
            return "OK"
        return "".join(part.capitalize() for part in self.name.split("_"))


@dataclass(frozen=True)
class FieldViolation:
    """A single invalid field of a request."""

    field: str
    description: str


class RpcError(Exception):
    """An error carrying an RPC status code, a message and optional details."""

    def __init__(self, code, message, details=()):
        super().__init__(message)
        self.code = StatusCode(code)
        self.message = message
        self.details = tuple(details)

    def __str__(self) -> str:
        return f"rpc error: code = {self.code} desc = {self.message}"

    def __repr__(self) -> str:
        return f"RpcError({self.code!s}, {self.message!r}, details={self.details!r})"


_HTTP_STATUS = {
    StatusCode.OK: 200,
    StatusCode.CANCELED: 499,
    StatusCode.UNKNOWN: 500,
    StatusCode.INVALID_ARGUMENT: 400,
    StatusCode.DEADLINE_EXCEEDED: 504,
    StatusCode.NOT_FOUND: 404,
    StatusCode.ALREADY_EXISTS: 409,
    StatusCode.PERMISSION_DENIED: 403,
    StatusCode.UNAUTHENTICATED: 401,
    StatusCode.RESOURCE_EXHAUSTED: 429,
    StatusCode.FAILED_PRECONDITION: 400,
    StatusCode.ABORTED: 409,
    StatusCode.OUT_OF_RANGE: 400,
    StatusCode.UNIMPLEMENTED: 501,
    StatusCode.INTERNAL: 500,
    StatusCode.UNAVAILABLE: 503,
    StatusCode.DATA_LOSS: 500,
}

_TRANSFORMABLE_CODES = frozenset(
    {
        StatusCode.UNAUTHENTICATED,
        StatusCode.PERMISSION_DENIED,
        StatusCode.NOT_FOUND,
        StatusCode.INVALID_ARGUMENT,
        StatusCode.ALREADY_EXISTS,
        StatusCode.DEADLINE_EXCEEDED,
        StatusCode.RESOURCE_EXHAUSTED,
        StatusCode.FAILED_PRECONDITION,
        StatusCode.ABORTED,
        StatusCode.OUT_OF_RANGE,
        StatusCode.UNIMPLEMENTED,
        StatusCode.INTERNAL,
        StatusCode.UNAVAILABLE,
        StatusCode.DATA_LOSS,
        StatusCode.CANCELED,
    }
)


def http_status_from_code(code) -> int:
    """Map an RPC status code to the HTTP status the gateway answers with."""
    try:
        return _HTTP_STATUS[StatusCode(code)]
    except ValueError:
        return 500


def transform_error(err: BaseException, code, custom_message: str = "") -> RpcError:
    """Rewrap ``err`` under ``code``, optionally replacing its message.

    Errors that carry no status become INTERNAL. Codes without a special
    meaning (such as OK or UNKNOWN) keep the original error's code.
    """
    if not isinstance(err, RpcError):
        return RpcError(StatusCode.INTERNAL, custom_message or str(err))
    message = custom_message or err.message
    target = code if code in _TRANSFORMABLE_CODES else err.code
    return RpcError(target, message)


def get_value_metadata(metadata: Mapping[str, Sequence[str]], key: str) -> str:
    """Return the first value stored under ``key`` in request metadata."""
    values = metadata.get(key)
    if not values:
        raise RpcError(StatusCode.INTERNAL, "key not found")
    return values[0]


def restricted_methods() -> dict[str, list[str]]:
    """Methods that require one of the listed accesses."""
    return {}


def unrestricted_methods() -> list[str]:
    """Methods open to every caller."""
    names: Iterable[str] = (
        "HealthzCheck",
        "GetPosts",
        "GetPostByID",
        "InternalGetPosts",
        "InternalCreatePost",
        "InternalGetPostByID",
        "InternalUpdatePost",
        "InternalDeletePostByID",
    )
    return [METHOD_PREFIX + name for name in names]