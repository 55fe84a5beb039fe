"""Server-side call interceptors: recovery, metadata, auth and timing.

An interceptor is called as ``interceptor(request, context, method, handler)``
and a handler as ``handler(request, context)``; ``context`` is a mapping.
"""

from __future__ import annotations

import functools
import logging
import time
import traceback
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from articlesvc.errors import RpcError, StatusCode

INCOMING_METADATA = "incoming_metadata"
OUTGOING_METADATA = "outgoing_metadata"

Handler = Callable[[Any, Mapping[str, Any]], Any]
Interceptor = Callable[[Any, Mapping[str, Any], str, Handler], Any]


def _format_duration(seconds: float) -> str:
    if seconds < 1e-3:
        return f"{seconds * 1e6:.3f}µs"
    if seconds < 1:
        return f"{seconds * 1e3:.3f}ms"
    return f"{seconds:.3f}s"


class ServerInterceptor:
    """Builds the interceptors the RPC server runs each call through."""

    def __init__(self, logger=None):
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._restricted: dict[str, list[str]] = {}
        self._unrestricted: frozenset[str] = frozenset()

    def register_restricted_methods(self, methods: Mapping[str, Iterable[str]]) -> None:
        self._restricted = {name: list(rules) for name, rules in methods.items()}

    def register_unrestricted_methods(self, methods: Iterable[str]) -> None:
        self._unrestricted = frozenset(methods)

    def is_restricted_method_allowed(self, method: str, accesses: Iterable[str]) -> bool:
        """True if ``method`` has no rules or one of ``accesses`` satisfies them."""
        rules = self._restricted.get(method)
        if rules is None:
            return True
        allowed = set(rules)
        return any(access in allowed for access in accesses)

    def recovery(self) -> Interceptor:
        """Turn unexpected exceptions into an UNKNOWN error."""

        def intercept(request, context, method, handler):
            try:
                return handler(request, context)
            except RpcError:
                raise
            except Exception as exc:
                self._logger.error(
                    "Panic recovered in gRPC stream: %s (type: %s)", exc, type(exc).__name__
                )
                self._logger.error("Stack trace: %s", traceback.format_exc())
                raise RpcError(StatusCode.UNKNOWN, "Unknown Server Error") from exc

        return intercept

    def metadata_propagation(self) -> Interceptor:
        """Forward incoming metadata as the outgoing metadata of the call."""

        def intercept(request, context, method, handler):
            incoming = context.get(INCOMING_METADATA) or {}
            outgoing = {key: list(values) for key, values in incoming.items()}
            return handler(request, {**context, OUTGOING_METADATA: outgoing})

        return intercept

    def auth(self, public_key) -> Interceptor:
        """Authentication hook; every method is currently let through."""

        def intercept(request, context, method, handler):
            return handler(request, context)

        return intercept

    def performance(self, log) -> Interceptor:
        """Log latency, method and resulting status of every call to ``log``."""

        def intercept(request, context, method, handler):
            start = time.perf_counter()
            code = StatusCode.OK
            try:
                return handler(request, context)
            except RpcError as exc:
                code = exc.code
                raise
            except Exception:
                code = StatusCode.INTERNAL
                raise
            finally:
                duration = _format_duration(time.perf_counter() - start)
                log.info(
                    "[Latency: %s, Method: %s, StatusCode: %s]", duration, method, str(code)
                )

        return intercept


def chain_interceptors(interceptors: Iterable[Interceptor], handler: Handler):
    """Compose interceptors around ``handler``; the first listed runs outermost.

    Returns a callable taking ``(request, context, method)``.
    """
    chain = tuple(interceptors)

    def call(request, context, method):
        def wrap(next_handler, interceptor):
            return lambda req, ctx: interceptor(req, ctx, method, next_handler)

        composed = functools.reduce(wrap, reversed(chain), handler)
        return composed(request, context)

    return call