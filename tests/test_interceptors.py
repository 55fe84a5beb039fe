import pytest

from articlesvc.errors import RpcError, StatusCode
from articlesvc.interceptors import (
    INCOMING_METADATA,
    OUTGOING_METADATA,
    ServerInterceptor,
    chain_interceptors,
)

METHOD = "/article.v1.CMSService/GetPosts"


class RecordingLog:
    def __init__(self):
        self.lines = []

    def info(self, fmt, *args):
        self.lines.append(fmt % args)

    def error(self, fmt, *args):
        self.lines.append(fmt % args)


def echo(request, context):
    return request


def test_unregistered_method_is_allowed():
    interceptor = ServerInterceptor(RecordingLog())
    assert interceptor.is_restricted_method_allowed(METHOD, []) is True


def test_restricted_method_access():
    interceptor = ServerInterceptor(RecordingLog())
    interceptor.register_restricted_methods({METHOD: ["admin", "editor"]})
    assert interceptor.is_restricted_method_allowed(METHOD, ["viewer", "editor"]) is True
    assert interceptor.is_restricted_method_allowed(METHOD, ["viewer"]) is False
    assert interceptor.is_restricted_method_allowed(METHOD, []) is False


def test_recovery_passes_result():
    intercept = ServerInterceptor(RecordingLog()).recovery()
    assert intercept("req", {}, METHOD, echo) == "req"


def test_recovery_converts_unexpected_exception():
    log = RecordingLog()
    intercept = ServerInterceptor(log).recovery()

    def broken(request, context):
        raise KeyError("missing")

    with pytest.raises(RpcError) as info:
        intercept("req", {}, METHOD, broken)
    assert info.value.code is StatusCode.UNKNOWN
    assert info.value.message == "Unknown Server Error"
    assert any("Panic recovered" in line for line in log.lines)


def test_recovery_keeps_rpc_errors():
    intercept = ServerInterceptor(RecordingLog()).recovery()
    original = RpcError(StatusCode.NOT_FOUND, "Post Not Found")

    def failing(request, context):
        raise original

    with pytest.raises(RpcError) as info:
        intercept("req", {}, METHOD, failing)
    assert info.value is original


def test_metadata_propagation_copies_incoming():
    seen = {}

    def handler(request, context):
        seen.update(context)
        return "ok"

    intercept = ServerInterceptor(RecordingLog()).metadata_propagation()
    context = {INCOMING_METADATA: {"x-request-id": ["abc"]}}
    assert intercept("req", context, METHOD, handler) == "ok"
    assert seen[OUTGOING_METADATA] == {"x-request-id": ["abc"]}
    assert OUTGOING_METADATA not in context


def test_metadata_propagation_without_incoming():
    seen = {}

    def handler(request, context):
        seen.update(context)
        return request

    intercept = ServerInterceptor(RecordingLog()).metadata_propagation()
    assert intercept("req", {}, METHOD, handler) == "req"
    assert seen[OUTGOING_METADATA] == {}


def test_auth_lets_calls_through():
    interceptor = ServerInterceptor(RecordingLog())
    interceptor.register_unrestricted_methods([METHOD])
    intercept = interceptor.auth(b"public-key")
    assert intercept("a", {}, METHOD, echo) == "a"
    assert intercept("b", {}, "/other/Method", echo) == "b"


def test_performance_logs_ok():
    log = RecordingLog()
    intercept = ServerInterceptor(RecordingLog()).performance(log)
    assert intercept("req", {}, METHOD, echo) == "req"
    assert len(log.lines) == 1
    assert f"Method: {METHOD}" in log.lines[0]
    assert log.lines[0].endswith(f"StatusCode: {StatusCode.OK}]")


def test_performance_logs_error_code_and_reraises():
    log = RecordingLog()
    intercept = ServerInterceptor(RecordingLog()).performance(log)

    def failing(request, context):
        raise RpcError(StatusCode.NOT_FOUND, "Post Not Found")

    with pytest.raises(RpcError):
        intercept("req", {}, METHOD, failing)
    assert log.lines[0].endswith(f"StatusCode: {StatusCode.NOT_FOUND}]")


def test_performance_logs_internal_for_plain_exception():
    log = RecordingLog()
    intercept = ServerInterceptor(RecordingLog()).performance(log)

    def failing(request, context):
        raise ValueError("bad")

    with pytest.raises(ValueError):
        intercept("req", {}, METHOD, failing)
    assert log.lines[0].endswith(f"StatusCode: {StatusCode.INTERNAL}]")


def test_chain_runs_first_interceptor_outermost():
    order = []

    def make(name):
        def intercept(request, context, method, handler):
            order.append(name)
            return handler(request, context)
        return intercept

    def handler(request, context):
        order.append("handler")
        return request

    call = chain_interceptors([make("first"), make("second")], handler)
    assert call("req", {}, METHOD) == "req"
    assert order == ["first", "second", "handler"]


def test_chain_with_real_interceptors():
    interceptor = ServerInterceptor(RecordingLog())

    def broken(request, context):
        raise RuntimeError("boom")

    call = chain_interceptors(
        [interceptor.recovery(), interceptor.metadata_propagation()], broken
    )
    with pytest.raises(RpcError) as info:
        call("req", {}, METHOD)
    assert info.value.code is StatusCode.UNKNOWN


def test_chain_without_interceptors_calls_handler():
    call = chain_interceptors([], echo)
    assert call("payload", {}, METHOD) == "payload"