"""Command line entry point: wires the service together and runs the gateway."""

from __future__ import annotations

import argparse
import logging
import signal
import sqlite3
import sys
import threading
from dataclasses import dataclass

from articlesvc.config import MAX_HEADER_BYTES, READ_TIMEOUT, WRITE_TIMEOUT, load_config
from articlesvc.errors import METHOD_PREFIX, restricted_methods, unrestricted_methods
from articlesvc.gateway import Gateway, build_api, handler_mux
from articlesvc.handler import ArticleHandler
from articlesvc.interceptors import INCOMING_METADATA, ServerInterceptor, chain_interceptors
from articlesvc.repository import PostRepository, connect
from articlesvc.usecase import PostUseCase

ALLOWED_CONTENT_TYPES = ("application/json", "application/x-www-form-urlencoded")

_RPC_NAMES = {
    "healthz_check": "HealthzCheck",
    "get_posts": "GetPosts",
    "get_post_by_id": "GetPostByID",
    "internal_get_posts": "InternalGetPosts",
    "internal_create_post": "InternalCreatePost",
    "internal_get_post_by_id": "InternalGetPostByID",
    "internal_update_post": "InternalUpdatePost",
    "internal_delete_post_by_id": "InternalDeletePostByID",
}


class _InterceptedHandler:
    """Runs every handler call through the server interceptor chain."""

    def __init__(self, target: ArticleHandler, interceptors):
        self._target = target
        self._chain = chain_interceptors(interceptors, self._invoke)

    def _invoke(self, request, context):
        name, args = request
        return getattr(self._target, name)(*args)

    def _call(self, name: str, *args):
        context = {INCOMING_METADATA: {}}
        return self._chain((name, args), context, METHOD_PREFIX + _RPC_NAMES[name])

    def healthz_check(self):
        return self._call("healthz_check")

    def get_posts(self, request):
        return self._call("get_posts", request)

    def get_post_by_id(self, post_id):
        return self._call("get_post_by_id", post_id)

    def internal_get_posts(self, request):
        return self._call("internal_get_posts", request)

    def internal_create_post(self, payload):
        return self._call("internal_create_post", payload)

    def internal_get_post_by_id(self, post_id):
        return self._call("internal_get_post_by_id", post_id)

    def internal_update_post(self, post_id, payload):
        return self._call("internal_update_post", post_id, payload)

    def internal_delete_post_by_id(self, post_id):
        return self._call("internal_delete_post_by_id", post_id)


@dataclass
class Application:
    """The wired service: storage, business logic, handlers and the JSON API."""

    connection: sqlite3.Connection
    repository: PostRepository
    use_case: PostUseCase
    handler: ArticleHandler
    interceptor: ServerInterceptor
    api: object

    def close(self) -> None:
        self.connection.close()

    def __enter__(self) -> Application:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def build_application(database, logger=None) -> Application:
    """Open ``database`` and assemble the service on top of it."""
    logger = logger if logger is not None else logging.getLogger("articlesvc")

    interceptor = ServerInterceptor(logger)
    interceptor.register_restricted_methods(restricted_methods())
    interceptor.register_unrestricted_methods(unrestricted_methods())

    connection = connect(database)
    repository = PostRepository(connection, logger)
    repository.create_schema()
    use_case = PostUseCase(repository, logger)
    handler = ArticleHandler(use_case, logger)

    intercepted = _InterceptedHandler(
        handler,
        [
            interceptor.recovery(),
            interceptor.metadata_propagation(),
            interceptor.performance(logger),
        ],
    )
    return Application(
        connection=connection,
        repository=repository,
        use_case=use_case,
        handler=handler,
        interceptor=interceptor,
        api=build_api(intercepted),
    )


def parse_args(argv=None) -> argparse.Namespace:
    """Parse the command line; ``--rpc`` and ``--gateway`` go together."""
    parser = argparse.ArgumentParser(
        prog="service",
        description="Used to run the article service including its HTTP gateway",
    )
    parser.add_argument("command", nargs="?", choices=("service",), default="service")
    parser.add_argument("-r", "--rpc", default="", help="define rpc server port")
    parser.add_argument("-g", "--gateway", default="", help="define gateway port")
    parser.add_argument("--config", default=".env", help="path of the environment file")
    args = parser.parse_args(argv)
    if bool(args.rpc) != bool(args.gateway):
        parser.error(
            "if any flags in the group [rpc gateway] are set they must all be set"
        )
    return args


def _install_signal_handlers(stop: threading.Event) -> dict:
    if threading.current_thread() is not threading.main_thread():
        return {}
    previous = {}

    def on_signal(signum, frame):
        logging.getLogger("articlesvc").info("Received signal: %s", signal.Signals(signum).name)
        stop.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, on_signal)
    return previous


def main(argv=None) -> int:
    """Run the service until interrupted; returns the process exit status."""
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    logger = logging.getLogger("articlesvc")

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as exc:
        print(exc, file=sys.stderr)
        return 1

    if not config.postgres_dns:
        logger.error("failed to connect to database: no database configured")
        return 1
    try:
        application = build_application(config.postgres_dns, logger)
    except sqlite3.Error as exc:
        logger.error("failed to connect to database: %s", exc)
        return 1

    with application:
        gateway = Gateway(
            args.gateway or "0",
            application.api,
            MAX_HEADER_BYTES,
            READ_TIMEOUT,
            WRITE_TIMEOUT,
        )
        app = handler_mux(gateway, ALLOWED_CONTENT_TYPES)
        stop = threading.Event()
        previous = _install_signal_handlers(stop)
        try:
            worker = threading.Thread(target=gateway.run, args=(app, stop), daemon=True)
            worker.start()
            logger.info("Serving gRPC-Gateway on %s", args.gateway or "0")
            while not stop.wait(0.2):
                if not worker.is_alive():
                    logger.error("Failed to listen grpc gateway")
                    return 1
            worker.join()
        finally:
            stop.set()
            for signum, handler in previous.items():
                signal.signal(signum, handler)
    return 0