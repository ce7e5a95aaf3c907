"""
HTTP server for prometheus-hetzner-sd providing:

    - <web.path>   metrics about the discovery in the Prometheus format
    - /healthz     always OK while the process is up
    - /readyz      OK once the output file has been refreshed at least once
    - /            a landing page linking to the metrics

The server runs the quart app with hypercorn while the polling loop runs as
a task in the same event loop.  SIGTERM and SIGINT stop both gracefully.
"""
import asyncio
import logging
import signal
import sys
from typing import Any, Callable

from hypercorn.asyncio import serve
from hypercorn.config import Config as HypercornConfig
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest
import quart

from . import __version__
from .adapter import Adapter
from .config import Config
from .discoverer import Discoverer
from .logs import python_log_level
from .target_file import TargetFile

LOGGER = logging.getLogger(__name__)

INDEX_PAGE = """<!DOCTYPE html>
<html>
<head><title>Prometheus Hetzner SD</title></head>
<body>
<h1>Prometheus Hetzner SD</h1>
<p>Version {version}</p>
<p><a href="{path}">Metrics</a></p>
</body>
</html>
"""


def create_app(config: Config, adapter: Adapter) -> quart.Quart:
    """Setup the quart web-app serving metrics and health checks"""
    app = quart.Quart(__name__)
    app.config["web_path"] = config.server.path
    app.config["adapter"] = adapter

    async def metrics() -> quart.Response:
        """Prometheus exposition of the default registry"""
        return quart.Response(generate_latest(REGISTRY), status=200, mimetype=CONTENT_TYPE_LATEST)

    app.add_url_rule(config.server.path, "metrics", metrics, methods=["GET"])

    @app.route("/healthz")
    async def healthz() -> quart.Response:
        return quart.Response("OK", status=200, mimetype="text/plain")

    @app.route("/readyz")
    async def readyz() -> quart.Response:
        """Only ready once targets have been written"""
        if app.config["adapter"].ready:
            return quart.Response("OK", status=200, mimetype="text/plain")

        return quart.Response("Not ready", status=503, mimetype="text/plain")

    if config.server.path != "/":

        @app.route("/")
        async def index() -> quart.Response:
            page = INDEX_PAGE.format(version=__version__, path=app.config["web_path"])
            return quart.Response(page, status=200, mimetype="text/html")

    return app


def build_adapter(config: Config) -> Adapter:
    """Wire the discoverer and the output file into the polling loop"""
    target_file = TargetFile(config.target.file)
    target_file.prepare()

    return Adapter(
        discoverer=Discoverer(config.target.credentials),
        target_file=target_file,
        refresh=config.target.refresh,
    )


def hypercorn_config(config: Config) -> HypercornConfig:
    """Fill in a hypercorn Config object for the metrics server"""
    result = HypercornConfig()
    result.bind = [config.server.addr]
    result.loglevel = python_log_level(config.logs.level)
    result.accesslog = None
    return result


def run_server(config: Config) -> None:
    """Run discovery and the HTTP server until shutdown

    If an exception occurs while serving it is logged and the process exits
    """
    adapter = build_adapter(config)
    app = create_app(config, adapter)

    LOGGER.info(f"Starting prometheus-hetzner-sd {__version__}")
    LOGGER.info(f"Exposing metrics on http://{config.server.addr}{config.server.path}")

    # If an exception occurs during serving requests, we log it and exit
    # rather than moving on to further processing, so it's not bad in this
    # case to catch all exceptions broadly: it's what we want
    # pylint: disable=broad-except
    try:
        asyncio.run(_serve(app, adapter, hypercorn_config(config)))
    except Exception as err:
        LOGGER.error(f"When trying to serve prometheus-hetzner-sd: {err}")
        sys.exit(1)


async def _serve(app: quart.Quart, adapter: Adapter, config: HypercornConfig) -> None:
    """Serve the app and run the adapter until a signal arrives"""
    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGTERM, _signal_handler(shutdown_event))
    loop.add_signal_handler(signal.SIGINT, _signal_handler(shutdown_event))

    adapter_task = asyncio.create_task(adapter.run(shutdown_event))
    # a crashed polling loop takes the server down with it
    adapter_task.add_done_callback(lambda _: shutdown_event.set())
    try:
        await serve(app, config, shutdown_trigger=shutdown_event.wait)
    finally:
        shutdown_event.set()
        await adapter_task


def _signal_handler(shutdown_event: asyncio.Event) -> Callable[..., None]:
    """Returns a handler that shuts the server down ASAP"""

    def handler(*_: Any) -> None:
        LOGGER.info("Shutting down prometheus-hetzner-sd")
        shutdown_event.set()

    return handler
