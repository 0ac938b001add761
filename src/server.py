import logging
import math
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from config.config import Config
from core.errors import InputError
from core.metrics_manager import MetricsManager
from core.probe_handler import ProbeHandler
from core.rpc_client import Credentials, RPCClient, create_http_client

logger = logging.getLogger(__name__)

SCRAPE_TIMEOUT_HEADER = "X-Prometheus-Scrape-Timeout-Seconds"
# Leave the scraper time to receive the response before it gives up
SCRAPE_TIMEOUT_OFFSET = 0.5


def probe_timeout(request: Request, default: float) -> float:
    """
    Bound the RPC exchange by the scraper's own timeout when it sends one.
    """
    header = request.headers.get(SCRAPE_TIMEOUT_HEADER)
    if not header:
        return default
    try:
        scrape_timeout = float(header) - SCRAPE_TIMEOUT_OFFSET
    except ValueError:
        logger.warning(f"Ignoring invalid {SCRAPE_TIMEOUT_HEADER} header: {header!r}")
        return default
    if not math.isfinite(scrape_timeout) or scrape_timeout <= 0:
        return default
    return min(scrape_timeout, default)


def create_app(
    config: Config,
    metrics_manager: Optional[MetricsManager] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the exporter application.

    Args:
        config (Config): Resolved exporter configuration.
        metrics_manager (Optional[MetricsManager]): Registry for probe gauges.
        http_client (Optional[httpx.AsyncClient]): Client used for RPC calls.
            Built from the API certificate settings when omitted.

    Returns:
        FastAPI: The application.
    """
    metrics_manager = metrics_manager or MetricsManager()
    client = http_client or create_http_client(config.api.certfile, config.exporter.timeout)
    credentials = Credentials(username=config.api.username, password=config.api.password)
    probe_handler = ProbeHandler(RPCClient(client, credentials, config.api.path), metrics_manager)

    @asynccontextmanager
    async def lifespan(app):
        yield
        await client.aclose()

    app = FastAPI(lifespan=lifespan)
    app.state.metrics_manager = metrics_manager
    app.state.probe_handler = probe_handler

    @app.get("/probe")
    async def probe(request: Request, target: Optional[str] = None):
        try:
            body = await probe_handler.probe(
                target, timeout=probe_timeout(request, config.exporter.timeout)
            )
        except InputError as e:
            return PlainTextResponse(str(e), status_code=400)
        return Response(body, media_type=CONTENT_TYPE_LATEST)

    @app.get("/metrics")
    def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    logger.info("OpenOTP exporter application created.")
    return app
