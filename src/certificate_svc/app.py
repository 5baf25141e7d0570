"""FastAPI entry point for the certificate approval service.

Start with:
    uvicorn certificate_svc.app:app --host 0.0.0.0 --port 8060

or via the ``certificate-svc`` console script.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI

from .config import Config, load_config
from .requests import routes as request_routes
from .requests.registry import RequestRegistry, YamlRequestRegistry
from .requests.service import WorkflowService
from .telemetry.emitter import TelemetryEmitter
from .telemetry.sinks.base import TelemetrySink
from .telemetry.sinks.console import ConsoleSink
from .telemetry.sinks.file import FileSink

logger = logging.getLogger(__name__)


def build_service(config: Config) -> WorkflowService:
    """Create the workflow service over the configured store."""
    requests_file = config.workflow.requests_file
    if requests_file:
        store = YamlRequestRegistry(requests_file)
        logger.info(f"Requests persisted to {requests_file} ({len(store)} loaded)")
    else:
        store = RequestRegistry()
        logger.warning("No requests file configured, requests are kept in memory only")
    return WorkflowService(store)


def build_sink(config: Config) -> TelemetrySink:
    """Create the configured telemetry sink."""
    sink_type = config.telemetry.sink_type
    sink_config = config.telemetry.sink_config
    if sink_type == "console":
        return ConsoleSink(**sink_config)
    if sink_type == "file":
        return FileSink(**sink_config)
    raise ValueError(f"Unknown telemetry sink type: {sink_type}")


def create_app(config: Config | None = None) -> FastAPI:
    """Create the FastAPI application. Config is loaded at startup if not given."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting certificate service...")

        cfg = config or load_config()
        app.state.config = cfg

        service = build_service(cfg)
        app.state.service = service

        emitter = None
        sink = None
        process_task = None
        if cfg.telemetry.enabled:
            emitter = TelemetryEmitter(max_queue_size=cfg.telemetry.max_queue_size)
            sink = build_sink(cfg)
            await sink.start()
            emitter.add_consumer(sink)
            await emitter.start()
            process_task = asyncio.create_task(emitter.process_loop())
            logger.info(f"Telemetry enabled (sink={cfg.telemetry.sink_type})")
        app.state.emitter = emitter

        if cfg.workflow.enabled:
            request_routes.configure(service=service, emitter=emitter)
            logger.info("Certificate request workflow enabled")

        logger.info("Certificate service started")
        yield

        if process_task is not None:
            process_task.cancel()
            with suppress(asyncio.CancelledError):
                await process_task
        if emitter is not None:
            await emitter.stop()
        if sink is not None:
            await sink.stop()
        request_routes.configure(service=None, emitter=None)
        logger.info("Certificate service stopped")

    app = FastAPI(
        title="Parish Certificates",
        description=(
            "Certificate requests and their three-level approval workflow: "
            "Zone Leader, Pastor, Parish Pastor."
        ),
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Requests", "description": "Certificate request submission and approval workflow"},
            {"name": "Health", "description": "Service health"},
        ],
    )

    app.include_router(request_routes.router)

    @app.get("/health", tags=["Health"])
    async def health():
        """Health check."""
        service: WorkflowService | None = getattr(app.state, "service", None)
        emitter: TelemetryEmitter | None = getattr(app.state, "emitter", None)
        return {
            "status": "healthy" if service is not None else "starting",
            "requests": service.summary() if service is not None else None,
            "telemetry": emitter.stats if emitter is not None else None,
        }

    return app


app = create_app()


def run():
    """Run the service with uvicorn."""
    import uvicorn

    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.server.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "certificate_svc.app:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.reload,
    )


if __name__ == "__main__":
    run()
