from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from lhserver import __version__
from lhserver.core.config.models import EventsConfig, WebConfig
from lhserver.core.errors import LhServerError
from lhserver.core.events.log_buffer import EventLogBuffer
from lhserver.core.telemetry.engine import HealthEngine
from lhserver.core.telemetry.metrics import MetricsCollector, RequestCounters
from lhserver.web.render import PROMETHEUS_CONTENT_TYPE, render_prometheus, report_to_dict


def create_app(
    *,
    engine: HealthEngine,
    collector: MetricsCollector,
    event_log: EventLogBuffer,
    counters: RequestCounters,
    web_cfg: Optional[WebConfig] = None,
    events_cfg: Optional[EventsConfig] = None,
    logger=None,
) -> FastAPI:
    web_cfg = web_cfg or WebConfig()
    events_cfg = events_cfg or EventsConfig()
    app = FastAPI(title="LH Server", version=__version__)

    @app.middleware("http")
    async def count_requests(request: Request, call_next):
        counters.inc("http_requests_total")
        return await call_next(request)

    @app.exception_handler(LhServerError)
    async def lhserver_error_handler(request: Request, exc: LhServerError):
        if logger:
            logger.warning(f"Request {request.url.path} failed: {exc}")
        code = 503 if exc.recoverable else 500
        return JSONResponse(status_code=code, content={"error": exc.code, "message": exc.user_message})

    @app.get("/health")
    def health():
        report = engine.generate_report()
        return report_to_dict(report)

    @app.get("/metrics")
    def metrics():
        body = render_prometheus(collector.collect(), prefix=web_cfg.metric_prefix)
        return PlainTextResponse(content=body, media_type=PROMETHEUS_CONTENT_TYPE)

    @app.get("/logs")
    def logs(limit: Optional[int] = Query(default=None, ge=0)):
        n = events_cfg.default_export_limit if limit is None else limit
        return [e.to_dict() for e in event_log.export(n)]

    return app
