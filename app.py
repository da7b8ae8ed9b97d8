from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass
from typing import Optional

import uvicorn

from lhserver.core.cache.readings import DeviceReadings
from lhserver.core.config import AppConfig, load_config
from lhserver.core.credentials import CredentialManager, GDBusCredentialBroker
from lhserver.core.credentials.broker import CredentialBroker
from lhserver.core.device_api import DeviceApiClient
from lhserver.core.errors import AuthError
from lhserver.core.events import EventLogBuffer, LoggerSink, build_syslog_sink
from lhserver.core.logger import get_logger, setup_logging
from lhserver.core.telemetry import HealthEngine, MetricsCollector, RequestCounters, ResourceProbes
from lhserver.web.api import create_app


@dataclass
class LhServer:
    cfg: AppConfig
    event_log: EventLogBuffer
    sink: LoggerSink
    credentials: CredentialManager
    client: DeviceApiClient
    readings: DeviceReadings
    engine: HealthEngine
    collector: MetricsCollector
    counters: RequestCounters

    def close(self) -> None:
        self.credentials.clear()
        self.client.close()
        self.sink.close()


def build_server(cfg: AppConfig, *, logger: logging.Logger, broker: Optional[CredentialBroker] = None, sink: Optional[LoggerSink] = None) -> LhServer:
    ev = cfg.events
    if sink is None:
        sink = build_syslog_sink(address=ev.syslog_address, facility=ev.syslog_facility, ident=cfg.app.service_name) if ev.syslog_enabled else LoggerSink()
    event_log = EventLogBuffer(capacity=ev.capacity, max_message_length=ev.max_message_length, sink=sink)

    c = cfg.credentials
    if broker is None:
        broker = GDBusCredentialBroker(
            gdbus_path=c.gdbus_path,
            bus_name=c.bus_name,
            object_path=c.object_path,
            method=c.method,
            timeout_seconds=c.timeout_seconds,
        )
    credentials = CredentialManager(broker, account=c.service_account, logger=get_logger("credentials"), event_log=event_log)
    try:
        credentials.acquire()
    except AuthError:
        # device API features run degraded until a 401 triggers a re-acquire
        logger.warning("Starting without device API credentials.")

    client = DeviceApiClient(cfg=cfg.device_api, credentials=credentials, logger=get_logger("device_api"), event_log=event_log)
    readings = DeviceReadings(client=client, cfg=cfg.cache, logger=get_logger("cache"), event_log=event_log)
    probes = ResourceProbes(disk_path=cfg.health.disk_path, thermal_zone_path=cfg.health.thermal_zone_path, logger=get_logger("probes"))
    engine = HealthEngine(
        cfg=cfg.health,
        probes=probes,
        readings=readings,
        event_log=event_log,
        service_name=cfg.app.service_name,
        logger=get_logger("health"),
    )
    counters = RequestCounters()
    collector = MetricsCollector(probes=probes, readings=readings, counters=counters, logger=get_logger("metrics"))
    return LhServer(
        cfg=cfg,
        event_log=event_log,
        sink=sink,
        credentials=credentials,
        client=client,
        readings=readings,
        engine=engine,
        collector=collector,
        counters=counters,
    )


def main() -> None:
    ap = argparse.ArgumentParser(description="Health, metrics and event log server for the PTZ rangefinder unit")
    ap.add_argument("--root", default=".", help="Directory holding config/ and logs/.")
    ap.add_argument("--host", default=None, help="Bind address (overrides web.json).")
    ap.add_argument("--port", type=int, default=None, help="Listen port (overrides web.json).")
    args = ap.parse_args()

    # config warnings before handlers exist go to logging.lastResort (stderr)
    cfg = load_config(args.root, logger=get_logger("config"))
    logger = setup_logging(os.path.join(args.root, cfg.app.log_dir), level=cfg.app.log_level)

    server = build_server(cfg, logger=logger)
    server.event_log.info(f"{cfg.app.service_name} starting")
    app = create_app(
        engine=server.engine,
        collector=server.collector,
        event_log=server.event_log,
        counters=server.counters,
        web_cfg=cfg.web,
        events_cfg=cfg.events,
        logger=get_logger("web"),
    )
    host = args.host or cfg.web.bind_host
    port = int(args.port or cfg.web.port)
    logger.info(f"Serving on http://{host}:{port}")
    try:
        uvicorn.run(app, host=host, port=port, log_level="info")
    finally:
        server.event_log.info(f"{cfg.app.service_name} stopping")
        server.close()


if __name__ == "__main__":
    main()
