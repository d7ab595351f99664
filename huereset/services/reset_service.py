"""Central coordinator: transport, router, orchestrator and intake wiring."""
from __future__ import annotations
import asyncio
import logging
from typing import Optional

from huereset.core.patterns import LogLevel, StatusReporter
from huereset.orchestration import ResetOrchestrator
from huereset.protocols import MQTTTransport, TransportConfig
from huereset.routing import BridgeTopics, EventRouter
from huereset.services.intake import SerialIntake


def make_transport_config(cfg, topics: BridgeTopics) -> TransportConfig:
    return TransportConfig(
        connection_params={
            "host": cfg.MQTT_HOST,
            "port": cfg.MQTT_PORT,
            "transport": cfg.MQTT_TRANSPORT,
            "username": cfg.MQTT_USERNAME,
            "password": cfg.MQTT_PASSWORD,
            "client_id": cfg.MQTT_CLIENT_ID,
            "keepalive": cfg.MQTT_KEEPALIVE,
        },
        subscriptions=topics.subscriptions(),
        retry_delay=2.0,
        timeout=5,
    )


class HueResetService:
    def __init__(self, cfg, transport=None, reporter: Optional[StatusReporter] = None):
        self.log = logging.getLogger(self.__class__.__name__)
        self.reporter = reporter or StatusReporter()
        self.topics = BridgeTopics(cfg.BASE_TOPIC)
        self.transport = transport or MQTTTransport(make_transport_config(cfg, self.topics), self.reporter)
        self.orchestrator = ResetOrchestrator(
            self.transport, self.reporter, self.topics,
            reset_action=cfg.RESET_ACTION,
            extended_pan_id=cfg.EXTENDED_PAN_ID,
            dedup_window=cfg.DEDUP_WINDOW,
            action_timeout=cfg.ACTION_TIMEOUT,
            permit_join_time=cfg.PERMIT_JOIN_TIME,
            rejoin_timeout=cfg.REJOIN_TIMEOUT,
        )
        self.router = EventRouter(self.topics, self.orchestrator, self.reporter)
        self.intake = SerialIntake(self.orchestrator, self.reporter)
        self._transport_task: Optional[asyncio.Task] = None

    # --------------------------------------------------------------------- #
    #  Public API
    # --------------------------------------------------------------------- #
    async def startup(self):
        self._transport_task = asyncio.create_task(
            self.transport.start(self.router.route, self._on_transport_error)
        )
        self._transport_task.add_done_callback(self._on_transport_done)
        self.log.info("🔌 service started (base topic %s)", self.topics.base)

    async def shutdown(self):
        await self.orchestrator.shutdown()
        await self.transport.stop()
        if self._transport_task is not None and not self._transport_task.done():
            self._transport_task.cancel()
            try:
                await self._transport_task
            except asyncio.CancelledError:
                pass
        self.log.info("🌙 service stopped")

    @property
    def running(self) -> bool:
        return self._transport_task is not None and not self._transport_task.done()

    # --------------------------------------------------------------------- #
    #  Private helpers
    # --------------------------------------------------------------------- #
    def _on_transport_error(self, error: Exception):
        self.reporter.log(f"MQTT error: {error}", LogLevel.ERROR)

    def _on_transport_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.reporter.log(f"MQTT error: {error}", LogLevel.ERROR)
