import asyncio
import logging

from pricerelay.bootstrap.config.settings import RelaySettings
from pricerelay.core.models.config import ListenerConfig, PricerConfig
from pricerelay.core.ports.serializer import Serializer
from pricerelay.core.transport.server import RelayServer


class ControlPlane:
    def __init__(
        self,
        config: RelaySettings,
        serializer: Serializer,
    ) -> None:
        self._config = config
        self._serializer = serializer
        self._loop = self._create_event_loop()
        self._listener_config = self._build_listener_config()

        self._logger = logging.getLogger("pricerelay.controlplane")

        self._relay_server = RelayServer(
            config=self._listener_config,
            serializer=self._serializer,
            loop=self._loop,
        )

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def relay_server(self) -> RelayServer:
        return self._relay_server

    async def start(self, stop_event: asyncio.Event) -> None:
        await self._relay_server.start()
        self._logger.info("Relay is now fully operational.")

        await stop_event.wait()

        self._logger.info("Shutting down relay server.")
        await self._relay_server.shutdown()
        self._logger.info("Relay stopped.")

    def _build_listener_config(self) -> ListenerConfig:
        config = self._config

        return ListenerConfig(
            host=config.ws_host,
            port=config.ws_port,
            pricer=PricerConfig(
                host=config.pricer_host,
                port=config.pricer_port,
                max_pending_results=config.max_pending_results,
            ),
            timeout_graceful_shutdown=config.timeout_graceful_shutdown,
        )

    @staticmethod
    def _create_event_loop() -> asyncio.AbstractEventLoop:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        return loop
