import asyncio
import logging

from websockets.asyncio.server import Server, ServerConnection, serve

from pricerelay.core.helpers.spawn import TaskSpawner
from pricerelay.core.models.config import ListenerConfig
from pricerelay.core.models.state import ServerState
from pricerelay.core.ports.serializer import Serializer
from pricerelay.core.service.session import Session


class RelayServer:
    """
    Owns the lifecycle of the client-facing websocket listener. It accepts
    client connections, pairs each of them with a new Session, and
    coordinates graceful shutdown.

    It binds to the configured host and port with websockets' asyncio
    `serve`. Each accepted connection gets its own Session, which dials the
    pricer and relays messages until one side goes away. Dialing happens
    inside the connection handler, so an outstanding dial never blocks the
    acceptance of other clients. Sessions are tracked in a shared
    ServerState along with the background tasks they spawn.

    The server does not implement any relay logic itself. Parsing,
    encoding and decoding are performed by the Session and the pricer
    transport.

    On shutdown, RelayServer stops listening, closes client connections, and
    waits for sessions and background tasks to complete. If the graceful
    shutdown timeout is exceeded, remaining sessions are aborted, pending
    tasks are cancelled and an error is logged.
    """
    def __init__(
        self,
        config: ListenerConfig,
        serializer: Serializer,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._config = config
        self._serializer = serializer
        self._loop = loop or asyncio.get_event_loop()
        self.state = ServerState()
        self._spawner = TaskSpawner(loop=self._loop, tasks=self.state.tasks)
        self._logger = logging.getLogger("core.transport.server")

        self._server: Server | None = None

    @property
    def running(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def listen(self) -> tuple[str, int]:
        """Address actually bound, which differs from the config for port 0."""
        if self._server is None:
            return self._config.host, self._config.port
        sockname = next(iter(self._server.sockets)).getsockname()
        return sockname[0], sockname[1]

    def create_session(self, websocket: ServerConnection) -> Session:
        return Session(
            websocket=websocket,
            config=self._config.pricer,
            serializer=self._serializer,
            spawner=self._spawner,
            loop=self._loop,
        )

    async def handler(self, websocket: ServerConnection) -> None:
        session = self.create_session(websocket)
        self.state.sessions.add(session)

        who = "%s:%d" % websocket.remote_address[:2] if websocket.remote_address else ""
        self._logger.info(f"{who} - Client connected")

        try:
            await session.run()
        except Exception as exc:
            self._logger.error(f"{who} - Session failed: {exc}", exc_info=exc)
        finally:
            self.state.sessions.discard(session)
            self._logger.info(f"{who} - Client disconnected")

    async def start(self) -> None:
        config = self._config
        try:
            self._server = await serve(
                self.handler,
                host=config.host,
                port=config.port,
            )
        except OSError as exc:
            self._logger.error(
                f"Failed to listen on {config.host}:{config.port}: {exc}"
            )
            raise

        self._logger.info(
            "Relay listening on ws://%s:%d, pricer at %s:%d",
            *self.listen, config.pricer.host, config.pricer.port
        )

    async def shutdown(self) -> None:
        if self._server:
            self._server.close()

        try:
            await asyncio.wait_for(
                self._wait_task_complete(),
                timeout=self._config.timeout_graceful_shutdown
            )
        except asyncio.TimeoutError:
            self._logger.error(
                f"Abort {len(self.state.sessions)} session(s) and cancel "
                f"{len(self.state.tasks)} running task(s), "
                f"timeout graceful shutdown exceeded"
            )
            for session in self.state.sessions.copy():
                session.abort()
            self._spawner.cancel_all("Task cancelled, timeout graceful shutdown exceeded")

    async def _wait_task_complete(self) -> None:
        if self.state.sessions:
            self._logger.info("Waiting for client sessions to close.")

        while self.state.sessions:
            await asyncio.sleep(0.1)

        if self.state.tasks:
            self._logger.info("Waiting for background tasks to complete.")

        while self.state.tasks:
            await asyncio.sleep(0.1)

        if self._server:
            await self._server.wait_closed()
