import asyncio
import logging
import struct
from typing import Any

from websockets.asyncio.server import ServerConnection
from websockets.exceptions import ConnectionClosed, ConnectionClosedError

from pricerelay.core.helpers.spawn import TaskSpawner
from pricerelay.core.models.config import PricerConfig
from pricerelay.core.models.message import (
    BACKLOG_OVERFLOW,
    BAD_REQUEST,
    CONNECT_FAILED,
    SEND_FAILED,
    ErrorMessage,
    Message,
    OutboundMessage,
)
from pricerelay.core.models.pricing import PricingRequest, PricingResult
from pricerelay.core.models.state import SessionPhase
from pricerelay.core.ports.serializer import Serializer
from pricerelay.core.transport.codec import RequestCodec
from pricerelay.core.transport.pricer import PricerProtocol

CLOSE_NORMAL = 1000
CLOSE_INTERNAL_ERROR = 1011


class Session:
    """
    Relays one client connection to its own pricer connection.

    A session is created for every accepted client. It immediately dials the
    pricer and, once connected, runs two independent paths until either side
    goes away:

    - client -> pricer: each text message is parsed as a PricingRequest,
      encoded into a binary request frame and written to the pricer. Bad
      input and write failures are answered with an error message and the
      session keeps going.
    - pricer -> client: results decoded by the PricerProtocol are taken
      from the session queue, in stream order, and sent to the client as
      "price_result" messages. Delivery is best effort.

    Termination is propagated to the other side:
    - client closes cleanly: the pricer connection is half-closed so that
      in-flight results can still drain, and the session ends when the
      pricer closes its side.
    - client connection fails: the pricer connection is aborted.
    - pricer closes or fails: the client connection is closed.

    Sessions share nothing with each other. There are no retries and no
    reconnection: any terminal condition ends the session.
    """
    def __init__(
        self,
        websocket: ServerConnection,
        config: PricerConfig,
        serializer: Serializer,
        spawner: TaskSpawner,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.phase = SessionPhase.connecting

        self._ws = websocket
        self._config = config
        self._serializer = serializer
        self._spawner = spawner
        self._loop = loop or asyncio.get_event_loop()
        self._queue: asyncio.Queue[PricingResult | None] = asyncio.Queue()
        self._pricer: PricerProtocol = None  # type: ignore[assignment]
        self._forward_task: asyncio.Task[None] | None = None
        self._peer = websocket.remote_address
        self._logger = logging.getLogger("core.service.session")

    @property
    def pricer(self) -> PricerProtocol | None:
        return self._pricer

    async def run(self) -> None:
        """
        Drive the session from pricer dial to teardown.
        Returns once both connections are closed.
        """
        try:
            if not await self.connect():
                return

            try:
                async for message in self._ws:
                    await self.handle_message(message)
            except ConnectionClosedError as exc:
                if self._pricer.closed.done():
                    self._logger.debug(
                        f"{self._who} - Client connection closed after pricer: {exc}"
                    )
                else:
                    self._logger.info(f"{self._who} - Client connection failed: {exc}")
                self._set_phase(SessionPhase.closing)
                self._pricer.abort()
            else:
                self._logger.debug(f"{self._who} - Client closed the connection")
                self._set_phase(SessionPhase.closing)
                self._pricer.half_close()

            await self._pricer.closed
            if self._forward_task is not None:
                await asyncio.wait([self._forward_task])
        finally:
            self.abort()
            self._set_phase(SessionPhase.closed)

    async def connect(self) -> bool:
        """
        Dial the pricer. On failure the client is told so and disconnected.
        """
        config = self._config
        try:
            _, protocol = await self._loop.create_connection(
                self.create_protocol,
                host=config.host,
                port=config.port,
            )
        except OSError as exc:
            self._logger.error(
                f"{self._who} - Failed to connect to pricer "
                f"{config.host}:{config.port}: {exc}"
            )
            self._set_phase(SessionPhase.closed)
            await self.send(ErrorMessage(CONNECT_FAILED))
            await self._close_client(CLOSE_INTERNAL_ERROR, "pricer unavailable")
            return False

        self.attach(protocol)  # type: ignore[arg-type]
        return True

    def create_protocol(self) -> PricerProtocol:
        return PricerProtocol(
            queue=self._queue,
            max_pending=self._config.max_pending_results,
            loop=self._loop,
        )

    def attach(self, protocol: PricerProtocol) -> None:
        """Bind a connected pricer and start forwarding its results."""
        self._pricer = protocol
        self._set_phase(SessionPhase.active)
        self._forward_task = self._spawner.spawn(
            self.forward_results(),
            name=f"forward-results {self._who}",
        )

    async def handle_message(self, raw: str | bytes) -> None:
        try:
            request = PricingRequest.model_validate(self._serializer.deserialize(raw))
            frame = RequestCodec.encode(request)
        except (ValueError, struct.error) as exc:
            self._logger.warning(f"{self._who} - Bad request: {exc}")
            await self.send(ErrorMessage(BAD_REQUEST))
            return

        if request.type != "put" and request.type != "call":
            self._logger.debug(
                f"{self._who} - Option type {request.type!r} priced as call"
            )

        try:
            self._pricer.write(frame)
        except (ConnectionError, RuntimeError) as exc:
            self._logger.error(f"{self._who} - Failed to write to pricer: {exc}")
            await self.send(ErrorMessage(SEND_FAILED))
            return

        self._logger.debug(f"{self._who} - Sent {len(frame)} bytes to pricer")

    async def forward_results(self) -> None:
        """
        Deliver decoded results to the client until the pricer goes away,
        then close the client connection.
        """
        while True:
            result = await self._queue.get()
            if result is None:
                break
            await self.send(Message.price_result(result))

        code = CLOSE_NORMAL
        reason = ""
        if self._pricer.overflowed:
            await self.send(ErrorMessage(BACKLOG_OVERFLOW))
            code, reason = CLOSE_INTERNAL_ERROR, "pricer backlog overflow"
        elif self._pricer.closed.done() and self._pricer.closed.result() is not None:
            code, reason = CLOSE_INTERNAL_ERROR, "pricer connection lost"

        if self.phase == SessionPhase.active:
            self._set_phase(SessionPhase.closing)
        await self._close_client(code, reason)

    async def send(self, message: OutboundMessage) -> None:
        """Best-effort delivery: a client that is already gone is ignored."""
        try:
            await self._ws.send(self._serializer.serialize(message.to_dict()))
        except ConnectionClosed:
            self._logger.debug(f"{self._who} - Dropped {message.type} message, client gone")

    def abort(self) -> None:
        """Tear the session down without waiting for the pricer."""
        if self._pricer is not None:
            self._pricer.abort()
        if self._forward_task is not None and not self._forward_task.done():
            self._forward_task.cancel()

    async def _close_client(self, code: int, reason: str = "") -> None:
        await self._ws.close(code, reason)

    def _set_phase(self, phase: SessionPhase) -> None:
        if self.phase == SessionPhase.closed or self.phase == phase:
            return
        self._logger.debug(f"{self._who} - Session {self.phase} -> {phase}")
        self.phase = phase

    @property
    def _who(self) -> str:
        peer: Any = self._peer
        return "%s:%d" % peer[:2] if peer else ""
