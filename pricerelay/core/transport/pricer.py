import asyncio
import logging

from pricerelay.core.models.pricing import PricingResult
from pricerelay.core.transport.codec import ResponseCodec


class PricerProtocol(asyncio.Protocol):
    """
    Implements the byte-stream side of a session: one TCP connection to the
    pricer daemon. It writes encoded request frames to the transport and
    turns the daemon's response stream back into PricingResult objects.

    The daemon answers with fixed 24-byte records and no framing marker.
    Incoming bytes are accumulated in an internal buffer and every complete
    record is decoded and removed from the front of the buffer, so the
    decoded sequence does not depend on how the stream was split into
    reads. At most 23 bytes of a partial record stay buffered between two
    reads.

    Decoded results are pushed into the session queue. If the client does not
    drain that queue and more than `max_pending` results pile up, the
    connection is aborted and `overflowed` is set.

    When the connection is lost, the outcome is published on the `closed`
    future (None for a clean close, the exception otherwise) and a sentinel
    None is pushed into the queue to signal termination to the consumer.

    PricerProtocol does not parse client messages or talk to the client.
    These responsibilities belong to the Session.
    """
    def __init__(
        self,
        queue: asyncio.Queue[PricingResult | None],
        max_pending: int = 0,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._transport: asyncio.Transport | None = None
        self._loop = loop or asyncio.get_event_loop()
        self._buffer = bytearray()
        self._max_pending = max_pending
        self._peer: tuple[str, int] | None = None
        self._logger = logging.getLogger("core.transport.pricer")

        self.queue = queue
        self.overflowed = False
        self.closed: asyncio.Future[Exception | None] = self._loop.create_future()

    @property
    def buffered(self) -> int:
        """Number of bytes of an incomplete record currently held."""
        return len(self._buffer)

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._transport = transport  # type: ignore[assignment]
        self._peer = transport.get_extra_info("peername")
        self._logger.info(f"Connected to pricer daemon {self._who}")

    def connection_lost(self, exc: Exception | None) -> None:
        if exc is None:
            self._logger.debug(f"{self._who} - Pricer connection closed")
        else:
            self._logger.error(f"{self._who} - Pricer connection error: {exc}")

        if not self.closed.done():
            self.closed.set_result(exc)

        self.queue.put_nowait(None)

    def eof_received(self) -> bool | None:
        self._logger.debug(f"{self._who} - Pricer sent EOF")
        return None

    def data_received(self, data: bytes) -> None:
        if self.overflowed:
            return

        self._buffer.extend(data)

        size = ResponseCodec.SIZE
        offset = 0
        try:
            while len(self._buffer) - offset >= size:
                if self._max_pending and self.queue.qsize() >= self._max_pending:
                    self._overflow()
                    return

                result = ResponseCodec.decode(self._buffer, offset)
                offset += size
                self.queue.put_nowait(result)
        finally:
            del self._buffer[:offset]

    def write(self, frame: bytes) -> None:
        """
        Write one request frame to the pricer.

        Raises:
            ConnectionError: if the pricer connection is not writable
        """
        if self._transport is None or self._transport.is_closing():
            raise ConnectionError("Pricer connection is not writable")

        self._transport.write(frame)

    def half_close(self) -> None:
        """
        Stop sending to the pricer but keep reading its remaining output.
        Falls back to a regular close when the transport cannot send EOF.
        """
        transport = self._transport
        if transport is None or transport.is_closing():
            return

        if transport.can_write_eof():
            self._logger.debug(f"{self._who} - Half-closing pricer connection")
            transport.write_eof()
        else:
            transport.close()

    def abort(self) -> None:
        """Drop the pricer connection immediately, discarding unsent data."""
        if self._transport is not None and not self._transport.is_closing():
            self._transport.abort()

    @property
    def _who(self) -> str:
        return "%s:%d" % self._peer[:2] if self._peer else ""

    def _overflow(self) -> None:
        self.overflowed = True
        self._logger.warning(
            f"{self._who} - More than {self._max_pending} pending results, "
            "aborting pricer connection"
        )
        self.abort()
