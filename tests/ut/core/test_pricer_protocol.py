import asyncio

import pytest

from pricerelay.core.transport.codec import ResponseCodec
from pricerelay.core.transport.pricer import PricerProtocol
from tests.fake.fake_transport import FakeTransport


def make_protocol(transport, max_pending=0) -> PricerProtocol:
    protocol = PricerProtocol(asyncio.Queue(), max_pending=max_pending, loop=asyncio.get_event_loop())
    protocol.connection_made(transport)
    return protocol


def drain(queue: asyncio.Queue) -> list:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


def values(results) -> list[tuple]:
    return [(r.price, r.delta, r.vega) for r in results]


def records(n: int) -> bytes:
    return b"".join(ResponseCodec.encode(float(i), i / 10, i * 2.0) for i in range(n))


@pytest.mark.ut
@pytest.mark.asyncio
async def test_two_records_in_one_delivery(transport):
    protocol = make_protocol(transport)

    protocol.data_received(records(2))

    results = drain(protocol.queue)
    assert values(results) == [(0.0, 0.0, 0.0), (1.0, 0.1, 2.0)]
    assert protocol.buffered == 0


@pytest.mark.ut
@pytest.mark.asyncio
async def test_partial_record_waits_for_completion(transport):
    protocol = make_protocol(transport)

    protocol.data_received(b"\x00" * 20)
    assert protocol.queue.empty()
    assert protocol.buffered == 20

    protocol.data_received(b"\x00" * 4)
    results = drain(protocol.queue)
    assert values(results) == [(0.0, 0.0, 0.0)]
    assert protocol.buffered == 0


@pytest.mark.ut
@pytest.mark.asyncio
@pytest.mark.parametrize("chunk_size", [1, 5, 23, 24, 25, 47, 100])
async def test_decoding_does_not_depend_on_delivery_boundaries(transport, chunk_size):
    stream = records(7) + b"\x01\x02"

    whole = make_protocol(FakeTransport())
    whole.data_received(stream)

    split = make_protocol(transport)
    for start in range(0, len(stream), chunk_size):
        split.data_received(stream[start:start + chunk_size])

    assert values(drain(split.queue)) == values(drain(whole.queue))
    assert split.buffered == whole.buffered == 2


@pytest.mark.ut
@pytest.mark.asyncio
async def test_irregular_splits(transport):
    stream = records(3)
    protocol = make_protocol(transport)

    for chunk in (stream[:3], stream[3:30], stream[30:31], stream[31:71], stream[71:]):
        protocol.data_received(chunk)

    assert values(drain(protocol.queue)) == values(
        [ResponseCodec.decode(stream, offset) for offset in (0, 24, 48)]
    )


@pytest.mark.ut
@pytest.mark.asyncio
async def test_backlog_overflow_aborts_connection(transport):
    protocol = make_protocol(transport, max_pending=2)

    protocol.data_received(records(3))

    assert protocol.overflowed is True
    assert transport.aborted is True
    assert protocol.queue.qsize() == 2

    protocol.data_received(records(1))
    assert protocol.queue.qsize() == 2


@pytest.mark.ut
@pytest.mark.asyncio
async def test_backlog_within_limit(transport):
    protocol = make_protocol(transport, max_pending=3)

    protocol.data_received(records(3))

    assert protocol.overflowed is False
    assert protocol.queue.qsize() == 3


@pytest.mark.ut
@pytest.mark.asyncio
async def test_connection_lost_clean(transport):
    protocol = make_protocol(transport)

    protocol.connection_lost(None)

    assert protocol.closed.done()
    assert protocol.closed.result() is None
    assert protocol.queue.get_nowait() is None


@pytest.mark.ut
@pytest.mark.asyncio
async def test_connection_lost_with_error(transport):
    protocol = make_protocol(transport)
    error = ConnectionResetError("reset by peer")

    protocol.connection_lost(error)

    assert protocol.closed.result() is error
    assert protocol.queue.get_nowait() is None


@pytest.mark.ut
@pytest.mark.asyncio
async def test_write_goes_to_transport(transport):
    protocol = make_protocol(transport)

    protocol.write(b"\x01" * 41)

    assert transport.buffer == b"\x01" * 41


@pytest.mark.ut
@pytest.mark.asyncio
async def test_write_fails_when_closing(transport):
    protocol = make_protocol(transport)
    transport.close()

    with pytest.raises(ConnectionError):
        protocol.write(b"\x01" * 41)


@pytest.mark.ut
@pytest.mark.asyncio
async def test_write_fails_before_connection():
    protocol = PricerProtocol(asyncio.Queue())

    with pytest.raises(ConnectionError):
        protocol.write(b"\x01" * 41)


@pytest.mark.ut
@pytest.mark.asyncio
async def test_half_close_writes_eof(transport):
    protocol = make_protocol(transport)

    protocol.half_close()

    assert transport.eof_written is True
    assert transport.is_closing() is False


@pytest.mark.ut
@pytest.mark.asyncio
async def test_half_close_falls_back_to_close():
    transport = FakeTransport(can_eof=False)
    protocol = make_protocol(transport)

    protocol.half_close()

    assert transport.eof_written is False
    assert transport.is_closing() is True
