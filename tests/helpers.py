import asyncio

from pricerelay.core.helpers.spawn import TaskSpawner
from pricerelay.core.models.config import PricerConfig
from pricerelay.core.service.session import Session
from pricerelay.core.transport.pricer import PricerProtocol

CALL_REQUEST = {
    "spot": 100,
    "strike": 100,
    "rate": 0.05,
    "volatility": 0.2,
    "maturity": 1,
    "type": "call",
}


def make_session(websocket, serializer, host="127.0.0.1", port=9000, max_pending_results=0) -> Session:
    loop = asyncio.get_event_loop()
    return Session(
        websocket=websocket,
        config=PricerConfig(host=host, port=port, max_pending_results=max_pending_results),
        serializer=serializer,
        spawner=TaskSpawner(loop),
        loop=loop,
    )


def attach_fake_pricer(session: Session, transport) -> PricerProtocol:
    """Connect the session to an in-memory pricer transport."""
    protocol = session.create_protocol()
    protocol.connection_made(transport)
    session.attach(protocol)
    return protocol
