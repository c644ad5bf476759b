import pytest

from tests.fake.fake_transport import FakeTransport
from tests.fake.fake_websocket import FakeWebSocket

from pricerelay.infra.orjson_serializer import OrjsonSerializer


@pytest.fixture
def serializer():
    return OrjsonSerializer()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def websocket():
    return FakeWebSocket()


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "WS_HOST",
        "WS_PORT",
        "PRICER_HOST",
        "PRICER_PORT",
        "MAX_PENDING_RESULTS",
        "TIMEOUT_GRACEFUL_SHUTDOWN",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
