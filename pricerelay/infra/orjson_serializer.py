import orjson
from typing import Any

from pricerelay.core.ports.serializer import Serializer


class OrjsonSerializer(Serializer):
    """
    orjson-based implementation of the Serializer interface.

    - strict JSON: NaN and Infinity are rejected on input and written as
      null on output
    - UTF-8 only: undecodable input raises orjson.JSONDecodeError (a ValueError)
    """
    def serialize(self, message: Any) -> str:
        return orjson.dumps(message).decode()

    def deserialize(self, data: str | bytes) -> Any:
        return orjson.loads(data)
