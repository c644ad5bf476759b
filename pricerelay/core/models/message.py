from dataclasses import dataclass, asdict
from typing import Any

from pricerelay.core.models.pricing import PricingResult

BAD_REQUEST = "bad request or invalid JSON"
SEND_FAILED = "Failed to send to pricer"
CONNECT_FAILED = "Failed to connect to pricer"
BACKLOG_OVERFLOW = "Pricer response backlog overflow"


@dataclass
class Message:
    """
    Outbound message carrying a payload for the client.
    The relay encodes it as JSON text via the Serializer.
    """
    type: str
    """
    type of message, e.g. "price_result"
    """

    data: dict[str, Any]
    """
    A dictionary of serializable data
    """

    @classmethod
    def price_result(cls, result: PricingResult) -> "Message":
        return cls(type="price_result", data=result.to_dict())

    def to_dict(self) -> dict[str, Any]:
        """Return a plain dictionary representation of the message."""
        return asdict(self)


@dataclass
class ErrorMessage:
    """
    Outbound error notice. It has no payload, only a human readable text.
    """
    message: str
    type: str = "error"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message}


OutboundMessage = Message | ErrorMessage
