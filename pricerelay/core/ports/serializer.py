from typing import Protocol, Any


class Serializer(Protocol):
    """
    Defines the interface for encoding/decoding the structured messages
    exchanged with clients as text frames.

    Implementations must be:
    - deterministic
    - pure (no side effects)
    - safe against malformed input (raise ValueError, never crash)
    """

    def serialize(self, message: Any) -> str:
        """Encode a Python object into text suitable for a client message."""

    def deserialize(self, data: str | bytes) -> Any:
        """Decode a client message into a Python object."""
