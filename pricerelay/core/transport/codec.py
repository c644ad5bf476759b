import struct

from pricerelay.core.models.pricing import OptionType, PricingRequest, PricingResult


class RequestCodec:
    """
    Binary request frame understood by the pricer daemon.

        offset  size  type     field
        0       8     float64  spot
        8       8     float64  strike
        16      8     float64  rate
        24      8     float64  volatility
        32      8     float64  maturity
        40      1     uint8    option type (0=call, 1=put)
        41      4     uint32   steps (only present when steps was supplied)

    Little-endian, no padding: 41 bytes without steps, 45 bytes with.
    """
    BASE = struct.Struct("<5dB")
    STEPS = struct.Struct("<I")
    SIZE: int = BASE.size
    SIZE_WITH_STEPS: int = BASE.size + STEPS.size

    @classmethod
    def encode(cls, request: PricingRequest) -> bytes:
        frame = cls.BASE.pack(
            request.spot,
            request.strike,
            request.rate,
            request.volatility,
            request.maturity,
            request.option_type,
        )
        if request.steps:
            frame += cls.STEPS.pack(request.steps)
        return frame

    @classmethod
    def decode(cls, frame: bytes) -> tuple[tuple[float, ...], OptionType, int | None]:
        """
        Parse a request frame the way the pricer does.

        Returns:
            ((spot, strike, rate, volatility, maturity), option_type, steps)
        with steps None for a short frame.

        Raises:
            ValueError: if the frame is neither 41 nor 45 bytes long
        """
        if len(frame) not in (cls.SIZE, cls.SIZE_WITH_STEPS):
            raise ValueError(
                f"Invalid request frame size: {len(frame)} "
                f"(expected {cls.SIZE} or {cls.SIZE_WITH_STEPS})"
            )

        *values, code = cls.BASE.unpack_from(frame, 0)
        steps = None
        if len(frame) == cls.SIZE_WITH_STEPS:
            steps = cls.STEPS.unpack_from(frame, cls.SIZE)[0]

        return tuple(values), OptionType(code), steps


class ResponseCodec:
    """
    Binary response record streamed back by the pricer daemon.

        offset  size  type     field
        0       8     float64  price
        8       8     float64  delta
        16      8     float64  vega

    Little-endian, 24 bytes, no terminator. Records are concatenated on the
    stream without any marker, so boundaries are purely positional.
    """
    RECORD = struct.Struct("<3d")
    SIZE: int = RECORD.size

    @classmethod
    def decode(
        cls,
        buffer: bytes | bytearray | memoryview,
        offset: int = 0,
        ts_server: int | None = None,
    ) -> PricingResult:
        price, delta, vega = cls.RECORD.unpack_from(buffer, offset)
        return PricingResult.from_values(price, delta, vega, ts_server=ts_server)

    @classmethod
    def encode(cls, price: float, delta: float, vega: float) -> bytes:
        return cls.RECORD.pack(price, delta, vega)
