import math
import time
from dataclasses import dataclass, asdict
from enum import IntEnum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict

UINT32_MAX = 0xFFFFFFFF

JS_INFINITY = {
    "Infinity": math.inf,
    "+Infinity": math.inf,
    "-Infinity": -math.inf,
}


class OptionType(IntEnum):
    """
    Option side as encoded on the pricer wire (one unsigned byte).
    """
    call = 0
    put = 1


def to_number(value: Any) -> float:
    """
    Loose numeric coercion for client supplied fields.

    Mirrors what a browser client expects from `Number(x)`: null and blank
    strings become 0, booleans become 0/1, numeric strings are parsed and
    anything else becomes NaN. Only the spellings "Infinity", "+Infinity"
    and "-Infinity" name an infinity, Python's "inf" and "nan" do not.
    NaN is forwarded to the pricer as-is.
    """
    if value is None:
        return 0.0

    if isinstance(value, (bool, int, float)):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if text in JS_INFINITY:
            return JS_INFINITY[text]
        if "_" in text or text.lstrip("+-")[:3].lower() in ("inf", "nan"):
            return math.nan
        try:
            return float(text)
        except ValueError:
            pass
        if text[:2].lower() in ("0x", "0o", "0b"):
            try:
                return float(int(text, 0))
            except ValueError:
                return math.nan

    return math.nan


def to_steps(value: Any) -> int | None:
    """
    Falsy values mean "no step count" and select the short request frame.
    Truthy values must be a whole number that fits an unsigned 32-bit field.
    """
    if isinstance(value, float) and math.isnan(value):
        return None
    if not value:
        return None
    if isinstance(value, bool):
        raise ValueError("steps must be an integer")

    if isinstance(value, str):
        value = to_number(value)

    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"steps must be an integer, got {value!r}")
        value = int(value)

    if not isinstance(value, int):
        raise ValueError(f"steps must be an integer, got {type(value).__name__}")

    if not 0 < value <= UINT32_MAX:
        raise ValueError(f"steps out of range: {value}")

    return value


Number = Annotated[float, BeforeValidator(to_number)]
Steps = Annotated[int | None, BeforeValidator(to_steps)]


class PricingRequest(BaseModel):
    """
    A pricing request as sent by a client, before it is encoded into the
    pricer's binary request frame.

    The five numeric fields are required. Their values are coerced
    loosely (see `to_number`) and are not range checked here: numeric
    sanity is the pricer's responsibility.
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    spot: Number
    strike: Number
    rate: Number
    volatility: Number
    maturity: Number

    steps: Steps = None
    """
    Step count for lattice methods. Only sent when truthy.
    """

    type: Any = None
    """
    "put" selects a put. Any other value, including a missing field,
    prices a call.
    """

    @property
    def option_type(self) -> OptionType:
        if self.type == "put":
            return OptionType.put
        return OptionType.call


def _finite_or_none(value: float) -> float | None:
    return value if math.isfinite(value) else None


@dataclass
class PricingResult:
    """
    Price and greeks decoded from one pricer response frame.
    """
    price: float | None
    """
    Option price, or None if the pricer returned NaN or an infinity.
    """

    delta: float | None
    """
    Option delta, or None if not finite.
    """

    vega: float | None
    """
    Option vega, or None if not finite.
    """

    ts_server: int
    """
    Wall-clock time (epoch milliseconds) at which the relay decoded the
    frame. This is not the pricer's computation time.
    """

    @classmethod
    def from_values(
        cls,
        price: float,
        delta: float,
        vega: float,
        ts_server: int | None = None,
    ) -> "PricingResult":
        if ts_server is None:
            ts_server = int(time.time() * 1000)

        return cls(
            price=_finite_or_none(price),
            delta=_finite_or_none(delta),
            vega=_finite_or_none(vega),
            ts_server=ts_server,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
