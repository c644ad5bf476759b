import asyncio
import contextlib
import logging
import sys
import signal
import threading
from types import FrameType
from typing import Generator

SHUTDOWN_SIGNALS = (
    signal.SIGINT,
    signal.SIGTERM,
)

if sys.platform == "win32":
    SHUTDOWN_SIGNALS += (signal.SIGBREAK,)

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s] : %(message)s"


@contextlib.contextmanager
def setup_signal_handler() -> Generator[asyncio.Event, None, None]:
    """
    Turn SIGINT/SIGTERM into a stop event for the relay.

    Signals caught while the relay runs are replayed once the original
    handlers are restored, so that the process still exits the way the
    caller expects (e.g. KeyboardInterrupt for SIGINT).
    """
    stop_event = asyncio.Event()

    if threading.current_thread() is not threading.main_thread():
        yield stop_event
        return

    logger = logging.getLogger("core.helpers.signal")
    captured_signals: list[signal.Signals | int] = []

    def handle(sig: int, frame: FrameType | None) -> None:
        if not captured_signals:
            logger.info(f"Received {signal.Signals(sig).name}, stopping relay")
        captured_signals.append(sig)
        stop_event.set()

    original_handlers = {
        sig: signal.signal(sig, handle)
        for sig in SHUTDOWN_SIGNALS
    }

    try:
        yield stop_event
    finally:
        for sig, old in original_handlers.items():
            signal.signal(sig, old)

        for sig in reversed(captured_signals):
            if original_handlers[sig] is not handle:
                signal.raise_signal(sig)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)

    # websockets reports every failed handshake and keepalive at INFO,
    # which drowns the session lifecycle lines.
    if logging.getLevelName(level) > logging.DEBUG:
        logging.getLogger("websockets").setLevel(logging.WARNING)
