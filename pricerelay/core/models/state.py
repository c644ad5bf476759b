import asyncio
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pricerelay.core.service.session import Session


class SessionPhase(StrEnum):
    """
    Lifecycle of a single client/pricer pairing.

        connecting -> active -> closing -> closed

    A session whose pricer dial fails goes straight from connecting to
    closed. There is no way back from closing or closed.
    """
    connecting = "connecting"
    active = "active"
    closing = "closing"
    closed = "closed"


@dataclass
class ServerState:
    """
    Shared runtime state for a RelayServer.

    This object is mutated by:
    - RelayServer: adds/removes live sessions
    - Session: registers its background tasks
    - RelayServer.shutdown(): waits for sessions and tasks to complete
    """
    sessions: set["Session"] = field(default_factory=set)
    """
    Set of live sessions. Each client connection corresponds to one Session.
    """

    tasks: set[asyncio.Task[None]] = field(default_factory=set)
    """
    Set of background tasks spawned by sessions.
    Each task must be registered and later removed via a
    task.add_done_callback(tasks.discard) to enable clean shutdown.
    """
