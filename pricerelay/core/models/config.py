from dataclasses import dataclass


@dataclass
class PricerConfig:
    """
    Where and how each session dials the pricer daemon.
    """
    host: str
    """
    Hostname or IP address of the pricer daemon.
    """

    port: int
    """
    TCP port of the pricer daemon.
    """

    max_pending_results: int = 10_000
    """
    Maximum number of decoded results a session may hold while the client
    is not keeping up. Exceeding it ends the session. 0 disables the limit.
    """


@dataclass
class ListenerConfig:
    """
    Static configuration for the client-facing RelayServer.
    """
    host: str
    """
    IP address or hostname on which the server listens.
    """

    port: int
    """
    Port to bind. If set to 0, the OS selects an available port.
    """

    pricer: PricerConfig
    """
    Backend dialled once for every accepted client connection.
    """

    timeout_graceful_shutdown: float = 5.0
    """
    Maximum time (in seconds) allowed for graceful shutdown:
    - client connections are closed and their sessions must end
    - background tasks registered in ServerState.tasks must complete
    After this timeout, remaining tasks are cancelled.
    """
