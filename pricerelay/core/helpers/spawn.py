import asyncio
import logging
from typing import Any, Coroutine


class TaskSpawner:
    """
    Creates background tasks on the relay loop and keeps a reference to
    each of them until it finishes.

    A failing task is reported through the log instead of surfacing as an
    "exception was never retrieved" warning. The registry can be shared
    with its owner (the ServerState of a RelayServer) so that shutdown can
    wait for, or cancel, whatever sessions left running.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        tasks: set[asyncio.Task[Any]] | None = None,
    ) -> None:
        self._loop = loop
        self._tasks: set[asyncio.Task[Any]] = tasks if tasks is not None else set()
        self._logger = logging.getLogger("core.helpers.spawn")

    @property
    def remaining_tasks(self) -> int:
        """Tasks spawned and not finished yet."""
        return len(self._tasks)

    def on_done(self, task: asyncio.Task[Any]) -> None:
        if not task.cancelled() and (ex := task.exception()):
            self._logger.error(
                f"Error occurred in task {task.get_name()}: {str(ex)}",
                exc_info=ex
            )

        self._tasks.discard(task)

    def spawn(
        self,
        coro: Coroutine[Any, Any, None],
        name: str | None = None,
    ) -> asyncio.Task[Any]:
        task = self._loop.create_task(coro, name=name)
        task.add_done_callback(self.on_done)
        self._tasks.add(task)
        return task

    def cancel_all(self, msg: str | None = None) -> None:
        """Cancel every tracked task. Tasks leave the registry once done."""
        for task in list(self._tasks):
            task.cancel(msg)
